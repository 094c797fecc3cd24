"""
Utility functions for converting strings between different cases.
"""

import re

# Words are runs of capitals not followed by lowercase (acronyms), capitalized
# or lowercase words, and digit runs. Everything else separates words.
_WORD_PATTERN = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")
_NON_TABLE_CHARS = re.compile(r"[^a-z0-9]+")


def to_snake_case(value: str) -> str:
    """
    Convert camelCase, PascalCase, kebab-case or spaced text to snake_case.

    Examples:
        >>> to_snake_case("firstName")
        'first_name'
        >>> to_snake_case("HTMLParser")
        'html_parser'
        >>> to_snake_case("Product Purchased")
        'product_purchased'
    """
    return "_".join(word.lower() for word in _WORD_PATTERN.findall(value))


def event_name_to_table_name(event_name: str) -> str:
    """
    Convert an event name to a valid BigQuery table name.

    Lowercases, collapses every run of characters outside ``[a-z0-9]`` into a
    single underscore and strips leading/trailing underscores. Idempotent.
    """
    return _NON_TABLE_CHARS.sub("_", event_name.lower()).strip("_")
