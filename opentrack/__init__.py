"""
OpenTrack delivery core.

Forwards Segment-style analytics events to independently configured
destinations (BigQuery, Customer.io, webhooks).
"""

__version__ = "0.1.0"
