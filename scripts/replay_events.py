#!/usr/bin/env python3
"""
Script: replay_events.py

Purpose: Replay a file of Segment events through the configured destinations.

Destinations are read from the environment (BIGQUERY_*, CUSTOMERIO_*,
WEBHOOK_URL). The input is either a JSON array, a Segment batch object
(``{"batch": [...]}``), or JSON lines.

Usage:
    python scripts/replay_events.py events.json
    python scripts/replay_events.py events.jsonl --dry-run
    python scripts/replay_events.py events.json --output outcomes.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from opentrack.delivery.registry import create_router
from opentrack.events.schemas import BaseEvent, parse_events
from opentrack.exceptions import OpenTrackError
from opentrack.logging_config import configure_logging
from opentrack.settings import get_settings

logger = logging.getLogger(__name__)


def load_event_dicts(path: Path) -> list[dict[str, Any]]:
    """Read events from a JSON array, a batch object, or JSON lines."""
    text = path.read_text(encoding="utf-8").strip()
    if not text:
        return []

    if text[0] in "[{":
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            return data.get("batch", [data])

    return [json.loads(line) for line in text.splitlines() if line.strip()]


async def replay(events: list[BaseEvent]) -> list[list[dict[str, Any]]]:
    router = create_router()
    try:
        batches = await router.process_batch(events)
    finally:
        await router.aclose()
    return [[outcome.to_dict() for outcome in outcomes] for outcomes in batches]


def main():
    parser = argparse.ArgumentParser(
        description="Replay Segment events through the configured destinations"
    )
    parser.add_argument(
        "input",
        type=str,
        help="JSON, batch JSON, or JSON-lines file of Segment events",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate events without delivering them",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Output file for outcomes JSON (optional)",
    )

    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings)

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}")
        sys.exit(1)

    try:
        events = parse_events(load_event_dicts(input_path))
    except (ValueError, OpenTrackError) as e:
        print(f"Error: Invalid events in {input_path}: {e}")
        sys.exit(1)

    print(f"Loaded {len(events)} events from {input_path}")
    if args.dry_run:
        for event in events:
            print(f"  {event.type:<9} {event.message_id}")
        return

    try:
        results = asyncio.run(replay(events))
    except OpenTrackError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    failed = 0
    for event, outcomes in zip(events, results):
        print(f"\n{event.type} {event.message_id}")
        for outcome in outcomes:
            status = "ok" if outcome["success"] else f"FAILED ({outcome.get('error')})"
            print(f"  {outcome['destination']:<12} {outcome['duration_ms']:>9.1f} ms  {status}")
            failed += 0 if outcome["success"] else 1

    if args.output:
        Path(args.output).write_text(json.dumps(results, indent=2), encoding="utf-8")
        print(f"\nOutcomes written to {args.output}")

    if failed:
        sys.exit(2)


if __name__ == "__main__":
    main()
