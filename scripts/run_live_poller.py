#!/usr/bin/env python
"""Poll a live-timing page and keep the pit board scored.

This script orchestrates a live session:

1. Load settings (``data/settings.yaml`` or ``--settings``).
2. Set up the pit rows.
3. Poll the timing URL every ``interval`` seconds, one cycle at a time.
4. Print a one-line status per cycle and, on exit, write the board to
   ``results/race_data.json``.

Usage
-----
::

    python scripts/run_live_poller.py https://live.example.com/track/ --cycles 10

This script only records laps and scores. To make pit entries while
polling, switch on "Live polling" in the dashboard instead.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Ensure the project root is on the import path.
_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from kart_engine import setup_logging  # noqa: E402
from kart_engine.config import load_settings  # noqa: E402
from kart_engine.core.session import RaceSession  # noqa: E402
from kart_engine.data_ingestion.poller import LivePoller  # noqa: E402
from kart_engine.export import write_export  # noqa: E402

RESULTS_DIR: str = os.path.join(_project_root, "results")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("url", help="Live-timing page or JSON endpoint")
    parser.add_argument("--settings", type=Path, default=None)
    parser.add_argument("--interval", type=float, default=None)
    parser.add_argument("--cycles", type=int, default=None)
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    settings = load_settings(args.settings)
    session = RaceSession(settings)

    def _report(s: RaceSession) -> None:
        scored = sum(1 for k in s.registry if k.score is not None)
        excluded = sum(1 for t in s.teams.values() if t.excluded)
        print(
            f"      teams {len(s.teams):3d}  karts scored {scored:3d}  "
            f"excluded {excluded}"
        )

    session.subscribe(_report)
    poller = LivePoller(session, args.url, interval=args.interval)

    print("=" * 60)
    print(f"LIVE POLLING {args.url} every {poller.interval:.0f}s")
    print("=" * 60)
    try:
        asyncio.run(poller.run(max_cycles=args.cycles))
    except KeyboardInterrupt:
        print("\nStopped.")

    os.makedirs(RESULTS_DIR, exist_ok=True)
    path = write_export(session, Path(RESULTS_DIR))
    print(f"Board saved to {path}")


if __name__ == "__main__":
    main()
