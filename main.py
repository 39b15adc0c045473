"""CLI entrypoint for the kart pit board."""

from __future__ import annotations

import sys

from kart_engine import __version__, setup_logging
from kart_engine.config import load_settings
from kart_engine.core.session import RaceSession
from kart_engine.data_ingestion.demo import run_demo
from kart_engine.export import karts_frame


def print_board(session: RaceSession) -> None:
    """Print pit rows and team assignments as a text board."""
    print("\nPit rows (front of queue first):")
    for idx, row in enumerate(session.pit_lane.rows, start=1):
        cells = []
        for kart in session.karts_in_row(idx - 1):
            score = "--" if kart.score is None else f"{kart.score:4.0f}"
            cells.append(f"{kart.kart_id}[{score} {kart.color}]")
        print(f"  Row {idx}: " + ("  ".join(cells) or "(empty)"))

    print("\nTeams:")
    for number, team in sorted(session.teams.items()):
        flag = "  (excluded: inconsistent)" if team.excluded else ""
        print(
            f"  #{number:<4} on {team.current_kart_id or '-':<4} "
            f"prev {team.previous_kart_id or '-':<4} "
            f"stints {len(team.stints)}{flag}"
        )


def main() -> None:
    """Run the offline demo race and print the resulting board."""
    setup_logging()
    print(f"Kart Pit Board v{__version__}")
    print("=" * 56)

    settings = load_settings()
    session = RaceSession(settings)
    print(
        f"\nPit lane: {settings.row_count} rows x {settings.karts_per_row} karts, "
        f"settling laps {settings.settling_laps}"
    )

    # -- Simulated race -------------------------------------------------------
    offsets = run_demo(session)
    print_board(session)

    # -- Scores vs hidden kart pace --------------------------------------------
    print(f"\n  {'Kart':>4}  {'Score':>6}  {'Colour':>7}  {'Hidden pace (s)':>15}")
    print(f"  {'----':>4}  {'------':>6}  {'-------':>7}  {'---------------':>15}")
    frame = karts_frame(session)
    for rec in frame.itertuples(index=False):
        if rec.kart_id not in offsets:
            continue
        print(
            f"  {rec.kart_id:>4}  {rec.score:6.0f}  {rec.color:>7}  "
            f"{offsets[rec.kart_id]:+15.3f}"
        )

    print("\nDemo complete.")


if __name__ == "__main__":
    sys.exit(main() or 0)
