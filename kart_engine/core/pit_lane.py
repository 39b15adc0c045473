"""Pit rotation engine: which physical kart waits in which pit row.

Each row is an independent queue of kart ids.  A team entering a row
takes the kart at the front; the kart it arrived on is wheeled to the
back of the same row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from kart_engine.core.registry import KartRegistry
from kart_engine.core.team import Team
from kart_engine.errors import EmptyPitRowError, UnknownPitRowError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PitEntryResult:
    """Outcome of one pit entry.

    Attributes:
        row: Zero-based row the team entered.
        team_number: Team that pitted.
        taken_kart_id: Kart the team left on.
        returned_kart_id: Kart the team arrived on, now at the row end
            (``None`` on the team's first pit entry).
    """

    row: int
    team_number: str
    taken_kart_id: str
    returned_kart_id: str | None


class PitLane:
    """Ordered pit rows of kart ids.

    Attributes:
        rows: One list per row, front of the queue first.
    """

    __slots__ = ("rows",)

    def __init__(self, rows: list[list[str]] | None = None) -> None:
        self.rows: list[list[str]] = [list(r) for r in rows] if rows else []

    def __repr__(self) -> str:
        return f"PitLane(rows={self.rows!r})"

    def check_row(self, row: int) -> list[str]:
        if not 0 <= row < len(self.rows):
            raise UnknownPitRowError(
                f"Pit row {row + 1} does not exist (lane has {len(self.rows)} rows)."
            )
        return self.rows[row]

    def row_of(self, kart_id: str) -> int | None:
        for idx, queue in enumerate(self.rows):
            if kart_id in queue:
                return idx
        return None

    def setup(
        self,
        registry: KartRegistry,
        row_count: int,
        karts_per_row: int,
    ) -> None:
        """Discard all rows and fill new ones with fresh placeholder karts.

        Kart and team history in *registry* is kept.
        """
        if row_count < 1:
            raise ValueError("row_count must be >= 1.")
        if karts_per_row < 0:
            raise ValueError("karts_per_row must be >= 0.")
        self.rows = [
            [registry.new_kart().kart_id for _ in range(karts_per_row)]
            for _ in range(row_count)
        ]
        logger.info("Pit lane set up: %d rows x %d karts", row_count, karts_per_row)

    def discard(self, kart_id: str) -> bool:
        """Remove *kart_id* from every row; return whether it was present."""
        found = False
        for queue in self.rows:
            while kart_id in queue:
                queue.remove(kart_id)
                found = True
        return found

    def append(self, row: int, kart_id: str) -> None:
        """Place a kart at the back of *row*, taking it out of any other row."""
        queue = self.check_row(row)
        self.discard(kart_id)
        queue.append(kart_id)

    def pit_entry(
        self,
        row: int,
        team: Team,
        registry: KartRegistry,
    ) -> PitEntryResult:
        """Process a team entering pit row *row*.

        The team takes the first kart; its previous kart, if any, is
        removed from every row and appended to the end of *row*.

        Raises:
            UnknownPitRowError: If *row* is out of range.
            EmptyPitRowError: If the row has no kart (nothing changes).
        """
        queue = self.check_row(row)
        if not queue:
            raise EmptyPitRowError(row, team.number)

        taken = queue.pop(0)
        previous = team.assign_kart(taken)
        registry.ensure(taken).label = team.number

        returned = previous if previous != taken else None
        if returned is not None:
            self.discard(returned)
            queue.append(returned)

        logger.info(
            "Team %s pitted in row %d: took %s, returned %s",
            team.number,
            row + 1,
            taken,
            returned,
        )
        return PitEntryResult(
            row=row,
            team_number=team.number,
            taken_kart_id=taken,
            returned_kart_id=returned,
        )
