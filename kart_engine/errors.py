"""Exception types raised by the pit board core.

Every operation validates its input before touching state, so any of
these leaves the session exactly as it was.
"""

from __future__ import annotations


class KartEngineError(Exception):
    """Base class for all pit board errors."""


class EmptyPitRowError(KartEngineError, ValueError):
    """A team entered a pit row that has no kart to take."""

    def __init__(self, row: int, team_number: str) -> None:
        super().__init__(
            f"Pit row {row + 1} is empty: no kart available for team {team_number}."
        )
        self.row: int = row
        self.team_number: str = team_number


class UnknownPitRowError(KartEngineError, IndexError):
    """A row index outside the configured pit lane."""


class UnknownKartError(KartEngineError, KeyError):
    """A kart id that is not in the registry."""


class InvalidManualInputError(KartEngineError, ValueError):
    """Rejected manual input (bad score, colour or team number)."""


class FeedFetchError(KartEngineError):
    """The timing provider could not be reached or returned an error."""
