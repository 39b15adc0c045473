"""Team and stint models for the pit board.

A team references karts by id only; the registry owns the kart records.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Stint:
    """Laps a team drove on one kart, in the order they were observed."""

    kart_id: str
    lap_times: list[float] = field(default_factory=list)

    def record_lap(self, lap_time: float, max_laps: int) -> None:
        self.lap_times.append(lap_time)
        if len(self.lap_times) > max_laps:
            del self.lap_times[: len(self.lap_times) - max_laps]


@dataclass
class Team:
    """An entrant cycling through karts during the race.

    Attributes:
        number: Team/entrant number as shown on the timing screen.
        current_kart_id: Kart the team is driving, if assigned.
        previous_kart_id: Kart the team drove before the last pit entry.
        stints: Stints in the order they started; the last one is open.
        excluded: Set by the scorer when the team's stint averages are
            too erratic to compare karts.
    """

    number: str
    current_kart_id: str | None = None
    previous_kart_id: str | None = None
    stints: list[Stint] = field(default_factory=list)
    excluded: bool = False

    def __post_init__(self) -> None:
        if not self.number:
            raise ValueError("Team number must not be empty.")

    @property
    def open_stint(self) -> Stint | None:
        if not self.stints:
            return None
        return self.stints[-1]

    def assign_kart(self, kart_id: str) -> str | None:
        """Move the team onto *kart_id* and open a new stint.

        Returns:
            The kart id the team was on before, or ``None``.
        """
        previous = self.current_kart_id
        self.previous_kart_id = previous
        self.current_kart_id = kart_id
        self.stints.append(Stint(kart_id=kart_id))
        return previous

    def active_stint(self) -> Stint | None:
        """Return the stint for the current kart, opening one if needed."""
        if self.current_kart_id is None:
            return None
        stint = self.open_stint
        if stint is None or stint.kart_id != self.current_kart_id:
            stint = Stint(kart_id=self.current_kart_id)
            self.stints.append(stint)
        return stint
