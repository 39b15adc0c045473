"""Kart registry: the single owner of every Kart record.

Manual-input operations take ``None`` to mean the prompt was cancelled
(nothing changes, ``False`` is returned) and ``""`` to mean the user
confirmed an empty value (the override is cleared).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from kart_engine.core.kart import MANUAL_COLORS, Kart
from kart_engine.errors import InvalidManualInputError, UnknownKartError

logger = logging.getLogger(__name__)


class KartRegistry:
    """Authoritative map of kart id to :class:`Kart`.

    Karts are never removed; a kart taken out of every pit row keeps its
    lap history and keeps contributing to scoring.
    """

    def __init__(
        self,
        score_min: float = 0.0,
        score_max: float = 1000.0,
    ) -> None:
        if score_max <= score_min:
            raise ValueError("score_max must be greater than score_min.")
        self.score_min: float = score_min
        self.score_max: float = score_max
        self._karts: dict[str, Kart] = {}
        self._next_id: int = 1

    def __contains__(self, kart_id: object) -> bool:
        return kart_id in self._karts

    def __iter__(self) -> Iterator[Kart]:
        return iter(self._karts.values())

    def __len__(self) -> int:
        return len(self._karts)

    def __repr__(self) -> str:
        return f"KartRegistry(karts={len(self._karts)})"

    # ------------------------------------------------------------------
    # Lookup and creation
    # ------------------------------------------------------------------

    def get(self, kart_id: str) -> Kart:
        try:
            return self._karts[kart_id]
        except KeyError:
            raise UnknownKartError(f"Unknown kart id '{kart_id}'") from None

    def new_kart(self, label: str = "") -> Kart:
        """Create a kart with a fresh id (``K1``, ``K2``, ...)."""
        while f"K{self._next_id}" in self._karts:
            self._next_id += 1
        kart = Kart(kart_id=f"K{self._next_id}", label=label)
        self._next_id += 1
        self._karts[kart.kart_id] = kart
        return kart

    def add(self, kart: Kart) -> Kart:
        if kart.kart_id in self._karts:
            raise ValueError(f"Kart id '{kart.kart_id}' is already registered.")
        self._karts[kart.kart_id] = kart
        return kart

    def ensure(self, kart_id: str, label: str = "") -> Kart:
        """Return the kart with *kart_id*, creating it if needed."""
        kart = self._karts.get(kart_id)
        if kart is None:
            kart = self.add(Kart(kart_id=kart_id, label=label))
        return kart

    # ------------------------------------------------------------------
    # Manual overrides
    # ------------------------------------------------------------------

    def set_manual_score(self, kart_id: str, value: str | float | None) -> bool:
        """Pin a kart's score to a user-supplied value.

        Args:
            kart_id: Kart to override.
            value: ``None`` (cancelled), ``""`` (clear the manual score)
                or a number within the display score range.

        Returns:
            ``True`` if state changed, ``False`` for a cancelled prompt.

        Raises:
            UnknownKartError: If the kart does not exist.
            InvalidManualInputError: If the value is not a number in range.
        """
        kart = self.get(kart_id)
        if value is None:
            return False
        if isinstance(value, str):
            text = value.strip()
            if not text:
                kart.unpin_score()
                logger.info("Cleared manual score on kart %s", kart_id)
                return True
            try:
                score = float(text.replace(",", "."))
            except ValueError:
                raise InvalidManualInputError(
                    f"Manual score must be a number, got {value!r}"
                ) from None
        else:
            score = float(value)
        if not self.score_min <= score <= self.score_max:
            raise InvalidManualInputError(
                f"Manual score must be in [{self.score_min:g}, {self.score_max:g}], "
                f"got {score:g}"
            )
        kart.pin_score(score)
        logger.info("Kart %s score pinned to %.1f", kart_id, score)
        return True

    def set_manual_color(self, kart_id: str, color: str | None) -> bool:
        """Fix a kart's display colour regardless of its score."""
        kart = self.get(kart_id)
        if color is None:
            return False
        name = color.strip().lower()
        if not name:
            kart.manual_color = None
            return True
        if name not in MANUAL_COLORS:
            raise InvalidManualInputError(
                f"Unrecognised colour {color!r}; expected one of "
                f"{', '.join(sorted(MANUAL_COLORS))}"
            )
        kart.manual_color = name
        logger.info("Kart %s colour set to %s", kart_id, name)
        return True

    def relabel(self, kart_id: str, label: str | None) -> bool:
        kart = self.get(kart_id)
        if label is None:
            return False
        kart.label = label.strip()
        return True

    def clear_manual_override(self, kart_id: str) -> None:
        """Return a kart to automatic score and colour."""
        kart = self.get(kart_id)
        kart.unpin_score()
        kart.manual_color = None
