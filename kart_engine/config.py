"""Configuration loader for the kart pit board."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DATA_DIR: Path = Path(__file__).resolve().parent.parent / "data"
SETTINGS_PATH: Path = DATA_DIR / "settings.yaml"

MIN_POLL_INTERVAL: float = 2.0

# YAML section -> {yaml key: Settings field}
_SECTIONS: dict[str, dict[str, str]] = {
    "pit_lane": {
        "rows": "row_count",
        "karts_per_row": "karts_per_row",
    },
    "polling": {
        "interval_seconds": "poll_interval_seconds",
        "timeout_seconds": "fetch_timeout_seconds",
        "skip_repeated_laps": "skip_repeated_laps",
    },
    "scoring": {
        "settling_laps": "settling_laps",
        "outlier_factor": "outlier_factor",
        "inconsistency_factor": "inconsistency_factor",
        "max_laps_retained": "max_laps_retained",
        "baseline_stints": "baseline_stints",
        "score_min": "score_min",
        "score_max": "score_max",
    },
}


@dataclass(frozen=True)
class Settings:
    """Pit lane layout, polling and scoring parameters.

    Attributes:
        row_count: Number of independent pit rows.
        karts_per_row: Placeholder karts created per row on setup.
        poll_interval_seconds: Delay between feed polls (>= 2 s).
        fetch_timeout_seconds: HTTP timeout for one feed fetch.
        settling_laps: Laps dropped from the start of every stint.
        outlier_factor: Multiplier on the adaptive lap outlier threshold.
        inconsistency_factor: Multiplier on the stint-spread threshold
            above which a team is excluded from scoring.
        max_laps_retained: Lap history cap per kart and per stint.
        baseline_stints: Most recent stints per team used for the
            condition baseline.
        score_min: Lower end of the display score range.
        score_max: Upper end of the display score range.
        skip_repeated_laps: Ignore an observation whose lap time equals
            the team's previous last lap (same lap seen on a later poll).
    """

    row_count: int = 3
    karts_per_row: int = 4
    poll_interval_seconds: float = 5.0
    fetch_timeout_seconds: float = 15.0
    settling_laps: int = 4
    outlier_factor: float = 2.6
    inconsistency_factor: float = 2.5
    max_laps_retained: int = 60
    baseline_stints: int = 3
    score_min: float = 0.0
    score_max: float = 1000.0
    skip_repeated_laps: bool = True

    def __post_init__(self) -> None:
        """Validate settings."""
        if self.row_count < 1:
            raise ValueError("row_count must be >= 1.")
        if self.karts_per_row < 0:
            raise ValueError("karts_per_row must be >= 0.")
        if self.poll_interval_seconds < MIN_POLL_INTERVAL:
            raise ValueError(
                f"poll_interval_seconds must be >= {MIN_POLL_INTERVAL}."
            )
        if self.fetch_timeout_seconds <= 0.0:
            raise ValueError("fetch_timeout_seconds must be > 0.")
        if self.settling_laps < 0:
            raise ValueError("settling_laps must be >= 0.")
        if self.outlier_factor <= 0.0:
            raise ValueError("outlier_factor must be > 0.")
        if self.inconsistency_factor <= 0.0:
            raise ValueError("inconsistency_factor must be > 0.")
        if self.max_laps_retained < 1:
            raise ValueError("max_laps_retained must be >= 1.")
        if self.baseline_stints < 1:
            raise ValueError("baseline_stints must be >= 1.")
        if self.score_max <= self.score_min:
            raise ValueError("score_max must be greater than score_min.")

    @property
    def score_midpoint(self) -> float:
        return (self.score_min + self.score_max) / 2.0


def _check_type(section: str, key: str, value: Any, expected: type) -> Any:
    if expected is bool:
        if not isinstance(value, bool):
            raise ValueError(f"'{section}.{key}' must be a boolean, got {value!r}")
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(
            f"'{section}.{key}' must be numeric, got {type(value).__name__}"
        )
    if expected is int:
        if float(value) != int(value):
            raise ValueError(f"'{section}.{key}' must be an integer, got {value}")
        return int(value)
    return float(value)


def settings_from_mapping(data: dict[str, Any] | None) -> Settings:
    """Build :class:`Settings` from a parsed YAML mapping.

    Raises:
        ValueError: On unknown sections/keys, wrong types, or values the
            :class:`Settings` validation rejects.
    """
    if not data:
        return Settings()
    if not isinstance(data, dict):
        raise ValueError("Settings document must be a mapping of sections.")

    defaults = Settings()
    kwargs: dict[str, Any] = {}

    for section, entries in data.items():
        if section not in _SECTIONS:
            raise ValueError(f"Unknown settings section '{section}'")
        if entries is None:
            continue
        if not isinstance(entries, dict):
            raise ValueError(f"Settings section '{section}' must be a mapping")
        for key, value in entries.items():
            field_name = _SECTIONS[section].get(key)
            if field_name is None:
                raise ValueError(f"Unknown settings key '{section}.{key}'")
            expected = type(getattr(defaults, field_name))
            kwargs[field_name] = _check_type(section, key, value, expected)

    return Settings(**kwargs)


def load_settings(path: Path | None = None) -> Settings:
    """Load pit board settings from a YAML file.

    Args:
        path: Optional settings file. When omitted the bundled
            ``data/settings.yaml`` is used if present, otherwise the
            built-in defaults.

    Returns:
        Validated :class:`Settings`.

    Raises:
        FileNotFoundError: If an explicit *path* does not exist.
        ValueError: If the document is malformed or out of range.
    """
    if path is None:
        if not SETTINGS_PATH.exists():
            return Settings()
        path = SETTINGS_PATH
    elif not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    return settings_from_mapping(data)
