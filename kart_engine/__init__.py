"""Go-kart endurance pit board: kart scoring and pit-row rotation."""

from __future__ import annotations

import logging

__version__ = "0.3.0"

_LOG_FORMAT: str = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure root logging for command-line entry points."""
    logging.basicConfig(level=level, format=_LOG_FORMAT, datefmt="%H:%M:%S")
    return logging.getLogger("kart_engine")


__all__ = ["__version__", "setup_logging"]
