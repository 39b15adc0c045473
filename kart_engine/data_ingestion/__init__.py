"""Timing feed retrieval, extraction and polling."""

from kart_engine.data_ingestion.feed_client import FeedClient, FetchResult
from kart_engine.data_ingestion.feed_extractor import (
    extract_from_json,
    extract_from_markup,
    extract_observations,
    parse_lap_time,
)
from kart_engine.data_ingestion.poller import (
    LivePoller,
    PollSchedule,
    PollState,
    PollStatus,
    integrate,
    poll_now,
    recover_integrate,
)

__all__ = [
    "FeedClient",
    "FetchResult",
    "LivePoller",
    "PollSchedule",
    "PollState",
    "PollStatus",
    "extract_from_json",
    "extract_from_markup",
    "extract_observations",
    "integrate",
    "parse_lap_time",
    "poll_now",
    "recover_integrate",
]
