"""Serialized live polling of a timing feed.

Each cycle fetches, extracts and integrates before the next one is
scheduled, so session state is never written by two cycles at once.
The blocking HTTP request runs in a worker thread; all state mutation
happens on the event loop.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass

from kart_engine.config import MIN_POLL_INTERVAL
from kart_engine.core.session import RaceSession
from kart_engine.data_ingestion.feed_client import FeedClient, FetchResult
from kart_engine.data_ingestion.feed_extractor import extract_observations

logger = logging.getLogger(__name__)


class PollState(str, enum.Enum):
    OK = "ok"
    NO_DATA = "no_data"
    FETCH_FAILED = "fetch_failed"
    ERROR = "error"


@dataclass(frozen=True)
class PollStatus:
    """What one poll cycle did.

    Attributes:
        state: Outcome category.
        observations: Observations extracted (0 unless ``OK``).
        laps_recorded: Laps appended to stints.
        message: Human-readable status line.
    """

    state: PollState
    observations: int = 0
    laps_recorded: int = 0
    message: str = ""


def integrate(session: RaceSession, result: FetchResult) -> PollStatus:
    """Apply one fetch result to *session*.

    Failed fetches and payloads without timing rows leave the session
    untouched.
    """
    if not result.success:
        return PollStatus(
            state=PollState.FETCH_FAILED,
            message=f"Fetch failed: {result.error or 'unknown error'}",
        )
    observations = extract_observations(result.payload, result.kind)
    if not observations:
        return PollStatus(
            state=PollState.NO_DATA,
            message="No lap data found; the session may not be running.",
        )
    recorded = session.ingest(observations)
    return PollStatus(
        state=PollState.OK,
        observations=len(observations),
        laps_recorded=recorded,
        message=f"{len(observations)} timing rows, {recorded} new laps",
    )


def _failed_cycle(stage: str, exc: Exception) -> PollStatus:
    logger.exception("Poll cycle failed while %s", stage)
    state = PollState.FETCH_FAILED if stage == "fetching" else PollState.ERROR
    return PollStatus(state=state, message=f"Poll failed while {stage}: {exc!r}")


def recover_integrate(session: RaceSession, result: FetchResult) -> PollStatus:
    """:func:`integrate`, turning any error into an ``ERROR`` status.

    Scoring and subscribers run inside the session; one bad payload or a
    broken subscriber must not end a multi-hour session.
    """
    try:
        return integrate(session, result)
    except Exception as exc:
        return _failed_cycle("integrating", exc)


def poll_now(session: RaceSession, client: FeedClient, url: str) -> PollStatus:
    """Fetch and integrate once on the calling thread; never raises."""
    try:
        result = client.fetch(url)
    except Exception as exc:
        return _failed_cycle("fetching", exc)
    return recover_integrate(session, result)


class PollSchedule:
    """Paces polling for front ends that re-run on a timer.

    A poll starts only when the previous one has finished and at least
    ``interval`` seconds have passed since it started.

    Args:
        interval: Seconds between poll starts (>= 2).
    """

    def __init__(self, interval: float) -> None:
        if interval < MIN_POLL_INTERVAL:
            raise ValueError(f"interval must be >= {MIN_POLL_INTERVAL} seconds.")
        self.interval: float = interval
        self.last_started: float | None = None
        self.in_flight: bool = False
        self.last_status: PollStatus | None = None

    def due(self, now: float) -> bool:
        if self.in_flight:
            return False
        return self.last_started is None or now - self.last_started >= self.interval

    def poll(
        self,
        session: RaceSession,
        client: FeedClient,
        url: str,
        now: float | None = None,
    ) -> PollStatus | None:
        """Run one :func:`poll_now` if due; ``None`` when skipped."""
        now = time.monotonic() if now is None else now
        if not self.due(now):
            return None
        self.in_flight = True
        self.last_started = now
        try:
            status = poll_now(session, client, url)
        finally:
            self.in_flight = False
        self.last_status = status
        return status


class LivePoller:
    """Poll a timing URL on a fixed interval and feed a session.

    Args:
        session: Session receiving the observations.
        url: Timing provider URL.
        client: Feed client (one is built from the session settings
            when omitted).
        interval: Seconds between the end of one cycle and the start of
            the next; defaults to the session's poll interval.
    """

    def __init__(
        self,
        session: RaceSession,
        url: str,
        client: FeedClient | None = None,
        interval: float | None = None,
    ) -> None:
        interval = session.settings.poll_interval_seconds if interval is None else interval
        if interval < MIN_POLL_INTERVAL:
            raise ValueError(f"interval must be >= {MIN_POLL_INTERVAL} seconds.")
        self.session = session
        self.url = url
        self.client = client or FeedClient(
            timeout=session.settings.fetch_timeout_seconds
        )
        self.interval: float = interval
        self.last_status: PollStatus | None = None
        self._stop = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    async def poll_once(self) -> PollStatus:
        """One fetch-and-integrate cycle; errors become a failed status."""
        try:
            result = await asyncio.to_thread(self.client.fetch, self.url)
        except Exception as exc:
            status = _failed_cycle("fetching", exc)
        else:
            status = recover_integrate(self.session, result)
        self.last_status = status
        if status.state is PollState.OK:
            logger.info("Poll: %s", status.message)
        else:
            logger.warning("Poll: %s", status.message)
        return status

    async def run(self, max_cycles: int | None = None) -> None:
        """Poll until :meth:`stop` is called or *max_cycles* complete."""
        self._stop.clear()
        cycles = 0
        while not self._stop.is_set():
            await self.poll_once()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    def stop(self) -> None:
        """End the loop; a cycle already in flight still completes."""
        self._stop.set()
