"""HTTP retrieval of live-timing pages.

The client never raises to its caller: every network or provider error
is turned into ``FetchResult(success=False)`` so one failed poll cannot
stop a multi-hour session.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import requests

from kart_engine.errors import FeedFetchError

logger = logging.getLogger(__name__)

USER_AGENT: str = "Mozilla/5.0 (compatible; kart-engine pit board)"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one fetch.

    Attributes:
        success: Whether a payload was retrieved.
        kind: ``"html"`` or ``"json"`` when successful.
        payload: Page text, or the decoded JSON document.
        error: Failure description when unsuccessful.
    """

    success: bool
    kind: str | None = None
    payload: Any = None
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> FetchResult:
        return cls(success=False, error=error)


class FeedClient:
    """Fetches a timing provider page with :mod:`requests`.

    Args:
        timeout: Per-request timeout in seconds.
        session: Optional pre-configured ``requests.Session``.
    """

    def __init__(
        self,
        timeout: float = 15.0,
        session: requests.Session | None = None,
    ) -> None:
        if timeout <= 0.0:
            raise ValueError("timeout must be > 0.")
        self.timeout: float = timeout
        self.session: requests.Session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    def _get(self, url: str) -> requests.Response:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FeedFetchError(f"fetch failed for {url}: {exc}") from exc
        return response

    def fetch(self, url: str) -> FetchResult:
        """Retrieve *url* and classify the payload as HTML or JSON."""
        if not url or not url.strip():
            return FetchResult.failed("missing url")
        try:
            response = self._get(url.strip())
        except FeedFetchError as exc:
            logger.warning("%s", exc)
            return FetchResult.failed(str(exc))

        content_type = response.headers.get("Content-Type", "").lower()
        text = response.text
        if "json" in content_type or text.lstrip()[:1] in ("{", "["):
            try:
                return FetchResult(success=True, kind="json", payload=json.loads(text))
            except (ValueError, RecursionError):
                logger.debug("Payload from %s looked like JSON but did not parse", url)
        return FetchResult(success=True, kind="html", payload=text)
