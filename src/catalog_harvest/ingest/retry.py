"""Bounded linear backoff around single page fetches."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from catalog_harvest.ingest.client import CatalogHarvestError, CatalogTransportError
from catalog_harvest.ingest.models import Page

logger = logging.getLogger(__name__)

MAX_RETRIES = 10
BACKOFF_SECONDS = 3.0


class PageFetcher(Protocol):
    def fetch_page(self, url: str) -> Page:
        ...


class InvalidReferenceError(ValueError, CatalogHarvestError):
    """Raised when asked to fetch a blank reference."""


class RetryExhaustedError(CatalogHarvestError):
    """Raised when a reference keeps yielding empty pages or transport faults."""

    def __init__(self, url: str, attempts: int) -> None:
        super().__init__(f"Max retries exceeded after {attempts} attempts. Cannot retrieve {url}")
        self.url = url
        self.attempts = attempts


class HarvestCancelled(CatalogHarvestError):
    """Raised when the cancellation event is set while fetching or sleeping."""


@dataclass
class RetryPolicy:
    """Returns non-empty pages, sleeping ``backoff_seconds * attempt`` between tries.

    An empty page is treated as transient whatever the cause (throttling, end of
    data, glitch); the resolver decides what an exhausted budget means.
    """

    fetcher: PageFetcher
    max_retries: int = MAX_RETRIES
    backoff_seconds: float = BACKOFF_SECONDS
    cancel: Optional[threading.Event] = None
    sleep: Callable[[float], None] = time.sleep
    progress: Callable[[], str] = lambda: ""

    def fetch(self, url: str) -> Page:
        if not url or not url.strip():
            raise InvalidReferenceError("cannot fetch an empty URL")

        retry_count = 0
        last_error: Optional[CatalogTransportError] = None
        while True:
            self._check_cancelled()
            status = self.progress()
            if status:
                logger.info(status)
            logger.info("Fetching %s", url)
            try:
                page = self.fetcher.fetch_page(url)
            except CatalogTransportError as exc:
                logger.warning("Attempt %d failed for %s: %s", retry_count + 1, url, exc)
                last_error = exc
            else:
                if not page.is_empty:
                    return page
                last_error = None
                logger.warning("Empty page returned for %s", url)

            retry_count += 1
            if retry_count > self.max_retries:
                raise RetryExhaustedError(url, retry_count) from last_error
            self._backoff(self.backoff_seconds * retry_count)

    def _backoff(self, duration: float) -> None:
        logger.info("Sleeping for %s seconds", duration)
        if self.cancel is not None:
            if self.cancel.wait(duration):
                raise HarvestCancelled("harvest cancelled while backing off")
            return
        self.sleep(duration)

    def _check_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise HarvestCancelled("harvest cancelled before fetch")
