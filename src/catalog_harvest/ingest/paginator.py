"""Walks the catalog's ``next`` link chain and repairs it when the server loses its place.

The server's ``next`` links sometimes point at stale cursors or come back empty
well before the declared total has been reached. When that happens the walk
reaches back to the id of the last record it saw and asks for the listing to
resume from there, once. Whatever was collected before a failure is kept.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol
from urllib.parse import quote

from catalog_harvest.ingest.client import CatalogHarvestError
from catalog_harvest.ingest.models import Page
from catalog_harvest.ingest.retry import HarvestCancelled, RetryPolicy

logger = logging.getLogger(__name__)


class PageSink(Protocol):
    def write_page(self, page: Page) -> None:
        ...


class WalkStatus(str, Enum):
    INIT = "init"
    WALKING = "walking"
    RECOVERING = "recovering"
    DONE = "done"
    FAILED = "failed"


@dataclass
class WalkState:
    """Progress of one walk; only the resolver mutates it."""

    status: WalkStatus = WalkStatus.INIT
    count: int = 0
    total: Optional[int] = None
    current: Optional[Page] = None
    anchor: Optional[str] = None
    recovery_attempts: int = 0
    last_reference: Optional[str] = None
    error: Optional[Exception] = None

    def describe(self) -> str:
        return f"Processed {self.count} of {self.total or 0} records so far..."


@dataclass
class WalkResult:
    state: WalkState
    pages: List[Page] = field(default_factory=list)

    @property
    def status(self) -> WalkStatus:
        return self.state.status

    @property
    def succeeded(self) -> bool:
        return self.state.status is WalkStatus.DONE

    @property
    def record_count(self) -> int:
        return sum(len(page.entry) for page in self.pages)


def build_resume_url(base_url: str, resume_param: str, anchor: str) -> str:
    """Listing URL asking the server to continue after ``anchor``.

    This mirrors what the server's own cursors look like; nothing guarantees
    the server honours it.
    """
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{resume_param}={quote(anchor, safe='')}"


class PaginationResolver:
    """Drives INIT -> WALKING -> (RECOVERING) -> DONE | FAILED over the catalog."""

    def __init__(self, policy: RetryPolicy, base_url: str, resume_param: str = "_getpages") -> None:
        self.policy = policy
        self.base_url = base_url
        self.resume_param = resume_param

    def walk(self, sink: Optional[PageSink] = None) -> WalkResult:
        state = WalkState()
        result = WalkResult(state=state)
        previous_progress = self.policy.progress
        self.policy.progress = state.describe

        try:
            self._run(state, result, sink)
        except HarvestCancelled as exc:
            logger.warning("Walk cancelled after %d of %s records", state.count, state.total)
            state.status = WalkStatus.FAILED
            state.error = exc
        finally:
            self.policy.progress = previous_progress
        return result

    def _run(self, state: WalkState, result: WalkResult, sink: Optional[PageSink]) -> None:
        state.last_reference = self.base_url
        try:
            page = self.policy.fetch(self.base_url)
        except HarvestCancelled:
            raise
        except CatalogHarvestError as exc:
            logger.error("Error fetching initial response from %s: %s", self.base_url, exc)
            state.status = WalkStatus.FAILED
            state.error = exc
            return

        self._accept(page, state, result, sink)
        state.total = page.total
        state.status = WalkStatus.WALKING

        while state.status is WalkStatus.WALKING:
            current = state.current
            next_url = current.link_for("next")
            state.count += len(current.entry)
            state.anchor = current.last_record_id
            state.last_reference = next_url

            try:
                page = self.policy.fetch(next_url)
            except HarvestCancelled:
                raise
            except CatalogHarvestError as exc:
                logger.warning("Unable to fetch canonical next link %r: %s", next_url, exc)
                state.status = WalkStatus.RECOVERING
                state.error = exc
                self._recover(state, result, sink)
                continue

            self._accept(page, state, result, sink)
            if state.count >= state.total or page.is_empty:
                state.status = WalkStatus.DONE

    def _recover(self, state: WalkState, result: WalkResult, sink: Optional[PageSink]) -> None:
        if state.count >= state.total:
            logger.info("All %d declared records seen; walk complete", state.total)
            state.status = WalkStatus.DONE
            state.error = None
            return

        logger.warning("Only got %d of %d entries", state.count, state.total)
        if not state.anchor:
            logger.error("No record id to resume from; stopping walk")
            state.status = WalkStatus.FAILED
            return

        resume_url = build_resume_url(self.base_url, self.resume_param, state.anchor)
        logger.warning("Retry fetching %s instead", resume_url)
        state.recovery_attempts += 1
        state.last_reference = resume_url
        try:
            page = self.policy.fetch(resume_url)
        except HarvestCancelled:
            raise
        except CatalogHarvestError as exc:
            logger.error("Resume from %s failed: %s; stopping walk", resume_url, exc)
            state.status = WalkStatus.FAILED
            state.error = exc
            return

        state.error = None
        self._accept(page, state, result, sink)
        state.status = WalkStatus.WALKING

    @staticmethod
    def _accept(page: Page, state: WalkState, result: WalkResult, sink: Optional[PageSink]) -> None:
        result.pages.append(page)
        state.current = page
        if sink is not None:
            sink.write_page(page)
