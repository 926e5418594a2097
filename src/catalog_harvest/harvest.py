"""Run one full harvest: walk the catalog and feed every page to the sinks."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import List, Optional

from catalog_harvest.config import Settings, get_settings
from catalog_harvest.export.archive import JsonArchive
from catalog_harvest.export.summary import SummaryWriter, summary_path
from catalog_harvest.ingest.client import CatalogAPIClient
from catalog_harvest.ingest.models import Page
from catalog_harvest.ingest.paginator import PageSink, PaginationResolver, WalkResult
from catalog_harvest.ingest.retry import PageFetcher, RetryPolicy

logger = logging.getLogger(__name__)


class FanOutSink:
    """Hands each page to every sink, in order."""

    def __init__(self, sinks: List[PageSink]) -> None:
        self.sinks = sinks

    def write_page(self, page: Page) -> None:
        for sink in self.sinks:
            sink.write_page(page)


@dataclass
class HarvestReport:
    walk: WalkResult
    summary_path: Path
    archive_dir: Optional[Path]
    rows_written: int


def harvest_catalog(
    settings: Optional[Settings] = None,
    fetcher: Optional[PageFetcher] = None,
    cancel: Optional[threading.Event] = None,
    archive: bool = True,
    run_date: Optional[date] = None,
) -> HarvestReport:
    """Walk the catalog once, archiving each record and writing the run's summary CSV."""
    settings = settings or get_settings()
    output_dir = Path(settings.output_dir)
    csv_path = summary_path(output_dir, run_date)
    archive_dir = output_dir / settings.archive_dirname if archive else None

    client: Optional[CatalogAPIClient] = None
    if fetcher is None:
        client = CatalogAPIClient(
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            user_agent=settings.user_agent,
        )
        fetcher = client

    policy = RetryPolicy(
        fetcher=fetcher,
        max_retries=settings.max_retries,
        backoff_seconds=settings.backoff_seconds,
        cancel=cancel,
    )
    resolver = PaginationResolver(policy, base_url=settings.base_url, resume_param=settings.resume_param)

    try:
        with SummaryWriter(csv_path, base_url=settings.base_url) as summary:
            sinks: List[PageSink] = []
            if archive_dir is not None:
                sinks.append(JsonArchive(archive_dir))
            sinks.append(summary)
            result = resolver.walk(FanOutSink(sinks))
    finally:
        if client is not None:
            client.close()

    state = result.state
    logger.info(
        "Walk finished as %s: %d pages, %d records, %d recovery attempts",
        state.status.value,
        len(result.pages),
        result.record_count,
        state.recovery_attempts,
    )
    return HarvestReport(
        walk=result,
        summary_path=csv_path,
        archive_dir=archive_dir,
        rows_written=summary.rows_written,
    )
