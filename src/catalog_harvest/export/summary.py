"""Per-run CSV summary of harvested records and comparison between runs."""
from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, List, Optional, Sequence

import pandas as pd

from catalog_harvest.ingest.models import Page, ValueSetResource
from catalog_harvest.processing.text import collapse_line_breaks

logger = logging.getLogger(__name__)

SUMMARY_HEADER = ["selfUrl", "id", "name", "title", "publisher", "date"]
TRACKED_COLUMNS = ["name", "title", "publisher", "date"]


def summary_path(output_dir: Path, run_date: Optional[date] = None) -> Path:
    run_date = run_date or date.today()
    return Path(output_dir) / f"results-{run_date.isoformat()}.csv"


def summary_row(base_url: str, record: ValueSetResource) -> List[str]:
    return [
        f"{base_url}{record.id}",
        record.id,
        record.name,
        record.title,
        collapse_line_breaks(record.publisher),
        record.date,
    ]


class SummaryWriter:
    """Streams summary rows to a CSV file, one row per record."""

    def __init__(self, path: Path, base_url: str) -> None:
        self.path = Path(path)
        self.base_url = base_url
        self.rows_written = 0
        self._file = None
        self._writer = None

    def __enter__(self) -> "SummaryWriter":
        self.open()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._file)
        self._writer.writerow(SUMMARY_HEADER)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._writer = None

    def write_page(self, page: Page) -> None:
        if self._writer is None:
            raise RuntimeError("SummaryWriter is not open")
        for record in page.records:
            self._writer.writerow(summary_row(self.base_url, record))
            self.rows_written += 1
        self._file.flush()


def load_summary(path: Path) -> pd.DataFrame:
    """Load a summary CSV with every column kept as text."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    missing = [column for column in SUMMARY_HEADER if column not in df.columns]
    if missing:
        raise ValueError(f"{path} is not a catalog summary; missing columns {missing}")
    return df


@dataclass
class SummaryDiff:
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)


def compare_summaries(
    old: pd.DataFrame,
    new: pd.DataFrame,
    columns: Sequence[str] = TRACKED_COLUMNS,
) -> SummaryDiff:
    """Ids added, removed, or with changed tracked columns between two runs."""
    old = old.drop_duplicates(subset="id", keep="last").set_index("id")
    new = new.drop_duplicates(subset="id", keep="last").set_index("id")

    added = sorted(set(new.index) - set(old.index))
    removed = sorted(set(old.index) - set(new.index))

    common = old.index.intersection(new.index)
    columns = list(columns)
    before = old.loc[common, columns]
    after = new.loc[common, columns]
    changed_mask = (before != after).any(axis=1)
    changed = sorted(changed_mask[changed_mask].index.tolist())

    return SummaryDiff(added=added, removed=removed, changed=changed)
