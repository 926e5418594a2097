"""Archive each catalog record as a standalone JSON document."""
from __future__ import annotations

import json
import logging
from pathlib import Path

from catalog_harvest.ingest.models import Entry, Page
from catalog_harvest.processing.text import safe_filename

logger = logging.getLogger(__name__)


class JsonArchive:
    """Writes one ``<name>.json`` per entry under ``directory``."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.documents_written = 0

    def path_for(self, entry: Entry) -> Path:
        resource = entry.resource
        return self.directory / f"{safe_filename(resource.name, fallback=resource.id or 'record')}.json"

    def write_entry(self, entry: Entry) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(entry)
        with path.open("w", encoding="utf-8") as f:
            json.dump(entry.to_payload(), f, indent=2, ensure_ascii=False)
        self.documents_written += 1
        return path

    def write_page(self, page: Page) -> None:
        for entry in page.entry:
            self.write_entry(entry)
        logger.debug("Archived %d entries to %s", len(page.entry), self.directory)


def read_archived_entry(path: Path) -> Entry:
    with Path(path).open("r", encoding="utf-8") as f:
        return Entry.model_validate(json.load(f))
