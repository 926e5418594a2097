from typing import Dict, Iterable, List, Optional, Union

from catalog_harvest.ingest.models import Entry, Link, Page, ValueSetResource

BASE_URL = "https://catalog.example.org/ValueSet/"


def make_page(
    ids: Iterable[str],
    total: int = 0,
    next_url: Optional[str] = None,
    self_url: str = BASE_URL,
) -> Page:
    links = [Link(relation="self", url=self_url)]
    if next_url is not None:
        links.append(Link(relation="next", url=next_url))
    entries = [
        Entry(
            full_url=f"{BASE_URL}{value_set_id}",
            resource=ValueSetResource(
                id=value_set_id,
                name=f"VS_{value_set_id}",
                title=f"Value set {value_set_id}",
                publisher="CDC",
                date="2020-01-01",
            ),
        )
        for value_set_id in ids
    ]
    return Page(total=total, link=links, entry=entries)

class ScriptedFetcher:
    """Returns queued responses per URL; an exhausted queue keeps returning empty pages."""

    def __init__(self, script: Dict[str, List[Union[Page, Exception]]]) -> None:
        self.script = {url: list(responses) for url, responses in script.items()}
        self.calls: List[str] = []

    def fetch_page(self, url: str) -> Page:
        self.calls.append(url)
        queue = self.script.get(url)
        if not queue:
            return Page()
        response = queue.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

class RecordingSink:
    def __init__(self) -> None:
        self.pages: List[Page] = []

    def write_page(self, page: Page) -> None:
        self.pages.append(page)

