"""Client for fetching single pages of the remote value set catalog."""
from __future__ import annotations

import json
import logging
from typing import Any, Optional, Union
from urllib.parse import urljoin

import requests
from pydantic import ValidationError

from catalog_harvest.config import get_settings
from catalog_harvest.ingest.models import Page

logger = logging.getLogger(__name__)


class CatalogHarvestError(RuntimeError):
    """Base class for harvest failures."""


class CatalogTransportError(CatalogHarvestError):
    """Raised when a request cannot be completed or the server answers with an error status."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url


class CatalogAPIClient:
    """Thin wrapper around the catalog endpoint that decodes bundles into pages."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = base_url or settings.base_url
        self.timeout = timeout or settings.request_timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "User-Agent": user_agent or settings.user_agent,
                "Accept": "application/fhir+json, application/json",
            }
        )

    def __enter__(self) -> "CatalogAPIClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def resolve(self, target: str) -> str:
        """Turn a link target into a fetchable URL; relative targets hang off the base URL."""
        return urljoin(self.base_url, target.strip())

    def fetch_page(self, url: str) -> Page:
        """Fetch one page. Undecodable bodies yield an empty page; transport faults raise."""
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise CatalogTransportError(url, f"Catalog request failed: {exc}") from exc

        page = self.decode_page(response.content, url)
        for link in page.link:
            link.url = self.resolve(link.url) if link.url.strip() else ""
        return page

    @staticmethod
    def decode_page(body: Union[str, bytes], url: str = "") -> Page:
        """Decode a bundle; bytes are handed to ``json.loads`` so UTF-8 is detected from the body."""
        if not body or not body.strip():
            logger.warning("Empty body received from %s", url)
            return Page()
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Body from %s is not JSON (%s); treating as empty page", url, exc)
            return Page()
        if not isinstance(payload, dict):
            logger.warning("Body from %s is not a bundle object; treating as empty page", url)
            return Page()
        try:
            return Page.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Bundle from %s could not be decoded (%s); treating as empty page", url, exc)
            return Page()
