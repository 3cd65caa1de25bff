"""
Catalog Fetcher - Retrieves repository catalogs over HTTP.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from common.decorators import timed
from common.exceptions import RetrievalError

logger = logging.getLogger(__name__)


class CatalogFetcher(ABC):
    """Retrieves the raw bytes behind a catalog URL."""

    @abstractmethod
    def fetch(self, url: str) -> bytes:
        """
        Fetch url.

        Raises:
            RetrievalError: If the catalog could not be retrieved.
        """
        pass


class HttpCatalogFetcher(CatalogFetcher):
    """Fetches catalogs with httpx. Failed requests are not retried."""

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.timeout = timeout
        self.transport = transport

    @timed
    def fetch(self, url: str) -> bytes:
        logger.info(f"Fetching catalog {url}")
        try:
            with httpx.Client(
                follow_redirects=True,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPStatusError as e:
            raise RetrievalError(url, f"HTTP {e.response.status_code}", cause=e) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RetrievalError(url, str(e) or type(e).__name__, cause=e) from e
