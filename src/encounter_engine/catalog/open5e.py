"""
Open5e catalog source.

Fetches the monster listing from the Open5e API
(https://api.open5e.com/monsters/), follows pagination up to a request cap,
deduplicates the merged records by slug and caches them locally. The
encounter engine itself only ever sees the normalized ``CatalogSnapshot``.
"""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import httpx

from ..exceptions import CatalogFetchError
from ..models import CatalogSnapshot
from .normalizer import normalize_catalog

logger = logging.getLogger("encounter-engine.catalog")


# API Configuration
OPEN5E_MONSTERS_URL = "https://api.open5e.com/monsters/"
DEFAULT_TIMEOUT = 30.0
MAX_RETRIES = 3
RETRY_BACKOFF = 2.0
PAGE_LIMIT = 100
REQUEST_CAP = 10


class Open5eCatalogSource:
    """
    Catalog source for Open5e monsters.

    Features:
    - Paginates through the monster listing, capped at ``request_cap`` pages
    - Retries timeouts, rate limits and server errors with backoff
    - Caches the merged, deduplicated records for offline use
    """

    def __init__(
        self,
        cache_dir: Path | None = None,
        request_cap: int = REQUEST_CAP,
        document_filter: str | None = None,
    ):
        """
        Initialize the Open5e catalog source.

        Args:
            cache_dir: Directory for the cached listing (None disables caching)
            request_cap: Maximum number of pages to request
            document_filter: Optional document slug filter (e.g. "wotc-srd")
        """
        self.cache_dir = cache_dir
        self.request_cap = request_cap
        self.document_filter = document_filter
        self._client: httpx.AsyncClient | None = None

    @property
    def source_id(self) -> str:
        return f"open5e-{self.document_filter}" if self.document_filter else "open5e"

    async def load_snapshot(self, force_refresh: bool = False) -> CatalogSnapshot:
        """Fetch (or read from cache) and normalize the monster catalog.

        Raises:
            CatalogFetchError: If the listing cannot be fetched.
            CatalogUnusableError: If no record survives normalization.
        """
        records = await self.fetch_records(force_refresh=force_refresh)
        return normalize_catalog(records, source=self.source_id)

    async def fetch_records(self, force_refresh: bool = False) -> list[dict[str, Any]]:
        """Return the flattened, deduplicated raw monster records."""
        if not force_refresh:
            cached = self._read_cache()
            if cached is not None:
                logger.debug(f"Using cached Open5e listing ({len(cached)} records)")
                return cached

        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
            self._client = client
            try:
                records = await self._fetch_paginated()
            finally:
                self._client = None

        self._write_cache(records)
        logger.info(f"Fetched {len(records)} monsters from Open5e")
        return records

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    def _first_url(self) -> str:
        url = f"{OPEN5E_MONSTERS_URL}?limit={PAGE_LIMIT}&format=json"
        if self.document_filter:
            url += f"&document__slug={self.document_filter}"
        return url

    async def _fetch_paginated(self) -> list[dict[str, Any]]:
        """
        Fetch listing pages until exhausted or the request cap is reached.

        Returns:
            Merged records, deduplicated by slug (falling back to name)
        """
        merged: list[dict[str, Any]] = []
        seen: set[str] = set()
        url: str | None = self._first_url()
        requests = 0

        while url and requests < self.request_cap:
            requests += 1
            data = await self._fetch_single_page(url)
            results = data.get("results")
            for record in results if isinstance(results, list) else []:
                if not isinstance(record, dict):
                    continue
                key = record.get("slug") or record.get("name")
                if not key or key in seen:
                    continue
                seen.add(key)
                merged.append(record)

            next_url = data.get("next")
            url = next_url if isinstance(next_url, str) else None
            if url:
                logger.debug(f"Fetching next page: {url}")

        if url:
            logger.warning(f"Stopped after {requests} requests; catalog may be incomplete")

        return merged

    async def _fetch_single_page(self, url: str) -> dict[str, Any]:
        """
        Fetch a single page from the API with retry logic.

        Raises:
            CatalogFetchError: If the fetch fails after retries or on a client error
        """
        last_error: Exception | None = None

        for attempt in range(MAX_RETRIES):
            try:
                response = await self._client.get(url)

                if response.status_code == 429:
                    wait = RETRY_BACKOFF ** attempt
                    logger.warning(f"Rate limited, waiting {wait}s")
                    last_error = CatalogFetchError("Rate limited by Open5e")
                    await asyncio.sleep(wait)
                    continue

                response.raise_for_status()
                return self._parse_page(response, url)

            except httpx.TimeoutException as e:
                logger.warning(f"Timeout fetching {url}, attempt {attempt + 1}")
                last_error = e
                await asyncio.sleep(RETRY_BACKOFF ** attempt)

            except httpx.HTTPStatusError as e:
                if e.response.status_code >= 500:
                    logger.warning(f"Server error {e.response.status_code}, attempt {attempt + 1}")
                    last_error = e
                    await asyncio.sleep(RETRY_BACKOFF ** attempt)
                else:
                    raise CatalogFetchError(
                        f"Open5e request failed (HTTP {e.response.status_code}).",
                        details={"url": url},
                    ) from e

            except httpx.TransportError as e:
                logger.warning(f"Transport error fetching {url}: {e}")
                last_error = e
                await asyncio.sleep(RETRY_BACKOFF ** attempt)

        raise CatalogFetchError(
            f"Failed to fetch {url} after {MAX_RETRIES} retries: {last_error}",
            details={"url": url},
        )

    @staticmethod
    def _parse_page(response: httpx.Response, url: str) -> dict[str, Any]:
        """Decode a listing page, rejecting bodies that are not a JSON object."""
        try:
            data = response.json()
        except ValueError as e:
            # e.g. an HTML error page from a proxy
            raise CatalogFetchError(
                "Open5e returned a response that is not JSON.",
                details={"url": url},
            ) from e

        if not isinstance(data, dict):
            raise CatalogFetchError(
                "Open5e returned an unexpected listing format.",
                details={"url": url, "payload_type": type(data).__name__},
            )
        return data

    # =========================================================================
    # Cache
    # =========================================================================

    def _get_cache_path(self) -> Path | None:
        if self.cache_dir is None:
            return None
        name = f"monsters_{self.document_filter}" if self.document_filter else "monsters"
        return self.cache_dir / f"{name}.json"

    def _read_cache(self) -> list[dict[str, Any]] | None:
        cache_file = self._get_cache_path()
        if cache_file is None or not cache_file.exists():
            return None
        try:
            cached = json.loads(cache_file.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Corrupt cache file: {cache_file} ({e}), refetching")
            try:
                cache_file.unlink(missing_ok=True)
            except OSError as unlink_error:
                logger.warning(f"Could not remove cache file {cache_file}: {unlink_error}")
            return None

        if isinstance(cached, dict) and isinstance(cached.get("results"), list):
            return cached["results"]
        if isinstance(cached, list):
            return cached
        return None

    def _write_cache(self, records: list[dict[str, Any]]) -> None:
        cache_file = self._get_cache_path()
        if cache_file is None:
            return
        cache_data = {
            "results": records,
            "count": len(records),
            "cached_at": datetime.now().isoformat(),
        }
        try:
            cache_file.parent.mkdir(parents=True, exist_ok=True)
            cache_file.write_text(json.dumps(cache_data, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not write cache file {cache_file}: {e}")
