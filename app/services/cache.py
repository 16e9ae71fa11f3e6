"""
Content Cache

Time-bounded in-memory cache of the raw catalog and of the derived pack
summaries.

Strategy:
1. Catalog cached and younger than the TTL -> serve it, no network
2. Otherwise -> one fetch attempt
3. Fetch failed -> serve the built-in sample catalog, cached as if live

Summaries are derived from one catalog read and then kept until an
explicit invalidate(), even after the catalog itself goes stale.

Overlapping cold calls may each hit the network; there is no in-flight
deduplication.
"""

import enum
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from app.data.content import get_sample_catalog
from app.errors import NetworkFailure
from app.models import PackSummary
from app.services.transformer import DEFAULT_LOCALE, build_summary

logger = logging.getLogger(__name__)

DEFAULT_TTL = 5 * 60  # seconds

Catalog = List[Dict[str, Any]]


class CatalogSource(str, enum.Enum):
    """Where a catalog read was served from."""
    FRESH = "fresh"       # fetched from the network just now
    CACHED = "cached"     # served from memory inside the TTL window
    SAMPLE = "sample"     # fetch failed, built-in sample data


@dataclass(frozen=True)
class CatalogResult:
    source: CatalogSource
    catalog: Catalog


class ContentCache:
    """
    Catalog + summaries cache.

    Args:
        fetcher: async callable returning the raw catalog, raising
            NetworkFailure on failure
        owned: callable returning owned product ids, consulted when
            summaries are built
        ttl: catalog freshness window in seconds
        clock: monotonic seconds source
    """

    def __init__(
        self,
        fetcher: Callable[[], Awaitable[Catalog]],
        owned: Callable[[], Iterable[str]] = list,
        free_ids: Iterable[Any] = (5,),
        ttl: float = DEFAULT_TTL,
        locale: str = DEFAULT_LOCALE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetcher = fetcher
        self.owned = owned
        self.free_ids = list(free_ids)
        self.ttl = ttl
        self.locale = locale
        self.clock = clock

        self.catalog: Optional[Catalog] = None
        self.summaries: Optional[List[PackSummary]] = None
        self.last_fetch: Optional[float] = None
        self.last_source: Optional[CatalogSource] = None

    def invalidate(self) -> None:
        """Drop the catalog, the summaries and the fetch timestamp."""
        self.catalog = None
        self.summaries = None
        self.last_fetch = None
        logger.debug("[Cache] Invalidated")

    def is_fresh(self) -> bool:
        if self.catalog is None or self.last_fetch is None:
            return False
        return (self.clock() - self.last_fetch) < self.ttl

    async def fetch(self) -> CatalogResult:
        """Catalog read with its source tag."""
        if self.is_fresh():
            result = CatalogResult(CatalogSource.CACHED, self.catalog)
        else:
            now = self.clock()
            try:
                catalog = await self.fetcher()
                result = CatalogResult(CatalogSource.FRESH, catalog)
            except NetworkFailure as e:
                logger.warning(f"[Cache] Catalog fetch failed, serving sample data: {e}")
                result = CatalogResult(CatalogSource.SAMPLE, get_sample_catalog())

            self.catalog = result.catalog
            self.last_fetch = now

        self.last_source = result.source
        return result

    async def get_catalog(self) -> Catalog:
        """The raw catalog. Never raises for network problems."""
        return (await self.fetch()).catalog

    async def get_summaries(self) -> List[PackSummary]:
        """Pack summaries for the menu, computed once per invalidation."""
        if self.summaries is not None:
            return self.summaries

        catalog = await self.get_catalog()
        owned = set(self.owned())
        self.summaries = [
            build_summary(entry, owned, self.free_ids, self.locale)
            for entry in catalog
        ]
        logger.debug(f"[Cache] Built {len(self.summaries)} summaries")
        return self.summaries
