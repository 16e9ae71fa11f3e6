"""
Content Service

Single entry point for pack lookups, with graceful degradation:
1. Find the pack in the (cached) catalog and transform it
2. Not found -> pack saved to durable storage after a purchase
3. Not saved -> sample pack for known sample slugs
4. Still nothing -> None

Packs handed to players go through open_pack(), which also requires the
pack to be free or purchased.
"""

import logging
from typing import List, Optional

from app.data.content import get_sample_entry
from app.errors import NotFoundFailure, NotOwnedFailure
from app.models import ContentPack, PackSummary
from app.services.cache import ContentCache
from app.services.storage import ContentStorage
from app.services.transformer import DEFAULT_LOCALE, require_pack_by_slug, transform

logger = logging.getLogger(__name__)


class ContentService:
    """Pack list, single-pack lookup and the ownership gate."""

    def __init__(
        self,
        cache: ContentCache,
        storage: ContentStorage,
        locale: str = DEFAULT_LOCALE
    ):
        self.cache = cache
        self.storage = storage
        self.locale = locale

    async def list_packs(self) -> List[PackSummary]:
        return await self.cache.get_summaries()

    async def get_pack(self, slug: str) -> Optional[ContentPack]:
        """Transformed pack for a slug, falling back to saved then sample content."""
        catalog = await self.cache.get_catalog()
        try:
            entry = require_pack_by_slug(catalog, slug, self.locale)
            pack = transform(entry, self.locale)
            if pack is None:
                raise NotFoundFailure(f"Content pack has no quiz: {slug}")
            return pack
        except NotFoundFailure as e:
            logger.warning(f"[Content] {e}, trying saved and sample content")

        pack = self.get_offline_pack(slug)
        if pack is not None:
            logger.info(f"[Content] Serving saved pack {slug!r}")
            return pack
        return self.get_sample_pack(slug)

    async def open_pack(self, slug: str) -> ContentPack:
        """
        Pack for playing.

        Raises:
            NotFoundFailure: no catalog, saved or sample pack for the slug
            NotOwnedFailure: the pack is neither free nor purchased
        """
        pack = await self.get_pack(slug)
        if pack is None:
            raise NotFoundFailure(f"Content pack not found: {slug}")
        if not self.is_unlocked(pack):
            raise NotOwnedFailure(f"Content pack not purchased: {slug}")
        return pack

    def is_unlocked(self, pack: ContentPack) -> bool:
        return pack.id in self.cache.free_ids or self.storage.is_purchased(pack.slug)

    def get_sample_pack(self, slug: str) -> Optional[ContentPack]:
        entry = get_sample_entry(slug)
        if entry is None:
            return None
        return transform(entry, self.locale)

    def get_offline_pack(self, slug: str) -> Optional[ContentPack]:
        """A pack previously saved to durable storage."""
        data = self.storage.load_content_pack(slug)
        if data is None:
            return None
        try:
            return ContentPack.model_validate(data)
        except ValueError as e:
            logger.warning(f"[Content] Stored pack {slug!r} is invalid: {e}")
            return None
