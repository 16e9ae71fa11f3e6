"""
Purchase Service

Purchase initiation is a mock (no real payment processing); what matters
here is how the service reacts to its result:

1. Initiate -> {"success", "transactionId", "productId"}
2. Verify with the content server
3. Verified -> record ownership, save the pack for offline use,
   drop cached summaries so the menu shows the new ownership
4. Not verified -> VerificationFailure, nothing recorded
5. Verified but not recordable -> StorageFailure, cache left alone
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from app.config import get_settings
from app.data.content import PURCHASE_MENU
from app.errors import StorageFailure, VerificationFailure
from app.models import PurchaseResult, VerificationResult
from app.services.api import ContentApiClient
from app.services.cache import ContentCache
from app.services.content import ContentService
from app.services.storage import ContentStorage

logger = logging.getLogger(__name__)

NATIVE = "native"
WEB = "web"


class PurchaseService:
    """Initiates, verifies and records purchases."""

    def __init__(
        self,
        api: ContentApiClient,
        storage: ContentStorage,
        content: ContentService,
        cache: Optional[ContentCache] = None,
        mode: str = WEB,
        web_delay: float = 1.5,
        native_delay: float = 2.0,
        restore_ids: Optional[List[str]] = None
    ):
        self.api = api
        self.storage = storage
        self.content = content
        self.cache = cache
        self.mode = mode
        self.web_delay = web_delay
        self.native_delay = native_delay
        self.restore_ids = list(restore_ids or [])

    # =========================================================================
    # Initiation (mock store)
    # =========================================================================

    async def purchase_content_pack(self, slug: str) -> PurchaseResult:
        """Run the platform's purchase flow for one product."""
        if self.mode == NATIVE:
            return await self._native_purchase(slug)
        return await self._web_purchase(slug)

    async def _native_purchase(self, slug: str) -> PurchaseResult:
        await asyncio.sleep(self.native_delay)
        logger.info(f"[Purchase] Mock purchase completed for {slug}")
        return PurchaseResult(
            success=True,
            transactionId=f"mock_{int(time.time() * 1000)}",
            productId=slug
        )

    async def _web_purchase(self, slug: str) -> PurchaseResult:
        await asyncio.sleep(self.web_delay)
        logger.info(f"[Purchase] Mock web purchase completed for {slug}")
        return PurchaseResult(
            success=True,
            transactionId=f"web_mock_{int(time.time() * 1000)}",
            productId=slug
        )

    # =========================================================================
    # Verification
    # =========================================================================

    async def verify_purchase(self, purchase: PurchaseResult) -> VerificationResult:
        """
        Verify a purchase and record it when the server agrees.

        Raises:
            VerificationFailure: the server could not be asked, refused
                the request or sent a reply that does not parse; ownership
                is not recorded.
            StorageFailure: the server agreed but neither storage backend
                took the purchase record.
        """
        payload = purchase.model_dump()
        try:
            reply = VerificationResult.model_validate(await self.api.verify_purchase(payload))
        except ValidationError as e:
            logger.error(f"[Purchase] Unreadable verification reply for {purchase.productId}: {e}")
            raise VerificationFailure(f"Malformed verification reply for {purchase.productId}") from e
        except VerificationFailure as e:
            logger.error(f"[Purchase] Verification failed for {purchase.productId}: {e}")
            raise

        if not reply.success:
            logger.warning(f"[Purchase] Server rejected {purchase.productId}")
            return reply

        product_id = purchase.productId
        if not self.storage.add_purchase(product_id):
            logger.error(f"[Purchase] Could not record verified purchase {product_id}")
            raise StorageFailure(f"Purchase record not saved: {product_id}")

        pack = await self.content.get_pack(product_id)
        if pack is not None:
            self.storage.save_content_pack(product_id, pack.model_dump())

        if self.cache is not None:
            self.cache.invalidate()

        return reply

    async def buy(self, slug: str) -> Dict[str, Any]:
        """
        Full purchase flow for one product.

        Returns:
            {"product_id", "purchased", "already_owned", "verification"}
        """
        if self.storage.is_purchased(slug):
            return {
                "product_id": slug,
                "purchased": True,
                "already_owned": True,
                "verification": None
            }

        result = await self.purchase_content_pack(slug)
        if not result.success:
            return {
                "product_id": slug,
                "purchased": False,
                "already_owned": False,
                "verification": None
            }

        reply = await self.verify_purchase(result)
        return {
            "product_id": slug,
            "purchased": reply.success,
            "already_owned": False,
            "verification": reply.model_dump()
        }

    # =========================================================================
    # Ownership
    # =========================================================================

    async def restore_purchases(self) -> List[str]:
        """
        Re-grant store purchases. Only the native store has any.

        Returns the product ids that were actually recorded.
        """
        if self.mode != NATIVE:
            return []

        logger.info("[Purchase] Restoring purchases...")
        restored = []
        for product_id in self.restore_ids:
            if self.storage.add_purchase(product_id):
                restored.append(product_id)
            else:
                logger.error(f"[Purchase] Could not record restored purchase {product_id}")
        if restored and self.cache is not None:
            self.cache.invalidate()
        return restored

    def get_purchased_content(self) -> List[str]:
        return self.storage.load_purchases()

    def get_purchase_menu(self) -> List[Dict[str, Any]]:
        """Packs for sale, flagged with current ownership."""
        owned = set(self.storage.load_purchases())
        return [{**item, "is_purchased": item["id"] in owned} for item in PURCHASE_MENU]


def build_purchase_service(
    api: ContentApiClient,
    storage: ContentStorage,
    content: ContentService,
    cache: ContentCache
) -> PurchaseService:
    settings = get_settings()
    return PurchaseService(
        api,
        storage,
        content,
        cache=cache,
        mode=settings.purchase_mode,
        web_delay=settings.web_purchase_delay,
        native_delay=settings.native_purchase_delay,
        restore_ids=settings.restore_product_ids,
    )
