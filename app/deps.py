"""
Service wiring.

Every service is constructed explicitly and handed its collaborators;
the FastAPI app keeps the assembled set on `app.state.services` so tests
can swap in fakes.
"""

from dataclasses import dataclass

from fastapi import Request

from app.config import get_settings
from app.services.api import ContentApiClient, build_api_client
from app.services.cache import ContentCache
from app.services.content import ContentService
from app.services.playback import build_playback
from app.services.purchases import PurchaseService, build_purchase_service
from app.services.session import SessionManager, build_session_manager
from app.services.storage import ContentStorage, build_content_storage


@dataclass
class Services:
    api: ContentApiClient
    storage: ContentStorage
    cache: ContentCache
    content: ContentService
    purchases: PurchaseService
    sessions: SessionManager


def build_services() -> Services:
    """Production wiring from settings."""
    settings = get_settings()
    api = build_api_client()
    storage = build_content_storage()
    cache = ContentCache(
        api.fetch_catalog,
        owned=storage.load_purchases,
        free_ids=settings.free_pack_ids,
        ttl=settings.cache_ttl,
        locale=settings.locale,
    )
    content = ContentService(cache, storage, locale=settings.locale)
    purchases = build_purchase_service(api, storage, content, cache)
    sessions = build_session_manager(content, build_playback)
    return Services(api, storage, cache, content, purchases, sessions)


def get_services(request: Request) -> Services:
    return request.app.state.services
