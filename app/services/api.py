"""
Catalog API client.

Two endpoints on the content server:
    GET  {base}/quiz/content/       -> list of raw catalog entries
    POST {base}/purchases/verify/   -> {"success": bool, ...}

Every call is bounded by the client timeout. Failures are raised as
NetworkFailure / VerificationFailure; deciding what to do about them is
the caller's job.
"""

import time
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.config import get_settings
from app.errors import NetworkFailure, VerificationFailure

logger = logging.getLogger(__name__)


class ContentApiClient:
    """Thin async wrapper around the content server."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def fetch_catalog(self) -> List[Dict[str, Any]]:
        """Fetch the full raw catalog."""
        url = f"{self.base_url}/quiz/content/"
        try:
            async with self._client() as client:
                response = await client.get(url)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise NetworkFailure(f"Catalog fetch returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise NetworkFailure(f"Catalog fetch failed: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise NetworkFailure(f"Catalog response is not JSON: {e}") from e

        if not isinstance(data, list):
            raise NetworkFailure("Catalog response must be a JSON array")

        logger.info(f"[API] Fetched catalog with {len(data)} packs")
        return data

    async def verify_purchase(self, purchase_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Ask the server to verify a purchase.

        Args:
            purchase_data: whatever purchase initiation produced,
                at least {"success", "transactionId", "productId"}

        Returns:
            The server's JSON reply.

        Raises:
            VerificationFailure on transport errors or non-2xx status.
        """
        url = f"{self.base_url}/purchases/verify/"
        try:
            async with self._client() as client:
                response = await client.post(url, json=purchase_data)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise VerificationFailure(f"Verification returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise VerificationFailure(f"Verification failed: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise VerificationFailure(f"Verification response is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise VerificationFailure("Verification response must be a JSON object")
        return data

    async def health_check(self) -> dict:
        """Probe the catalog endpoint and time it."""
        start = time.time()
        try:
            async with self._client() as client:
                response = await client.get(f"{self.base_url}/quiz/content/")
            elapsed = time.time() - start
            return {
                "status": "healthy" if response.is_success else "degraded",
                "healthy": response.is_success,
                "status_code": response.status_code,
                "response_time_ms": round(elapsed * 1000),
            }
        except httpx.HTTPError as e:
            return {
                "status": "error",
                "healthy": False,
                "error": str(e)
            }


def build_api_client() -> ContentApiClient:
    settings = get_settings()
    return ContentApiClient(settings.api_base_url, timeout=settings.http_timeout)
