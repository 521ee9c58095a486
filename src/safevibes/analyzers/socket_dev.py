"""Socket.dev package health fetcher.

Requires SOCKET_API_KEY. Scores one npm package version at a time.
"""

from __future__ import annotations

import logging
import urllib.parse

import httpx
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


class SocketScoreMetadata(BaseModel):
    depscore: float | None = None


class SocketScoreResponse(BaseModel):
    """Response of GET /v0/npm/{package}/{version}/score."""

    score: float | None = None
    metadata: SocketScoreMetadata | None = None


class SocketFetcher:
    """Fetches the Socket.dev depscore (0-1) for an npm package version."""

    BASE_URL = "https://api.socket.dev/v0"

    def __init__(
        self,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        self._api_key = api_key
        self._client = client
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=self._timeout)

    async def fetch_score(self, package_name: str | None, version: str | None) -> float | None:
        """Fetch the package-health score for an exact name and version.

        Returns:
            Score clamped to [0, 1], or None when not configured, the
            manifest lacks a name or version, or the request fails.
        """
        if not self.enabled or not package_name or not version:
            return None

        name = urllib.parse.quote(package_name, safe="")
        ver = urllib.parse.quote(version, safe="")
        url = f"{self.BASE_URL}/npm/{name}/{ver}/score"

        client = await self._get_client()
        try:
            response = await client.get(
                url,
                headers={"Authorization": f"Bearer {self._api_key}", "Accept": "application/json"},
            )
            response.raise_for_status()
            payload = SocketScoreResponse.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            logger.warning(f"Socket API error {e.response.status_code} for {package_name}@{version}")
            return None
        except httpx.RequestError as e:
            logger.warning(f"Socket request error: {e}")
            return None
        except (ValidationError, ValueError) as e:
            logger.warning(f"Unexpected Socket payload for {package_name}@{version}: {e}")
            return None
        finally:
            if self._client is None:
                await client.aclose()

        score = payload.score
        if score is None and payload.metadata is not None:
            score = payload.metadata.depscore
        if score is None:
            return None
        return max(0.0, min(1.0, score))


def socket_score_to_100(score: float) -> int:
    """Rescale a 0-1 depscore to 0-100 for blending."""
    return int(score * 100 + 0.5)
