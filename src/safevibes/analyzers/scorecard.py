"""OpenSSF Scorecard fetcher.

The Scorecard API publishes a composite 0-10 security-practices score plus
per-check details for GitHub repositories.

API docs: https://api.securityscorecards.dev/
No authentication required.
"""

from __future__ import annotations

import logging
import urllib.parse

import httpx
from pydantic import ValidationError

from safevibes.models.schemas import RepoRef, ScorecardResult

logger = logging.getLogger(__name__)


class ScorecardFetcher:
    """Fetches OpenSSF Scorecard results for a repository."""

    BASE_URL = "https://api.securityscorecards.dev"

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 15.0) -> None:
        """Initialize the fetcher.

        Args:
            client: Optional httpx client. If not provided, creates one per request.
            timeout: Timeout for per-request clients.
        """
        self._client = client
        self._timeout = timeout

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=self._timeout)

    async def _fetch(self, endpoint: str) -> dict | None:
        """Fetch data from the Scorecard API.

        Returns:
            JSON response as dict, or None if request failed.
        """
        client = await self._get_client()
        url = f"{self.BASE_URL}{endpoint}"

        try:
            response = await client.get(url)
            response.raise_for_status()
            data = response.json()
            return data if isinstance(data, dict) else None
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.debug(f"Scorecard: Not found: {endpoint}")
            else:
                logger.warning(f"Scorecard API error {e.response.status_code}: {endpoint}")
            return None
        except httpx.RequestError as e:
            logger.warning(f"Scorecard request error: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Scorecard JSON decode error for {endpoint}: {e}")
            return None
        finally:
            if self._client is None:
                await client.aclose()

    async def fetch_scorecard(self, ref: RepoRef) -> ScorecardResult | None:
        """Fetch the Scorecard result for a GitHub repository.

        Returns:
            ScorecardResult, or None when the repository has not been scored
            or the response does not match the expected shape.
        """
        owner = urllib.parse.quote(ref.owner, safe="")
        repo = urllib.parse.quote(ref.name, safe="")
        data = await self._fetch(f"/projects/github.com/{owner}/{repo}")
        if data is None:
            return None

        try:
            return ScorecardResult.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Unexpected Scorecard payload for {ref.slug}: {e.error_count()} error(s)")
            return None


def scorecard_to_100(score: float) -> int:
    """Rescale a 0-10 Scorecard score to 0-100 for blending."""
    if score < 0:
        return 0
    return int(min(10.0, score) * 10 + 0.5)
