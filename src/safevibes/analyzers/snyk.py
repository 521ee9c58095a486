"""Snyk fetcher for open vulnerability issue counts.

Uses the Snyk REST API. Only repositories already imported as projects in
the configured Snyk organization can be matched.

Requires SNYK_TOKEN and SNYK_ORG_ID.
"""

from __future__ import annotations

import logging
import urllib.parse

import httpx
from pydantic import BaseModel, Field, ValidationError

from safevibes.models.schemas import RepoRef

logger = logging.getLogger(__name__)


class SnykProjectAttributes(BaseModel):
    name: str | None = None
    target_reference: str | None = Field(default=None, alias="targetReference")


class SnykProject(BaseModel):
    id: str
    attributes: SnykProjectAttributes = Field(default_factory=SnykProjectAttributes)


class SnykProjectsResponse(BaseModel):
    data: list[SnykProject] = Field(default_factory=list)


class SnykIssuesMeta(BaseModel):
    total: int | None = None


class SnykIssuesResponse(BaseModel):
    data: list = Field(default_factory=list)
    meta: SnykIssuesMeta | None = None


class SnykFetcher:
    """Counts open Snyk issues for the project tracking a repository."""

    BASE_URL = "https://api.snyk.io/rest"
    API_VERSION = "2024-06-18"

    def __init__(
        self,
        token: str | None = None,
        org_id: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        """Initialize the fetcher.

        Args:
            token: Snyk API token.
            org_id: Snyk organization id.
            client: Optional httpx client. If not provided, creates one per request.
            timeout: Timeout for per-request clients.
        """
        self._token = token
        self._org_id = org_id
        self._client = client
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self._token and self._org_id)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.api+json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=self._timeout)

    async def _fetch(self, endpoint: str, params: dict) -> dict | None:
        """Fetch from the Snyk REST API, None on any failure."""
        client = await self._get_client()
        url = f"{self.BASE_URL}{endpoint}"

        try:
            response = await client.get(
                url,
                params={"version": self.API_VERSION, **params},
                headers=self._headers(),
            )
            response.raise_for_status()
            data = response.json()
            return data if isinstance(data, dict) else None
        except httpx.HTTPStatusError as e:
            logger.warning(f"Snyk API error {e.response.status_code}: {endpoint}")
            return None
        except httpx.RequestError as e:
            logger.warning(f"Snyk request error: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Snyk JSON decode error for {endpoint}: {e}")
            return None
        finally:
            if self._client is None:
                await client.aclose()

    async def fetch_issue_count(self, ref: RepoRef) -> int | None:
        """Count open issues for the Snyk project matching a repository.

        Returns:
            Issue count, or None when Snyk is not configured, no project
            matches, or any request fails.
        """
        if not self.enabled:
            return None

        org = urllib.parse.quote(self._org_id, safe="")
        data = await self._fetch(f"/orgs/{org}/projects", {})
        if data is None:
            return None
        try:
            projects = SnykProjectsResponse.model_validate(data).data
        except ValidationError:
            logger.warning("Unexpected Snyk projects payload")
            return None

        project = find_matching_project(projects, ref)
        if project is None:
            logger.debug(f"No Snyk project tracks {ref.slug}")
            return None

        data = await self._fetch(f"/orgs/{org}/issues", {"project_id": project.id})
        if data is None:
            return None
        try:
            issues = SnykIssuesResponse.model_validate(data)
        except ValidationError:
            logger.warning("Unexpected Snyk issues payload")
            return None

        if issues.meta is not None and issues.meta.total is not None:
            return issues.meta.total
        return len(issues.data)


def find_matching_project(projects: list[SnykProject], ref: RepoRef) -> SnykProject | None:
    """Find the first project whose name or target reference mentions the repo."""
    normalized_url = ref.url.lower()
    slug = ref.slug.lower()

    for project in projects:
        name = (project.attributes.name or "").lower()
        target = (project.attributes.target_reference or "").lower()
        if slug in name or slug in target or normalized_url in name or normalized_url in target:
            return project
    return None


def issue_count_penalty(issue_count: int) -> int:
    """Security penalty for open Snyk issues. More issues, larger penalty."""
    if issue_count <= 0:
        return 0
    if issue_count <= 2:
        return 5
    if issue_count <= 5:
        return 15
    if issue_count <= 10:
        return 25
    return min(50, 20 + issue_count * 2)
