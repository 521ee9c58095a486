"""GitHub data fetcher for repository scans."""

import asyncio
import base64
import json
import logging
from datetime import datetime, timezone

import httpx
from pydantic import BaseModel, ValidationError

from safevibes.adapters.base import (
    AccessDeniedError,
    GitHubAPIError,
    InvalidTokenError,
    RateLimitError,
    RepositoryNotFoundError,
)
from safevibes.models.schemas import DirEntry, ManifestInfo, RepoMetadata, RepoRef

logger = logging.getLogger(__name__)

# Source files sampled for secret patterns
SOURCE_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".py")
NESTED_SOURCE_DIRS = ("src", "lib", "app")
MAX_SOURCE_FILES = 8
MAX_SOURCE_FILE_BYTES = 100_000

# Dependencies looked up in the registry
MAX_LICENSE_LOOKUPS = 30


class GitHubLicense(BaseModel):
    spdx_id: str | None = None


class GitHubRepoResponse(BaseModel):
    """Fields of GET /repos/{owner}/{repo} used by the scorer."""

    description: str | None = None
    stargazers_count: int = 0
    forks_count: int = 0
    size: int = 0
    default_branch: str = "main"
    has_issues: bool = True
    license: GitHubLicense | None = None
    open_issues_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GitHubContentResponse(BaseModel):
    """A single file from the contents API."""

    content: str | None = None
    encoding: str | None = None


class GitHubFetcher:
    """Fetches repository metadata and contents from the GitHub API.

    A personal access token is optional; without one the unauthenticated
    rate limit (60 requests/hour) applies.
    """

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        """Initialize the fetcher.

        Args:
            token: GitHub personal access token.
            client: Optional httpx client. If not provided, a new client is created per request.
            timeout: Timeout for per-request clients.
        """
        self._token = token
        self._client = client
        self._timeout = timeout

        # Rate limit tracking
        self.rate_limit_remaining: int | None = None
        self.rate_limit_total: int | None = None
        self.rate_limit_reset: datetime | None = None

    def _headers(self) -> dict[str, str]:
        """Get headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "safevibes",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=self._timeout)

    def _update_rate_limits(self, response: httpx.Response) -> None:
        """Extract and store rate limit info from response headers."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        limit = response.headers.get("X-RateLimit-Limit")
        reset = response.headers.get("X-RateLimit-Reset")

        try:
            if remaining is not None:
                self.rate_limit_remaining = int(remaining)
            if limit is not None:
                self.rate_limit_total = int(limit)
            if reset is not None:
                self.rate_limit_reset = datetime.fromtimestamp(int(reset), tz=timezone.utc)
        except ValueError:
            logger.debug(f"Unparseable rate limit headers: {remaining!r}, {limit!r}, {reset!r}")

    async def _fetch(self, path: str) -> dict | list | None:
        """Fetch from GitHub API.

        Returns None for any non-success status, transport error or
        undecodable body.
        """
        client = await self._get_client()
        url = f"{self.BASE_URL}{path}"

        try:
            response = await client.get(url, headers=self._headers())
            self._update_rate_limits(response)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.debug(f"GitHub API error {e.response.status_code}: {path}")
            return None
        except httpx.RequestError as e:
            logger.warning(f"GitHub request error for {path}: {e}")
            return None
        except ValueError as e:
            logger.warning(f"GitHub JSON decode error for {path}: {e}")
            return None
        finally:
            if self._client is None:
                await client.aclose()

    # --- Primary metadata (fatal on failure) ---

    async def fetch_repo_info(self, ref: RepoRef) -> RepoMetadata:
        """Fetch basic repository information.

        Raises:
            RepositoryNotFoundError: 404, the repository is missing or private.
            RateLimitError: The API rate limit is exhausted.
            AccessDeniedError: Any other 403.
            InvalidTokenError: 401, the configured token was rejected.
            GitHubAPIError: Any other status, transport failure or bad payload.
        """
        client = await self._get_client()
        url = f"{self.BASE_URL}/repos/{ref.owner}/{ref.name}"

        try:
            response = await client.get(url, headers=self._headers())
        except httpx.RequestError as e:
            raise GitHubAPIError(f"Could not reach the GitHub API: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

        self._update_rate_limits(response)
        status = response.status_code

        if status == 404:
            raise RepositoryNotFoundError(ref.slug)
        if status in (403, 429):
            if status == 429 or self.rate_limit_remaining == 0 or "rate limit" in self._error_message(response):
                raise RateLimitError(self.rate_limit_reset)
            raise AccessDeniedError(ref.slug)
        if status == 401:
            raise InvalidTokenError()
        if not response.is_success:
            raise GitHubAPIError(f"GitHub API error ({status}).", status)

        try:
            data = GitHubRepoResponse.model_validate(response.json())
        except (ValidationError, ValueError) as e:
            raise GitHubAPIError(f"Unexpected GitHub API response for {ref.slug}: {e}") from e

        return RepoMetadata(
            owner=ref.owner,
            name=ref.name,
            description=data.description,
            stars=data.stargazers_count,
            forks=data.forks_count,
            size_kb=data.size,
            default_branch=data.default_branch,
            license=data.license.spdx_id if data.license else None,
            has_issues=data.has_issues,
            open_issues=data.open_issues_count,
            created_at=data.created_at,
            updated_at=data.updated_at,
        )

    def _error_message(self, response: httpx.Response) -> str:
        """Lowercased ``message`` field of a GitHub error body."""
        try:
            body = response.json()
        except ValueError:
            return ""
        if isinstance(body, dict) and isinstance(body.get("message"), str):
            return body["message"].lower()
        return ""

    # --- Contents (absent on failure) ---

    async def fetch_directory_listing(self, ref: RepoRef, path: str = "") -> list[DirEntry]:
        """List a directory, empty if it is missing or the call fails."""
        suffix = f"/{path}" if path else ""
        data = await self._fetch(f"/repos/{ref.owner}/{ref.name}/contents{suffix}")
        if not isinstance(data, list):
            return []

        entries = []
        for item in data:
            try:
                entries.append(DirEntry.model_validate(item))
            except ValidationError:
                logger.debug(f"Skipping malformed listing entry in {ref.slug}/{path}")
        return entries

    async def fetch_root_listing(self, ref: RepoRef) -> list[DirEntry]:
        return await self.fetch_directory_listing(ref)

    async def fetch_workflow_listing(self, ref: RepoRef) -> list[DirEntry]:
        return await self.fetch_directory_listing(ref, ".github/workflows")

    async def fetch_file_text(self, ref: RepoRef, path: str) -> str | None:
        """Fetch a file from the contents API and decode it as UTF-8 text."""
        data = await self._fetch(f"/repos/{ref.owner}/{ref.name}/contents/{path}")
        return _decode_content(data, f"{ref.slug}/{path}")

    async def fetch_gitignore(self, ref: RepoRef) -> str | None:
        return await self.fetch_file_text(ref, ".gitignore")

    async def fetch_readme(self, ref: RepoRef) -> str | None:
        """Fetch the README content."""
        data = await self._fetch(f"/repos/{ref.owner}/{ref.name}/readme")
        return _decode_content(data, f"{ref.slug}/README")

    async def fetch_manifest(self, ref: RepoRef) -> ManifestInfo:
        """Fetch and parse package.json.

        Returns the ``dep_count == -1`` sentinel when there is no usable
        manifest.
        """
        raw = await self.fetch_file_text(ref, "package.json")
        if raw is None:
            return ManifestInfo()
        return parse_manifest(raw)

    async def fetch_source_files(
        self,
        ref: RepoRef,
        root_listing: list[DirEntry],
        max_files: int = MAX_SOURCE_FILES,
    ) -> dict[str, str]:
        """Fetch a bounded sample of source files for secret scanning.

        Takes files with a known source extension from the repository root,
        then from the first conventional source directory (src, lib, app)
        that exists.

        Returns:
            Mapping of file path to decoded text. Files that fail to fetch
            or decode are left out.
        """
        candidates = _select_source_files(root_listing, max_files)

        if len(candidates) < max_files:
            root_dirs = {entry.name for entry in root_listing if entry.type == "dir"}
            nested = next((name for name in NESTED_SOURCE_DIRS if name in root_dirs), None)
            if nested is not None:
                nested_listing = await self.fetch_directory_listing(ref, nested)
                for entry in _select_source_files(nested_listing, max_files - len(candidates)):
                    if not entry.path:
                        entry = entry.model_copy(update={"path": f"{nested}/{entry.name}"})
                    candidates.append(entry)

        if not candidates:
            return {}

        paths = [entry.path or entry.name for entry in candidates]
        contents = await asyncio.gather(*(self.fetch_file_text(ref, path) for path in paths))
        return {path: text for path, text in zip(paths, contents) if text is not None}


def _select_source_files(listing: list[DirEntry], limit: int) -> list[DirEntry]:
    """Pick source files from a listing, in listing order, up to ``limit``."""
    selected = []
    for entry in listing:
        if len(selected) >= limit:
            break
        if entry.type != "file":
            continue
        name = entry.name.lower()
        if not name.endswith(SOURCE_EXTENSIONS) or ".min." in name:
            continue
        if entry.size > MAX_SOURCE_FILE_BYTES:
            continue
        selected.append(entry)
    return selected


def _decode_content(data: dict | list | None, label: str) -> str | None:
    """Decode a base64 contents payload. Decode failure counts as no content."""
    if not isinstance(data, dict):
        return None
    try:
        payload = GitHubContentResponse.model_validate(data)
    except ValidationError:
        return None
    if not payload.content:
        return None
    try:
        return base64.b64decode(payload.content).decode("utf-8")
    except ValueError:
        logger.debug(f"Could not decode content of {label}")
        return None


def parse_manifest(raw: str) -> ManifestInfo:
    """Parse package.json text into ManifestInfo.

    Malformed JSON or a non-object document is treated as no manifest.
    """
    try:
        data = json.loads(raw)
    except ValueError:
        logger.debug("package.json is not valid JSON")
        return ManifestInfo()
    if not isinstance(data, dict):
        return ManifestInfo()

    deps = data.get("dependencies")
    dev_deps = data.get("devDependencies")
    dependencies = list(deps.keys()) if isinstance(deps, dict) else []
    dev_dependencies = list(dev_deps.keys()) if isinstance(dev_deps, dict) else []

    scripts_raw = data.get("scripts")
    scripts = {}
    if isinstance(scripts_raw, dict):
        scripts = {k: v for k, v in scripts_raw.items() if isinstance(v, str)}

    repository = data.get("repository")
    has_repository_field = isinstance(repository, str) or (
        isinstance(repository, dict) and "url" in repository
    )

    name = data.get("name")
    version = data.get("version")
    description = data.get("description")

    # Runtime dependencies first, then dev-only ones
    lookup_names = list(dict.fromkeys(dependencies + dev_dependencies))[:MAX_LICENSE_LOOKUPS]

    return ManifestInfo(
        name=name if isinstance(name, str) else None,
        version=version if isinstance(version, str) else "latest",
        description=description if isinstance(description, str) else None,
        scripts=scripts,
        dependencies=dependencies,
        dev_dependencies=dev_dependencies,
        dep_count=len(dependencies) + len(dev_dependencies),
        has_test_script=bool(scripts.get("test", "").strip()),
        has_repository_field=has_repository_field,
        license_lookup_names=lookup_names,
    )
