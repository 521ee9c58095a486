"""Repository URL parsing, registry adapter base class and scan errors."""

import asyncio
import logging
import re
import urllib.parse
from abc import ABC, abstractmethod
from datetime import datetime

from safevibes.models.schemas import RepoRef

logger = logging.getLogger(__name__)

GITHUB_BASE = "https://github.com/"

# A '%' not followed by two hex digits cannot be percent-decoded
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

# Characters GitHub allows in owner and repository names
_NAME_SEGMENT = re.compile(r"[A-Za-z0-9._-]+")


def parse_repo_url(url: str) -> RepoRef | None:
    """Parse a GitHub repository URL into a RepoRef.

    Accepts ``https://github.com/{owner}/{name}`` with optional trailing
    path segments, trailing slash, query string or fragment.

    Args:
        url: Repository URL to parse. May be percent-encoded.

    Returns:
        RepoRef if the URL can be parsed, None otherwise.
    """
    if not url:
        return None

    raw = url.strip()
    if _MALFORMED_ESCAPE.search(raw):
        return None
    try:
        decoded = urllib.parse.unquote(raw, errors="strict")
    except UnicodeDecodeError:
        return None

    if not decoded.startswith(GITHUB_BASE):
        return None

    path = re.split(r"[?#]", decoded[len(GITHUB_BASE):], maxsplit=1)[0]
    parts = [part for part in path.split("/") if part]
    if len(parts) < 2:
        return None
    if not all(_NAME_SEGMENT.fullmatch(part) for part in parts[:2]):
        return None

    return RepoRef(owner=parts[0], name=parts[1])


def is_valid_repo_url(url: str) -> bool:
    """Check whether a URL identifies a GitHub repository."""
    return parse_repo_url(url) is not None


class BaseAdapter(ABC):
    """Base class for package registry adapters.

    Each adapter resolves per-package metadata (currently the declared
    license) from a specific registry.
    """

    @property
    @abstractmethod
    def ecosystem(self) -> str:
        """Return the ecosystem this adapter handles."""
        ...

    @abstractmethod
    async def get_license(self, name: str) -> str | None:
        """Fetch the declared license of a package.

        Args:
            name: Package name.

        Returns:
            License identifier, or None if unknown or the lookup failed.
        """
        ...

    async def get_licenses(self, names: list[str]) -> dict[str, str | None]:
        """Fetch licenses for several packages concurrently.

        A failed lookup yields None for that package only.
        """
        results = await asyncio.gather(
            *(self.get_license(name) for name in names),
            return_exceptions=True,
        )
        licenses: dict[str, str | None] = {}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.debug(f"License lookup failed for {name}: {result}")
                licenses[name] = None
            else:
                licenses[name] = result
        return licenses


# --- Errors ---


class ScanError(Exception):
    """Raised when a scan cannot be completed.

    Only failures to resolve the repository itself are raised; every other
    sub-fetch degrades to an absent value.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        self.message = message
        self.status = status
        super().__init__(message)


class InvalidRepoUrlError(ScanError):
    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Invalid repository URL: '{url}'. Expected https://github.com/<owner>/<repo>.", 400)


class RepositoryNotFoundError(ScanError):
    def __init__(self, slug: str) -> None:
        super().__init__(f"Repository not found or private: {slug}.", 404)


class RateLimitError(ScanError):
    def __init__(self, reset_time: datetime | None = None) -> None:
        self.reset_time = reset_time
        message = "GitHub API rate limit. Try again in an hour or set GITHUB_TOKEN."
        if reset_time is not None:
            message += f" Limit resets at {reset_time.isoformat()}."
        super().__init__(message, 403)


class AccessDeniedError(ScanError):
    def __init__(self, slug: str) -> None:
        super().__init__(f"Access denied (403) for {slug}. Check repo visibility and GITHUB_TOKEN.", 403)


class InvalidTokenError(ScanError):
    def __init__(self) -> None:
        super().__init__("Invalid GITHUB_TOKEN or token expired.", 401)


class GitHubAPIError(ScanError):
    """Any other failure of the primary repository lookup."""


class ScanTimeoutError(ScanError):
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Scan did not complete within {timeout:g} seconds.", 504)
