"""NPM registry adapter for dependency license lookups."""

import logging

import httpx

from safevibes.adapters.base import BaseAdapter

logger = logging.getLogger(__name__)


class NpmRegistryAdapter(BaseAdapter):
    """Adapter for the NPM package registry.

    Data source:
    - Package metadata: https://registry.npmjs.org/{package}
    """

    REGISTRY_URL = "https://registry.npmjs.org"

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 15.0) -> None:
        """Initialize the adapter.

        Args:
            client: Optional httpx client for making requests.
            timeout: Timeout for per-request clients.
        """
        self._client = client
        self._timeout = timeout

    @property
    def ecosystem(self) -> str:
        return "npm"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=self._timeout)

    async def _fetch_json(self, url: str) -> dict | None:
        """Fetch JSON from a URL, None on any failure."""
        client = await self._get_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
            data = response.json()
            return data if isinstance(data, dict) else None
        except httpx.HTTPStatusError as e:
            logger.debug(f"npm registry: {e.response.status_code} for {url}")
            return None
        except httpx.RequestError as e:
            logger.warning(f"npm registry request error: {e}")
            return None
        except ValueError as e:
            logger.warning(f"npm registry JSON decode error for {url}: {e}")
            return None
        finally:
            if self._client is None:
                await client.aclose()

    async def get_license(self, name: str) -> str | None:
        """Fetch the declared license of an NPM package.

        Prefers the top-level ``license`` field and falls back to the
        latest version's field.

        Args:
            name: Package name (supports scoped packages like @org/pkg).
        """
        # URL-encode scoped package names
        encoded_name = name.replace("/", "%2F")
        data = await self._fetch_json(f"{self.REGISTRY_URL}/{encoded_name}")
        if data is None:
            return None

        # Get latest version info
        dist_tags = data.get("dist-tags")
        latest_version = dist_tags.get("latest", "") if isinstance(dist_tags, dict) else ""

        version_data = {}
        versions = data.get("versions")
        if isinstance(versions, dict) and isinstance(versions.get(latest_version), dict):
            version_data = versions[latest_version]

        return self._extract_license(data, version_data)

    def _extract_license(self, data: dict, version_data: dict) -> str | None:
        """Extract license from npm package data."""
        license_info = data.get("license") or version_data.get("license")

        if isinstance(license_info, str):
            return license_info
        elif isinstance(license_info, dict):
            return license_info.get("type") or license_info.get("name")
        elif isinstance(license_info, list) and license_info:
            first = license_info[0]
            if isinstance(first, str):
                return first
            elif isinstance(first, dict):
                return first.get("type") or first.get("name")

        return None
