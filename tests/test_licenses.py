"""
Tests for the dependency license conflict checker and npm registry adapter.
"""

import asyncio

import httpx
import pytest

from safevibes.adapters.npm import NpmRegistryAdapter
from safevibes.analyzers.licenses import LicenseConflictChecker, is_copyleft

from conftest import Routes


class FakeRegistry(NpmRegistryAdapter):
    """Registry adapter answering from a dict."""

    def __init__(self, licenses: dict[str, str | None], failing: set[str] = frozenset()) -> None:
        super().__init__()
        self.licenses = licenses
        self.failing = failing
        self.calls: list[str] = []

    async def get_license(self, name: str) -> str | None:
        self.calls.append(name)
        if name in self.failing:
            raise httpx.ConnectError("boom")
        return self.licenses.get(name)


class TestIsCopyleft:
    @pytest.mark.parametrize("license_id", ["GPL-3.0", "GPL-2.0-only", "AGPL-3.0", "LGPL-2.1", "SSPL-1.0", "gpl-3.0"])
    def test_copyleft(self, license_id):
        assert is_copyleft(license_id)

    @pytest.mark.parametrize("license_id", ["MIT", "Apache-2.0", "BSD-3-Clause", "ISC", "", None])
    def test_permissive_or_unknown(self, license_id):
        assert not is_copyleft(license_id)


class TestLicenseConflictChecker:
    """Tests for LicenseConflictChecker.check."""

    def test_empty_names_skip_lookups(self):
        """No dependencies means no conflict and no registry calls."""
        registry = FakeRegistry({})
        result = asyncio.run(LicenseConflictChecker(registry).check([]))
        assert not result.has_conflict
        assert result.conflicting_packages == []
        assert registry.calls == []

    def test_gpl_dependency_conflicts(self):
        registry = FakeRegistry({"left-pad": "MIT", "gpl-lib": "GPL-3.0"})
        result = asyncio.run(LicenseConflictChecker(registry).check(["left-pad", "gpl-lib"]))
        assert result.has_conflict
        assert result.conflicting_packages == ["gpl-lib"]
        assert result.licenses == {"left-pad": "MIT", "gpl-lib": "GPL-3.0"}

    def test_failed_lookup_is_not_a_conflict(self):
        """A lookup that raises resolves to an unknown license."""
        registry = FakeRegistry({"ok": "MIT"}, failing={"broken"})
        result = asyncio.run(LicenseConflictChecker(registry).check(["ok", "broken"]))
        assert not result.has_conflict
        assert result.licenses == {"ok": "MIT", "broken": None}


class TestNpmRegistryAdapter:
    """Tests for license resolution against the npm registry."""

    def _get_license(self, routes: dict, name: str) -> str | None:
        async def run():
            async with Routes(routes).client() as client:
                return await NpmRegistryAdapter(client=client).get_license(name)

        return asyncio.run(run())

    def test_top_level_license(self):
        routes = {"registry.npmjs.org/express": {"license": "MIT", "dist-tags": {"latest": "4.0.0"}}}
        assert self._get_license(routes, "express") == "MIT"

    def test_falls_back_to_latest_version(self):
        """Without a top-level license the latest version's field is used."""
        routes = {
            "registry.npmjs.org/old-lib": {
                "dist-tags": {"latest": "2.0.0"},
                "versions": {
                    "1.0.0": {"license": "MIT"},
                    "2.0.0": {"license": {"type": "GPL-3.0", "url": "https://example.com"}},
                },
            }
        }
        assert self._get_license(routes, "old-lib") == "GPL-3.0"

    def test_license_list(self):
        routes = {"registry.npmjs.org/multi": {"license": [{"type": "Apache-2.0"}, {"type": "MIT"}]}}
        assert self._get_license(routes, "multi") == "Apache-2.0"

    def test_scoped_package_name_is_encoded(self):
        routes = Routes({})

        async def run():
            async with routes.client() as client:
                return await NpmRegistryAdapter(client=client).get_license("@scope/pkg")

        assert asyncio.run(run()) is None
        assert b"%2F" in routes.requests[0].url.raw_path

    def test_missing_package(self):
        assert self._get_license({}, "nope") is None

    def test_server_error(self):
        routes = {"registry.npmjs.org/flaky": httpx.Response(500)}
        assert self._get_license(routes, "flaky") is None

    def test_ecosystem(self):
        assert NpmRegistryAdapter().ecosystem == "npm"
