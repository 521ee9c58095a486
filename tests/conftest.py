"""Shared fixtures for safevibes tests."""

import base64
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from safevibes.config import ScanConfig
from safevibes.models.schemas import (
    DirEntry,
    InspectionReport,
    ManifestInfo,
    RepoMetadata,
    RepoRef,
    RepositorySnapshot,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def file_payload(text: str) -> dict:
    """A GitHub contents API response for a text file."""
    return {"content": base64.b64encode(text.encode("utf-8")).decode("ascii"), "encoding": "base64"}


def listing(*names: str, dirs: tuple[str, ...] = ()) -> list[dict]:
    """A GitHub contents API directory listing."""
    entries = [{"name": name, "type": "file", "size": 100, "path": name} for name in names]
    entries += [{"name": name, "type": "dir", "size": 0, "path": name} for name in dirs]
    return entries


def repo_payload(**overrides) -> dict:
    """A GitHub GET /repos/{owner}/{repo} response, updated 10 days before NOW."""
    payload = {
        "description": "A well described example project",
        "stargazers_count": 42,
        "forks_count": 3,
        "size": 1200,
        "default_branch": "main",
        "has_issues": True,
        "license": {"spdx_id": "MIT"},
        "open_issues_count": 5,
        "created_at": "2020-01-01T00:00:00Z",
        "updated_at": (NOW - timedelta(days=10)).isoformat(),
    }
    payload.update(overrides)
    return payload


class Routes:
    """Routes requests by host and decoded path; anything unrouted is a 404."""

    def __init__(self, routes: dict[str, object] | None = None) -> None:
        self.routes = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = f"{request.url.host}{request.url.path}"
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if callable(route):
            return route(request)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=route)

    def requested(self, key: str) -> bool:
        return any(f"{r.url.host}{r.url.path}" == key for r in self.requests)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def github_routes(
    owner: str = "acme",
    name: str = "widget",
    repo: dict | None = None,
    root: list[dict] | None = None,
    files: dict[str, str] | None = None,
    readme: str | None = None,
    workflows: list[dict] | None = None,
    dirs: dict[str, list[dict]] | None = None,
) -> dict[str, object]:
    """Routes for a fake GitHub repository."""
    base = f"api.github.com/repos/{owner}/{name}"
    routes: dict[str, object] = {base: repo or repo_payload()}
    routes[f"{base}/contents"] = root if root is not None else []
    for path, text in (files or {}).items():
        routes[f"{base}/contents/{path}"] = file_payload(text)
    if readme is not None:
        routes[f"{base}/readme"] = file_payload(readme)
    if workflows is not None:
        routes[f"{base}/contents/.github/workflows"] = workflows
    for path, entries in (dirs or {}).items():
        routes[f"{base}/contents/{path}"] = entries
    return routes


def package_json(**fields) -> str:
    return json.dumps(fields)


@pytest.fixture
def config() -> ScanConfig:
    """A config with no credentials, so optional enrichments stay off."""
    return ScanConfig()


@pytest.fixture
def make_snapshot():
    """Factory for snapshots with sensible defaults."""

    def _make(**overrides) -> RepositorySnapshot:
        ref = RepoRef(owner="acme", name="widget")
        values = {
            "ref": ref,
            "metadata": RepoMetadata(
                owner="acme",
                name="widget",
                description="A well described example project",
                stars=42,
                size_kb=1200,
                license="MIT",
                open_issues=5,
                updated_at=NOW - timedelta(days=10),
            ),
            "root_listing": [DirEntry(name="README.md", type="file")],
            "manifest": ManifestInfo(),
        }
        values.update(overrides)
        return RepositorySnapshot(**values)

    return _make


@pytest.fixture
def clean_report() -> InspectionReport:
    """A report with every check passing."""
    return InspectionReport(
        gitignore_has_env=True,
        has_security_policy=True,
        has_lock_file=True,
        has_readme=True,
        has_contributing=True,
        has_ci=True,
    )
