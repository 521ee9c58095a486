"""End-to-end scan pipeline for repositories."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import NamedTuple

import httpx

from safevibes.adapters.base import InvalidRepoUrlError, ScanTimeoutError, parse_repo_url
from safevibes.adapters.npm import NpmRegistryAdapter
from safevibes.analyzers.findings import build_details
from safevibes.analyzers.github import GitHubFetcher
from safevibes.analyzers.inspectors import inspect_snapshot
from safevibes.analyzers.licenses import LicenseConflictChecker
from safevibes.analyzers.scorecard import ScorecardFetcher
from safevibes.analyzers.scorer import Scorer
from safevibes.analyzers.snyk import SnykFetcher
from safevibes.analyzers.socket_dev import SocketFetcher
from safevibes.config import ScanConfig
from safevibes.models.schemas import (
    DirEntry,
    LicenseConflictResult,
    ManifestInfo,
    RepoMetadata,
    RepoRef,
    RepositorySnapshot,
    ScanResult,
    ScorecardResult,
)

logger = logging.getLogger(__name__)


class StageOne(NamedTuple):
    """Independent fetches that only need the repository reference."""

    manifest: ManifestInfo
    root_listing: list[DirEntry]
    scorecard: ScorecardResult | None
    snyk_issue_count: int | None
    gitignore: str | None
    readme: str | None
    workflow_listing: list[DirEntry]


class StageTwo(NamedTuple):
    """Fetches that depend on stage one results."""

    socket_score: float | None
    license_conflicts: LicenseConflictResult
    source_files: dict[str, str]


class ScanPipeline:
    """Orchestrates a full repository scan.

    Pipeline stages:
    1. Parse the repository URL
    2. Fetch primary repository metadata (the only fatal step)
    3. Fetch manifest, listings, scorecard, Snyk count, .gitignore, README
    4. Fetch Socket score, dependency licenses, source file sample
    5. Inspect, score and build findings

    Use as an async context manager to share one HTTP client across all
    fetchers. Without it, each request opens its own client.
    """

    def __init__(
        self,
        config: ScanConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Credentials and timeouts. Defaults to ScanConfig.from_env().
            client: Optional httpx client shared by all fetchers. An injected
                client is never closed by the pipeline.
        """
        self.config = config or ScanConfig.from_env()
        self.scorer = Scorer()
        self._http_client: httpx.AsyncClient | None = None
        self._owns_client = False
        self._bind_clients(client)

    def _bind_clients(self, client: httpx.AsyncClient | None) -> None:
        """(Re)create fetchers around a shared client. Each gets only its own credential."""
        config = self.config
        timeout = config.http_timeout
        self._http_client = client
        self.github = GitHubFetcher(token=config.github_token, client=client, timeout=timeout)
        self.scorecard = ScorecardFetcher(client=client, timeout=timeout)
        self.snyk = SnykFetcher(
            token=config.snyk_token, org_id=config.snyk_org_id, client=client, timeout=timeout
        )
        self.socket = SocketFetcher(api_key=config.socket_api_key, client=client, timeout=timeout)
        self.licenses = LicenseConflictChecker(NpmRegistryAdapter(client=client, timeout=timeout))

    async def __aenter__(self) -> "ScanPipeline":
        """Set up shared HTTP client."""
        if self._http_client is None:
            self._bind_clients(httpx.AsyncClient(timeout=self.config.http_timeout))
            self._owns_client = True
        return self

    async def __aexit__(self, *args) -> None:
        """Clean up HTTP client."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._bind_clients(None)
            self._owns_client = False

    async def scan(self, url: str, now: datetime | None = None) -> ScanResult:
        """Scan a repository URL, bounded by the configured scan timeout.

        Args:
            url: GitHub repository URL.
            now: Reference time for recency checks. Defaults to the current time.

        Returns:
            Complete ScanResult.

        Raises:
            InvalidRepoUrlError: The URL does not identify a GitHub repository.
            ScanError: The repository itself could not be fetched.
            ScanTimeoutError: The scan exceeded config.scan_timeout.
        """
        ref = parse_repo_url(url)
        if ref is None:
            raise InvalidRepoUrlError(url)

        try:
            return await asyncio.wait_for(self._scan(ref, url, now), timeout=self.config.scan_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Scan of {ref.slug} timed out after {self.config.scan_timeout}s")
            raise ScanTimeoutError(self.config.scan_timeout) from None

    async def _scan(self, ref: RepoRef, url: str, now: datetime | None) -> ScanResult:
        now = now or datetime.now(timezone.utc)
        logger.info(f"Scanning {ref.slug}")

        metadata = await self.github.fetch_repo_info(ref)
        stage_one = await self.fetch_stage_one(ref)
        stage_two = await self.fetch_stage_two(ref, stage_one)

        snapshot = self.build_snapshot(ref, metadata, stage_one, stage_two, fetched_at=now)
        return self.evaluate(snapshot, url, now)

    async def fetch_stage_one(self, ref: RepoRef) -> StageOne:
        """Run all fetches that need only the repository reference concurrently."""
        manifest, root_listing, scorecard, snyk_count, gitignore, readme, workflows = await asyncio.gather(
            self.github.fetch_manifest(ref),
            self.github.fetch_root_listing(ref),
            self.scorecard.fetch_scorecard(ref),
            self.snyk.fetch_issue_count(ref),
            self.github.fetch_gitignore(ref),
            self.github.fetch_readme(ref),
            self.github.fetch_workflow_listing(ref),
        )
        return StageOne(
            manifest=manifest,
            root_listing=root_listing,
            scorecard=scorecard,
            snyk_issue_count=snyk_count,
            gitignore=gitignore,
            readme=readme,
            workflow_listing=workflows,
        )

    async def fetch_stage_two(self, ref: RepoRef, stage_one: StageOne) -> StageTwo:
        """Run fetches that depend on the manifest or root listing."""
        manifest = stage_one.manifest
        socket_score, license_conflicts, source_files = await asyncio.gather(
            self.socket.fetch_score(manifest.name, manifest.version),
            self.licenses.check(manifest.license_lookup_names),
            self.github.fetch_source_files(ref, stage_one.root_listing),
        )
        return StageTwo(
            socket_score=socket_score,
            license_conflicts=license_conflicts,
            source_files=source_files,
        )

    def build_snapshot(
        self,
        ref: RepoRef,
        metadata: RepoMetadata,
        stage_one: StageOne,
        stage_two: StageTwo,
        fetched_at: datetime | None = None,
    ) -> RepositorySnapshot:
        return RepositorySnapshot(
            ref=ref,
            metadata=metadata,
            fetched_at=fetched_at,
            **stage_one._asdict(),
            **stage_two._asdict(),
        )

    def evaluate(self, snapshot: RepositorySnapshot, url: str, now: datetime) -> ScanResult:
        """Inspect, score and assemble the result for a fetched snapshot."""
        report = inspect_snapshot(snapshot)
        scores = self.scorer.calculate_scores(snapshot, report, now=now)
        details = build_details(snapshot, report, now=now)

        logger.info(f"{snapshot.ref.slug}: {scores.total} ({scores.grade})")

        return ScanResult(
            repo_url=url,
            security=scores.security,
            quality=scores.quality,
            dependency_risk=scores.dependency_risk,
            total_score=scores.total,
            grade=scores.grade,
            details=details,
            breakdown=scores.breakdown,
        )


async def scan_repo(url: str, config: ScanConfig | None = None) -> ScanResult:
    """Scan a single repository with a temporary pipeline."""
    async with ScanPipeline(config) as pipeline:
        return await pipeline.scan(url)
