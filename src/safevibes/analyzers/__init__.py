"""Fetchers, inspectors and scoring for repository scans."""

from safevibes.analyzers.github import GitHubFetcher
from safevibes.analyzers.licenses import LicenseConflictChecker
from safevibes.analyzers.pipeline import ScanPipeline, scan_repo
from safevibes.analyzers.scorecard import ScorecardFetcher
from safevibes.analyzers.scorer import Scorer
from safevibes.analyzers.snyk import SnykFetcher
from safevibes.analyzers.socket_dev import SocketFetcher

__all__ = [
    "GitHubFetcher",
    "LicenseConflictChecker",
    "ScanPipeline",
    "ScorecardFetcher",
    "Scorer",
    "SnykFetcher",
    "SocketFetcher",
    "scan_repo",
]
