"""Data models and schemas."""

from safevibes.models.schemas import (
    ManifestInfo,
    RepoRef,
    RepositorySnapshot,
    ScanResult,
    ScoreBreakdownItem,
    ScoreDetail,
)

__all__ = [
    "ManifestInfo",
    "RepoRef",
    "RepositorySnapshot",
    "ScanResult",
    "ScoreBreakdownItem",
    "ScoreDetail",
]
