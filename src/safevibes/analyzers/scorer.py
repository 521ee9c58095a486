"""Score calculator for repository hygiene."""

import math
from datetime import datetime, timezone

from safevibes.analyzers.scorecard import scorecard_to_100
from safevibes.analyzers.snyk import issue_count_penalty
from safevibes.analyzers.socket_dev import socket_score_to_100
from safevibes.models.schemas import (
    InspectionReport,
    RepositorySnapshot,
    ScoreBreakdown,
    ScoreBreakdownItem,
    Scores,
)

# Quality thresholds
OPEN_ISSUES_FULL = 20
OPEN_ISSUES_HALF = 50
REPO_SIZE_FULL_KB = 5000
REPO_SIZE_HALF_KB = 10000
DESCRIPTION_MIN_CHARS = 10

# Dependency thresholds: (max dependencies, points)
DEP_COUNT_TIERS = [(10, 25), (25, 20), (50, 15), (100, 10)]
DEP_COUNT_FLOOR = 5
# (max days since update, points)
RECENCY_TIERS = [(30, 25), (90, 18), (180, 10)]


def round_half_up(value: float) -> int:
    """Round .5 upward, unlike Python's banker's rounding."""
    return math.floor(value + 0.5)


def clamp(score: float) -> int:
    """Round and clamp a score to [0, 100]."""
    return min(100, max(0, round_half_up(score)))


def score_to_grade(total: int) -> str:
    """Convert a total score to a letter grade."""
    if total >= 90:
        return "S"
    elif total >= 80:
        return "A"
    elif total >= 70:
        return "B"
    elif total >= 60:
        return "C"
    else:
        return "D"


def days_since(moment: datetime | None, now: datetime) -> int | None:
    """Whole days elapsed since a timestamp, None if unknown."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return max(0, (now - moment).days)


def _item(name: str, passed: bool, max_points: float) -> ScoreBreakdownItem:
    return ScoreBreakdownItem(item=name, points=max_points if passed else 0, max=max_points)


class Scorer:
    """Calculates category scores from a snapshot and its inspection report.

    Category weights (total 100%):
    - Security: 40%
    - Quality: 35%
    - Dependency risk: 25%

    Each category is the sum of a fixed set of breakdown items. Security
    is then averaged with the OpenSSF Scorecard (when available) and
    reduced by a Snyk issue penalty; dependency risk is averaged with the
    Socket depscore.
    """

    WEIGHTS = {
        "security": 40,
        "quality": 35,
        "dependency": 25,
    }

    SECURITY_ITEM_POINTS = 12.5
    QUALITY_ITEM_POINTS = 12
    QUALITY_TIERED_POINTS = 14
    DEPENDENCY_ITEM_POINTS = 25

    def calculate_scores(
        self,
        snapshot: RepositorySnapshot,
        report: InspectionReport,
        now: datetime | None = None,
    ) -> Scores:
        """Calculate all category scores, the total and the grade.

        Args:
            snapshot: Fetched repository data.
            report: Inspector outputs for the snapshot.
            now: Reference time for recency. Defaults to the current time.

        Returns:
            Scores with heuristic subtotals, blended scores and breakdown.
        """
        now = now or datetime.now(timezone.utc)

        breakdown = ScoreBreakdown(
            security=self.security_breakdown(snapshot, report),
            quality=self.quality_breakdown(snapshot, report),
            dependency=self.dependency_breakdown(snapshot, report, now),
        )

        security_heuristic = sum(item.points for item in breakdown.security)
        quality_heuristic = sum(item.points for item in breakdown.quality)
        dependency_heuristic = sum(item.points for item in breakdown.dependency)

        security = self.blend_security(security_heuristic, snapshot)
        quality = clamp(quality_heuristic)
        dependency_risk = self.blend_dependency(dependency_heuristic, snapshot)

        total = self.calculate_total(security, quality, dependency_risk)

        return Scores(
            security_heuristic=security_heuristic,
            quality_heuristic=quality_heuristic,
            dependency_heuristic=dependency_heuristic,
            security=security,
            quality=quality,
            dependency_risk=dependency_risk,
            total=total,
            grade=score_to_grade(total),
            breakdown=breakdown,
        )

    def calculate_total(self, security: int, quality: int, dependency_risk: int) -> int:
        """Weighted total, rounded half-up in integer arithmetic."""
        weighted = (
            security * self.WEIGHTS["security"]
            + quality * self.WEIGHTS["quality"]
            + dependency_risk * self.WEIGHTS["dependency"]
        )
        return min(100, max(0, (weighted + 50) // 100))

    def security_breakdown(
        self, snapshot: RepositorySnapshot, report: InspectionReport
    ) -> list[ScoreBreakdownItem]:
        """Eight binary security items of 12.5 points each."""
        pts = self.SECURITY_ITEM_POINTS
        # No manifest means no scripts to run, which is not a defect
        scripts_ok = not snapshot.manifest.found or not report.dangerous_scripts

        return [
            _item("exposedEnv", not report.exposed_env_files, pts),
            _item("gitignoreEnv", report.gitignore_has_env, pts),
            _item("readmeSecrets", not report.readme_sensitive, pts),
            _item("consoleSecrets", not report.console_secrets, pts),
            _item("hardcodedSecrets", not report.hardcoded_secrets, pts),
            _item("securityPolicy", report.has_security_policy, pts),
            _item("httpsLinks", not report.readme_has_http, pts),
            _item("dangerousScripts", scripts_ok, pts),
        ]

    def quality_breakdown(
        self, snapshot: RepositorySnapshot, report: InspectionReport
    ) -> list[ScoreBreakdownItem]:
        """Documentation, CI and project-size items summing to 100."""
        pts = self.QUALITY_ITEM_POINTS
        manifest = snapshot.manifest
        metadata = snapshot.metadata

        description = effective_description(snapshot)

        return [
            _item("description", len(description) > DESCRIPTION_MIN_CHARS, pts),
            _item("readme", report.has_readme, pts),
            _item("contributing", report.has_contributing, pts),
            _item("ciWorkflow", report.has_ci, pts),
            _item("testScript", manifest.has_test_script, pts),
            _item("repositoryField", manifest.has_repository_field, pts),
            ScoreBreakdownItem(
                item="openIssues",
                points=self._tiered_open_issues(metadata.open_issues),
                max=self.QUALITY_TIERED_POINTS,
            ),
            ScoreBreakdownItem(
                item="repoSize",
                points=self._tiered_repo_size(metadata.size_kb),
                max=self.QUALITY_TIERED_POINTS,
            ),
        ]

    def dependency_breakdown(
        self,
        snapshot: RepositorySnapshot,
        report: InspectionReport,
        now: datetime,
    ) -> list[ScoreBreakdownItem]:
        """Four 25-point dependency items."""
        pts = self.DEPENDENCY_ITEM_POINTS
        manifest = snapshot.manifest

        # Without a manifest the lock file check does not apply
        lock_ok = report.has_lock_file or not manifest.found

        return [
            ScoreBreakdownItem(item="depCount", points=self._tiered_dep_count(manifest.dep_count), max=pts),
            _item("lockFile", lock_ok, pts),
            ScoreBreakdownItem(
                item="recency",
                points=self._tiered_recency(days_since(snapshot.metadata.updated_at, now)),
                max=pts,
            ),
            _item("license", not snapshot.license_conflicts.has_conflict, pts),
        ]

    def blend_security(self, heuristic: float, snapshot: RepositorySnapshot) -> int:
        """Average with the Scorecard score, then apply the Snyk penalty."""
        security = clamp(heuristic)
        if snapshot.scorecard is not None:
            security = clamp((security + scorecard_to_100(snapshot.scorecard.score)) / 2)
        if snapshot.snyk_issue_count is not None:
            security = clamp(security - issue_count_penalty(snapshot.snyk_issue_count))
        return security

    def blend_dependency(self, heuristic: float, snapshot: RepositorySnapshot) -> int:
        """Average with the Socket depscore when available."""
        dependency = clamp(heuristic)
        if snapshot.socket_score is not None:
            dependency = clamp((dependency + socket_score_to_100(snapshot.socket_score)) / 2)
        return dependency

    def _tiered_open_issues(self, open_issues: int) -> float:
        if open_issues <= OPEN_ISSUES_FULL:
            return self.QUALITY_TIERED_POINTS
        if open_issues <= OPEN_ISSUES_HALF:
            return self.QUALITY_TIERED_POINTS / 2
        return 0

    def _tiered_repo_size(self, size_kb: int) -> float:
        if size_kb < REPO_SIZE_FULL_KB:
            return self.QUALITY_TIERED_POINTS
        if size_kb < REPO_SIZE_HALF_KB:
            return self.QUALITY_TIERED_POINTS / 2
        return 0

    def _tiered_dep_count(self, dep_count: int) -> float:
        # -1 (no manifest) counts as no dependencies
        for limit, points in DEP_COUNT_TIERS:
            if dep_count <= limit:
                return points
        return DEP_COUNT_FLOOR

    def _tiered_recency(self, days: int | None) -> float:
        if days is None:
            return 0
        for limit, points in RECENCY_TIERS:
            if days < limit:
                return points
        return 0


def effective_description(snapshot: RepositorySnapshot) -> str:
    """Host description, falling back to the manifest's description."""
    description = (snapshot.metadata.description or "").strip()
    if not description:
        description = (snapshot.manifest.description or "").strip()
    return description
