"""
Tests for building the finding list.
"""

from datetime import timedelta

from safevibes.analyzers.findings import build_details
from safevibes.models.schemas import (
    Category,
    DetailStatus,
    InspectionReport,
    LicenseConflictResult,
    ManifestInfo,
    RepoMetadata,
    ScorecardResult,
)

from conftest import NOW


def _by_id(details):
    return {d.id: d for d in details}


def _metadata(**overrides) -> RepoMetadata:
    values = dict(owner="acme", name="widget", description="A well described example project",
                  stars=42, size_kb=1200, license="MIT", open_issues=5, updated_at=NOW - timedelta(days=10))
    values.update(overrides)
    return RepoMetadata(**values)


class TestBuildDetails:
    """Tests for build_details."""

    def test_no_manifest(self, make_snapshot, clean_report):
        """Manifest-only checks are omitted and dep_count reports the sentinel."""
        details = _by_id(build_details(make_snapshot(), clean_report, now=NOW))
        for missing in ("dangerous_scripts", "test_script", "package_repository", "lock_file"):
            assert missing not in details
        assert details["dep_count"].status == DetailStatus.GOOD
        assert details["dep_count"].value == "No package.json"

    def test_with_manifest(self, make_snapshot, clean_report):
        manifest = ManifestInfo(dep_count=40, has_test_script=True)
        details = _by_id(build_details(make_snapshot(manifest=manifest), clean_report, now=NOW))
        assert details["dangerous_scripts"].status == DetailStatus.GOOD
        assert details["test_script"].status == DetailStatus.GOOD
        assert details["package_repository"].status == DetailStatus.WARN
        assert details["lock_file"].status == DetailStatus.GOOD
        assert details["dep_count"].status == DetailStatus.WARN
        assert details["dep_count"].value == "40 package(s)"

    def test_categories(self, make_snapshot, clean_report):
        details = _by_id(build_details(make_snapshot(), clean_report, now=NOW))
        assert details["exposed_env"].category == Category.SECURITY
        assert details["readme_present"].category == Category.QUALITY
        assert details["recent_activity"].category == Category.DEPENDENCY
        assert details["license"].category == Category.DEPENDENCY

    def test_exposed_env(self, make_snapshot, clean_report):
        report = clean_report.model_copy(update={"exposed_env_files": [".env", ".env.local"]})
        detail = _by_id(build_details(make_snapshot(), report, now=NOW))["exposed_env"]
        assert detail.status == DetailStatus.BAD
        assert detail.value == ".env, .env.local"

    def test_missing_files_warn(self, make_snapshot):
        """Missing documentation is a warning, not a failure."""
        details = _by_id(build_details(make_snapshot(), InspectionReport(), now=NOW))
        for check in ("gitignore_env", "security_md", "readme_present", "contributing", "ci_workflow"):
            assert details[check].status == DetailStatus.WARN, check

    def test_repo_license(self, make_snapshot, clean_report):
        for license_id, status in (("MIT", DetailStatus.GOOD), ("NOASSERTION", DetailStatus.BAD), (None, DetailStatus.BAD)):
            snapshot = make_snapshot(metadata=_metadata(license=license_id))
            assert _by_id(build_details(snapshot, clean_report, now=NOW))["repo_license"].status == status

    def test_enrichment_only_when_present(self, make_snapshot, clean_report):
        details = _by_id(build_details(make_snapshot(), clean_report, now=NOW))
        assert "scorecard" not in details
        assert "snyk_issues" not in details
        assert "socket_score" not in details

    def test_enrichment_thresholds(self, make_snapshot, clean_report):
        snapshot = make_snapshot(scorecard=ScorecardResult(score=4.0), snyk_issue_count=4, socket_score=0.7)
        details = _by_id(build_details(snapshot, clean_report, now=NOW))
        assert details["scorecard"].status == DetailStatus.WARN
        assert details["scorecard"].value == "4.0/10"
        assert details["snyk_issues"].status == DetailStatus.BAD
        assert details["snyk_issues"].value == "4 issue(s)"
        assert details["socket_score"].status == DetailStatus.GOOD
        assert details["socket_score"].value == "70%"

    def test_recent_activity_bands(self, make_snapshot, clean_report):
        for days, status in ((10, DetailStatus.GOOD), (90, DetailStatus.WARN), (179, DetailStatus.WARN), (180, DetailStatus.BAD)):
            snapshot = make_snapshot(metadata=_metadata(updated_at=NOW - timedelta(days=days)))
            detail = _by_id(build_details(snapshot, clean_report, now=NOW))["recent_activity"]
            assert detail.status == status
            assert detail.value == f"{days} days ago"

    def test_license_conflict(self, make_snapshot, clean_report):
        conflicts = LicenseConflictResult(has_conflict=True, conflicting_packages=["gpl-lib", "agpl-lib"])
        snapshot = make_snapshot(manifest=ManifestInfo(dep_count=2), license_conflicts=conflicts)
        detail = _by_id(build_details(snapshot, clean_report, now=NOW))["license"]
        assert detail.status == DetailStatus.BAD
        assert detail.value == "gpl-lib, agpl-lib"

    def test_quality_bands(self, make_snapshot, clean_report):
        snapshot = make_snapshot(metadata=_metadata(open_issues=51, stars=3, size_kb=12000))
        details = _by_id(build_details(snapshot, clean_report, now=NOW))
        assert details["open_issues"].status == DetailStatus.BAD
        assert details["stars"].status == DetailStatus.WARN
        assert details["repo_size"].status == DetailStatus.WARN
        assert details["repo_size"].value == "12000 KB"

    def test_new_project_stars(self, make_snapshot, clean_report):
        snapshot = make_snapshot(metadata=_metadata(stars=0))
        assert _by_id(build_details(snapshot, clean_report, now=NOW))["stars"].status == DetailStatus.GOOD
