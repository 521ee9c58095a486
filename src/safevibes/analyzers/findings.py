"""Findings: one presentation-oriented record per evaluated check."""

from datetime import datetime, timezone

from safevibes.analyzers.scorer import days_since, effective_description
from safevibes.analyzers.socket_dev import socket_score_to_100
from safevibes.models.schemas import (
    Category,
    DetailStatus,
    InspectionReport,
    RepositorySnapshot,
    ScoreDetail,
)

GOOD = DetailStatus.GOOD
WARN = DetailStatus.WARN
BAD = DetailStatus.BAD


def _detail(detail_id: str, category: Category, status: DetailStatus, value: str | None = None) -> ScoreDetail:
    return ScoreDetail(id=detail_id, category=category, status=status, value=value)


def _format_days_ago(days: int | None) -> str:
    if days is None:
        return "Unknown"
    if days == 0:
        return "Today"
    if days == 1:
        return "1 day ago"
    return f"{days} days ago"


def build_details(
    snapshot: RepositorySnapshot,
    report: InspectionReport,
    now: datetime | None = None,
) -> list[ScoreDetail]:
    """Build the finding list for a scan.

    Findings use the same thresholds as scoring but are tri-state, and
    enrichment-only checks (scorecard, Snyk, Socket) appear only when the
    enrichment returned a value. Manifest-dependent checks are omitted
    when the repository has no package.json.
    """
    now = now or datetime.now(timezone.utc)
    details: list[ScoreDetail] = []
    details.extend(security_details(snapshot, report))
    details.extend(quality_details(snapshot, report))
    details.extend(dependency_details(snapshot, report, now))
    return details


def security_details(snapshot: RepositorySnapshot, report: InspectionReport) -> list[ScoreDetail]:
    sec = Category.SECURITY
    metadata = snapshot.metadata
    has_manifest = snapshot.manifest.found

    license_id = metadata.license
    has_license = bool(license_id) and license_id != "NOASSERTION"
    exposed = report.exposed_env_files

    details = [
        _detail("repo_license", sec, GOOD if has_license else BAD, license_id),
        _detail("issues_enabled", sec, GOOD if metadata.has_issues else WARN, "Yes" if metadata.has_issues else "No"),
        _detail("exposed_env", sec, BAD if exposed else GOOD, ", ".join(exposed) if exposed else "None found"),
        _detail(
            "gitignore_env", sec,
            GOOD if report.gitignore_has_env else WARN,
            "Yes" if report.gitignore_has_env else "No or no .gitignore",
        ),
        _detail(
            "sensitive_readme", sec,
            BAD if report.readme_sensitive else GOOD,
            "Suspicious pattern found" if report.readme_sensitive else "OK",
        ),
        _detail(
            "console_secrets", sec,
            BAD if report.console_secrets else GOOD,
            "Credential logged" if report.console_secrets else "OK",
        ),
        _detail(
            "hardcoded_secrets", sec,
            BAD if report.hardcoded_secrets else GOOD,
            "Credential literal found" if report.hardcoded_secrets else "OK",
        ),
        _detail(
            "security_md", sec,
            GOOD if report.has_security_policy else WARN,
            "Present" if report.has_security_policy else "Missing",
        ),
    ]

    if has_manifest:
        details.append(_detail(
            "dangerous_scripts", sec,
            BAD if report.dangerous_scripts else GOOD,
            "Risky pattern found" if report.dangerous_scripts else "OK",
        ))

    details.append(_detail(
        "readme_http", sec,
        WARN if report.readme_has_http else GOOD,
        "Uses http://" if report.readme_has_http else "OK",
    ))

    if snapshot.scorecard is not None:
        score = snapshot.scorecard.score
        if score >= 7:
            status = GOOD
        elif score >= 4:
            status = WARN
        else:
            status = BAD
        details.append(_detail("scorecard", sec, status, f"{score:.1f}/10"))

    if snapshot.snyk_issue_count is not None:
        count = snapshot.snyk_issue_count
        if count == 0:
            status = GOOD
        elif count <= 3:
            status = WARN
        else:
            status = BAD
        details.append(_detail("snyk_issues", sec, status, f"{count} issue(s)"))

    return details


def quality_details(snapshot: RepositorySnapshot, report: InspectionReport) -> list[ScoreDetail]:
    qual = Category.QUALITY
    metadata = snapshot.metadata
    manifest = snapshot.manifest

    description = effective_description(snapshot)

    if metadata.open_issues <= 20:
        issues_status = GOOD
    elif metadata.open_issues <= 50:
        issues_status = WARN
    else:
        issues_status = BAD

    details = [
        _detail(
            "description", qual,
            GOOD if len(description) > 10 else WARN,
            f"{len(description)} chars" if description else "None",
        ),
        _detail("readme_present", qual, GOOD if report.has_readme else WARN, "Yes" if report.has_readme else "No"),
        _detail(
            "contributing", qual,
            GOOD if report.has_contributing else WARN,
            "Present" if report.has_contributing else "Missing",
        ),
        _detail("open_issues", qual, issues_status, str(metadata.open_issues)),
        _detail("ci_workflow", qual, GOOD if report.has_ci else WARN, "Yes" if report.has_ci else "No"),
    ]

    if manifest.found:
        details.append(_detail(
            "test_script", qual,
            GOOD if manifest.has_test_script else WARN,
            "Yes" if manifest.has_test_script else "No",
        ))
        details.append(_detail(
            "package_repository", qual,
            GOOD if manifest.has_repository_field else WARN,
            "Set" if manifest.has_repository_field else "Missing",
        ))

    # Zero stars is a new project, not a warning sign
    stars = metadata.stars
    details.append(_detail("stars", qual, WARN if 1 <= stars < 10 else GOOD, str(stars)))

    size = metadata.size_kb
    details.append(_detail("repo_size", qual, WARN if size >= 10000 else GOOD, f"{size} KB" if size > 0 else None))

    return details


def dependency_details(
    snapshot: RepositorySnapshot,
    report: InspectionReport,
    now: datetime,
) -> list[ScoreDetail]:
    dep = Category.DEPENDENCY
    manifest = snapshot.manifest
    details: list[ScoreDetail] = []

    if manifest.found:
        count = manifest.dep_count
        if count <= 25:
            status = GOOD
        elif count <= 60:
            status = WARN
        else:
            status = BAD
        details.append(_detail("dep_count", dep, status, f"{count} package(s)"))
        details.append(_detail(
            "lock_file", dep,
            GOOD if report.has_lock_file else WARN,
            "Present" if report.has_lock_file else "Missing",
        ))
    else:
        details.append(_detail("dep_count", dep, GOOD, "No package.json"))

    days = days_since(snapshot.metadata.updated_at, now)
    if days is not None and days < 90:
        activity = GOOD
    elif days is not None and days < 180:
        activity = WARN
    else:
        activity = BAD
    details.append(_detail("recent_activity", dep, activity, _format_days_ago(days)))

    conflicts = snapshot.license_conflicts
    details.append(_detail(
        "license", dep,
        BAD if conflicts.has_conflict else GOOD,
        ", ".join(conflicts.conflicting_packages) if conflicts.has_conflict else "No conflict",
    ))

    if snapshot.socket_score is not None:
        pct = socket_score_to_100(snapshot.socket_score)
        if pct >= 70:
            status = GOOD
        elif pct >= 40:
            status = WARN
        else:
            status = BAD
        details.append(_detail("socket_score", dep, status, f"{pct}%"))

    return details
