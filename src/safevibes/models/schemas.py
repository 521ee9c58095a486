"""Pydantic models for scan data."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Category(str, Enum):
    """Scoring categories."""

    SECURITY = "security"
    QUALITY = "quality"
    DEPENDENCY = "dependency"


class DetailStatus(str, Enum):
    """Evaluation status of a single check."""

    GOOD = "good"
    WARN = "warn"
    BAD = "bad"


class RepoRef(BaseModel):
    """Reference to a GitHub repository."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @property
    def url(self) -> str:
        """Get the full repository URL."""
        return f"https://github.com/{self.owner}/{self.name}"

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


# --- GitHub Data Models ---


class RepoMetadata(BaseModel):
    """Core repository metadata from the GitHub API."""

    owner: str
    name: str
    description: str | None = None
    stars: int = 0
    forks: int = 0
    size_kb: int = 0
    default_branch: str = "main"
    license: str | None = None
    has_issues: bool = True
    open_issues: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DirEntry(BaseModel):
    """One entry of a GitHub contents listing."""

    name: str
    type: str  # file, dir, symlink, submodule
    size: int = 0
    path: str = ""


class ManifestInfo(BaseModel):
    """Parsed package.json.

    ``dep_count`` is -1 when no manifest was found, which is distinct from a
    manifest that declares zero dependencies.
    """

    name: str | None = None
    version: str | None = None
    description: str | None = None
    scripts: dict[str, str] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)
    dev_dependencies: list[str] = Field(default_factory=list)
    dep_count: int = -1
    has_test_script: bool = False
    has_repository_field: bool = False
    license_lookup_names: list[str] = Field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.dep_count >= 0


# --- Enrichment Models ---


class ScorecardCheck(BaseModel):
    """Individual OpenSSF Scorecard check."""

    name: str
    score: float | None = None
    reason: str | None = None


class ScorecardRepo(BaseModel):
    name: str
    commit: str | None = None


class ScorecardResult(BaseModel):
    """OpenSSF Scorecard response (composite score is 0-10)."""

    score: float
    date: str | None = None
    repo: ScorecardRepo | None = None
    checks: list[ScorecardCheck] = Field(default_factory=list)


class LicenseConflictResult(BaseModel):
    """Outcome of the dependency license check."""

    has_conflict: bool = False
    conflicting_packages: list[str] = Field(default_factory=list)
    licenses: dict[str, str | None] = Field(default_factory=dict)


# --- Snapshot and Inspection ---


class RepositorySnapshot(BaseModel):
    """Everything fetched about one repository for one scan."""

    model_config = ConfigDict(frozen=True)

    ref: RepoRef
    metadata: RepoMetadata
    root_listing: list[DirEntry] = Field(default_factory=list)
    gitignore: str | None = None
    readme: str | None = None
    manifest: ManifestInfo = Field(default_factory=ManifestInfo)
    workflow_listing: list[DirEntry] = Field(default_factory=list)
    source_files: dict[str, str] = Field(default_factory=dict)
    scorecard: ScorecardResult | None = None
    snyk_issue_count: int | None = None
    socket_score: float | None = None
    license_conflicts: LicenseConflictResult = Field(default_factory=LicenseConflictResult)
    fetched_at: datetime | None = None


class RuleMatch(BaseModel):
    """A pattern rule that matched inspected content."""

    rule_id: str
    severity: str  # critical, high, medium, low
    location: str
    matched_content: str
    description: str


class InspectionReport(BaseModel):
    """Outputs of all content inspectors for a snapshot."""

    exposed_env_files: list[str] = Field(default_factory=list)
    gitignore_has_env: bool = False
    readme_sensitive: bool = False
    readme_has_http: bool = False
    console_secrets: bool = False
    hardcoded_secrets: bool = False
    dangerous_scripts: bool = False
    has_security_policy: bool = False
    has_lock_file: bool = False
    has_readme: bool = False
    has_contributing: bool = False
    has_ci: bool = False
    matches: list[RuleMatch] = Field(default_factory=list)


# --- Scoring Models ---


class ScoreDetail(BaseModel):
    """One evaluated check, presented as evidence."""

    id: str
    category: Category
    status: DetailStatus
    value: str | None = None


class ScoreBreakdownItem(BaseModel):
    """One capped point contributor to a category score."""

    item: str
    points: float = Field(ge=0)
    max: float


class ScoreBreakdown(BaseModel):
    security: list[ScoreBreakdownItem] = Field(default_factory=list)
    quality: list[ScoreBreakdownItem] = Field(default_factory=list)
    dependency: list[ScoreBreakdownItem] = Field(default_factory=list)


class Scores(BaseModel):
    """Heuristic subtotals, blended category scores and the total."""

    security_heuristic: float
    quality_heuristic: float
    dependency_heuristic: float
    security: int = Field(ge=0, le=100)
    quality: int = Field(ge=0, le=100)
    dependency_risk: int = Field(ge=0, le=100)
    total: int = Field(ge=0, le=100)
    grade: str  # S, A, B, C, D
    breakdown: ScoreBreakdown


# --- Final Scan Result ---


class ScanResult(BaseModel):
    """Complete result of a repository scan."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    repo_url: str
    security: int = Field(ge=0, le=100)
    quality: int = Field(ge=0, le=100)
    dependency_risk: int = Field(ge=0, le=100)
    total_score: int = Field(ge=0, le=100)
    grade: str
    details: list[ScoreDetail] = Field(default_factory=list)
    breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)

    def to_json_dict(self) -> dict:
        """Serialize with the camelCase keys presentation layers expect."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
