"""
Report Data Models.

Defines the per-slot summaries, the tagged slot result and the analysis report
assembled from them. Uses Pydantic for validation and serialization; reports are
exported with camelCase keys.
"""

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Generic, List, Literal, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exported with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CommitActivity(CamelModel):
    hash: str
    message: str
    author: str
    date: str
    insertions: int = 0
    deletions: int = 0


class CommitSummary(CamelModel):
    """Commit statistics from the local clone."""

    total: int = 0
    by_month: Dict[str, int] = Field(default_factory=dict)
    by_week: Dict[str, int] = Field(default_factory=dict)
    by_day: Dict[str, int] = Field(default_factory=dict)
    by_hour: Dict[str, int] = Field(default_factory=dict)
    by_author: Dict[str, int] = Field(default_factory=dict)
    average_per_day: float = 0.0
    days_since_first_commit: int = 0
    activity_trend: Literal["increasing", "decreasing"] = "decreasing"
    recent_activity: List[CommitActivity] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "CommitSummary":
        return cls()


class PullRequestActivity(CamelModel):
    number: int
    title: str
    state: str
    author: str
    created_at: datetime
    merged_at: Optional[datetime] = None


class PullRequestSummary(CamelModel):
    """Pull request statistics. Rates are percentages with one decimal."""

    total: int = 0
    open: int = 0
    closed: int = 0
    merged: int = 0
    merge_rate: float = 0.0
    average_review_time: int = 0
    by_month: Dict[str, int] = Field(default_factory=dict)
    recent: List[PullRequestActivity] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "PullRequestSummary":
        return cls()


class IssueActivity(CamelModel):
    number: int
    title: str
    state: str
    author: str
    created_at: datetime
    closed_at: Optional[datetime] = None
    labels: List[str] = Field(default_factory=list)


class IssueSummary(CamelModel):
    """Issue statistics; average resolution time is in days."""

    total: int = 0
    open: int = 0
    closed: int = 0
    close_rate: float = 0.0
    average_resolution_time: int = 0
    labels: Dict[str, int] = Field(default_factory=dict)
    by_month: Dict[str, int] = Field(default_factory=dict)
    recent: List[IssueActivity] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "IssueSummary":
        return cls()


class TopContributor(CamelModel):
    login: str
    contributions: int
    percentage: float
    profile_url: Optional[str] = None
    avatar_url: Optional[str] = None


class ContributionDistribution(CamelModel):
    top10_percent: int = 0
    top25_percent: int = 0
    others: int = 0


class ContributorSummary(CamelModel):
    total: int = 0
    total_contributions: int = 0
    top: List[TopContributor] = Field(default_factory=list)
    bus_factor: int = 0
    distribution: ContributionDistribution = Field(
        default_factory=ContributionDistribution
    )

    @classmethod
    def empty(cls) -> "ContributorSummary":
        return cls()


class ChurnedFile(CamelModel):
    file: str
    full_path: str
    additions: int
    deletions: int
    total: int
    commits: int


class MonthlyChurn(CamelModel):
    additions: int = 0
    deletions: int = 0


class ChurnSummary(CamelModel):
    total_additions: int = 0
    total_deletions: int = 0
    net_change: int = 0
    churn_rate: float = 0.0
    commit_count: int = 0
    top_churned_files: List[ChurnedFile] = Field(default_factory=list)
    by_month: Dict[str, MonthlyChurn] = Field(default_factory=dict)

    @classmethod
    def empty(cls) -> "ChurnSummary":
        return cls()


class BranchCommit(CamelModel):
    sha: str
    message: str
    author: Optional[str] = None
    date: Optional[datetime] = None


class BranchInfo(CamelModel):
    name: str
    protected: bool = False
    last_commit: Optional[BranchCommit] = None
    error: Optional[str] = None


class BranchSummary(CamelModel):
    total: int = 0
    protected_count: int = 0
    branches: List[BranchInfo] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "BranchSummary":
        return cls()


class RepositorySummary(CamelModel):
    name: str
    full_name: str
    description: Optional[str] = None
    url: Optional[str] = None
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    open_issues: int = 0
    default_branch: str = "main"
    language: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    pushed_at: Optional[datetime] = None
    size: int = 0
    license: Optional[str] = None
    is_private: bool = False
    topics: List[str] = Field(default_factory=list)


class SlotStatus(Enum):
    OK = "ok"
    FAILED = "failed"


SummaryT = TypeVar("SummaryT", bound=BaseModel)


class SlotResult(BaseModel, Generic[SummaryT]):
    """
    Settled outcome of one sub-analysis.

    A failed slot still carries a well-typed (zero value) summary next to the
    reason it failed, so consumers never meet a missing slot.
    """

    status: SlotStatus
    summary: SummaryT
    error: Optional[str] = None

    @classmethod
    def ok(cls, summary: SummaryT) -> "SlotResult[SummaryT]":
        return cls(status=SlotStatus.OK, summary=summary)

    @classmethod
    def failed(cls, summary: SummaryT, reason: str) -> "SlotResult[SummaryT]":
        return cls(status=SlotStatus.FAILED, summary=summary, error=reason)

    @property
    def is_ok(self) -> bool:
        return self.status is SlotStatus.OK

    def to_document(self) -> Dict[str, Any]:
        """Summary fields, plus ``error`` when the sub-analysis failed."""
        document = self.summary.model_dump(mode="json", by_alias=True)
        if not self.is_ok:
            document["error"] = self.error
        return document


class ReportMetadata(CamelModel):
    repo_url: str
    owner: str
    repo_name: str
    analyzed_at: datetime
    analysis_time_ms: int
    version: str


class AnalysisReport(BaseModel):
    """Root aggregate of one repository analysis. Frozen once assembled."""

    model_config = ConfigDict(frozen=True)

    # (attribute, exported key)
    SLOTS: ClassVar[Tuple[Tuple[str, str], ...]] = (
        ("commits", "commits"),
        ("pull_requests", "pullRequests"),
        ("issues", "issues"),
        ("contributors", "contributors"),
        ("code_churn", "codeChurn"),
        ("branches", "branches"),
    )

    metadata: ReportMetadata
    repository: RepositorySummary
    commits: SlotResult[CommitSummary]
    pull_requests: SlotResult[PullRequestSummary]
    issues: SlotResult[IssueSummary]
    contributors: SlotResult[ContributorSummary]
    code_churn: SlotResult[ChurnSummary]
    branches: SlotResult[BranchSummary]

    @property
    def failed_slots(self) -> List[str]:
        return [name for name, _ in self.SLOTS if not getattr(self, name).is_ok]

    def to_document(self) -> Dict[str, Any]:
        """
        Render the JSON document persisted by the report store.

        Returns:
            Dict[str, Any]: JSON-native report with camelCase keys
        """
        document: Dict[str, Any] = {
            "metadata": self.metadata.model_dump(mode="json", by_alias=True),
            "repository": self.repository.model_dump(mode="json", by_alias=True),
        }
        for name, key in self.SLOTS:
            document[key] = getattr(self, name).to_document()
        document["timestamp"] = document["metadata"]["analyzedAt"]
        return document
