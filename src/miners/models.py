"""
Repository Mining Data Models.

Defines the records produced by the remote (GitHub API) and local (git clone)
miners. Uses Pydantic for validation and serialization.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RepositoryIdentity(BaseModel):
    """Owner/name pair parsed from a repository URL."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def clone_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.name}.git"


class RepositoryMetadata(BaseModel):
    """Point-in-time snapshot of the repository attributes."""

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
    has_wiki: bool = False
    has_pages: bool = False
    topics: List[str] = Field(default_factory=list)


class PullRequestRecord(BaseModel):
    """Raw Pull Request data from repository."""

    number: int
    title: str
    state: Literal["open", "closed"]
    created_at: datetime
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    author: str
    additions: int = 0
    deletions: int = 0

    @model_validator(mode="after")
    def merged_implies_closed(self) -> "PullRequestRecord":
        if self.merged_at is not None and self.state != "closed":
            raise ValueError(f"pull request #{self.number} is merged but {self.state}")
        return self


class IssueRecord(BaseModel):
    """Raw Issue data from repository (pull requests already removed)."""

    number: int
    title: str
    state: Literal["open", "closed"]
    created_at: datetime
    closed_at: Optional[datetime] = None
    author: str
    labels: List[str] = Field(default_factory=list)


class ContributorRecord(BaseModel):
    login: str
    contributions: int = Field(ge=0)
    profile_url: Optional[str] = None
    avatar_url: Optional[str] = None


class LastCommit(BaseModel):
    sha: str
    message: str
    author: Optional[str] = None
    date: Optional[datetime] = None


class BranchRecord(BaseModel):
    name: str
    protected: bool = False
    last_commit: Optional[LastCommit] = None
    error: Optional[str] = None


class CommitRecord(BaseModel):
    """One commit read from the local clone's log."""

    hash: str
    author_name: str
    author_date: str
    message: str
    insertions: int = 0
    deletions: int = 0

    @property
    def parsed_date(self) -> Optional[datetime]:
        """
        Author date with its original UTC offset, or None when git emitted
        something unparseable.
        """
        try:
            return datetime.fromisoformat(self.author_date.strip())
        except ValueError:
            return None


class FileChange(BaseModel):
    """One numstat line attributed to the commit block it appeared in."""

    commit_hash: str
    month: str
    path: str
    additions: int = Field(default=0, ge=0)
    deletions: int = Field(default=0, ge=0)


class LocalHistory(BaseModel):
    """Everything the local clone contributes to a report."""

    commits: List[CommitRecord] = Field(default_factory=list)
    file_changes: List[FileChange] = Field(default_factory=list)
    churn_commit_count: int = 0
