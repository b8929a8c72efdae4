"""
GitHub Repository Analysis Module.

Turns mined records into the summaries held by the report slots:
- Commit activity over calendar buckets
- Pull request throughput and review times
- Issue tracking and resolution
- Contributor concentration (bus factor, distribution)
- Code churn per file and per month
- Branch protection overview

All methods are synchronous and free of I/O; the aggregator decides when they
run and what happens when the data behind them could not be fetched.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

import pandas as pd

from analyzers.metrics import (
    activity_trend,
    average_resolution_days,
    average_review_hours,
    bus_factor,
    churn_rate,
    contribution_distribution,
    day_key,
    hour_key,
    month_key,
    percentage_rate,
    week_key,
)
from analyzers.models import (
    BranchCommit,
    BranchInfo,
    BranchSummary,
    ChurnedFile,
    ChurnSummary,
    CommitActivity,
    CommitSummary,
    ContributionDistribution,
    ContributorSummary,
    IssueActivity,
    IssueSummary,
    MonthlyChurn,
    PullRequestActivity,
    PullRequestSummary,
    RepositorySummary,
    TopContributor,
)
from config import logger
from miners.models import (
    BranchRecord,
    CommitRecord,
    ContributorRecord,
    IssueRecord,
    LocalHistory,
    PullRequestRecord,
    RepositoryMetadata,
)

RECENT_LIMIT = 10
TOP_CONTRIBUTORS_LIMIT = 15
TOP_FILES_LIMIT = 15
TOP_LABELS_LIMIT = 10
MESSAGE_LIMIT = 100
FILE_NAME_LIMIT = 50


def _value_counts(
    values: Iterable[Optional[str]], by_key: bool = True
) -> Dict[str, int]:
    """
    Count occurrences of each value.

    Args:
        values (Iterable[Optional[str]]): Values to count; None is skipped
        by_key (bool): Sort by value (calendar order) instead of by count

    Returns:
        Dict[str, int]: Plain-int counts
    """
    counts = pd.Series(list(values), dtype="object").dropna().value_counts()
    if by_key:
        counts = counts.sort_index()
    return {str(key): int(count) for key, count in counts.items()}


def _short_path(path: str) -> str:
    if len(path) > FILE_NAME_LIMIT:
        return "..." + path[-(FILE_NAME_LIMIT - 3) :]
    return path


class GitHubAnalyzer:
    """
    Builds per-slot summaries from mined repository records.

    Attributes:
        bus_factor_threshold (float): Share of contributions the bus factor covers
    """

    def __init__(self, bus_factor_threshold: float = 0.5):
        """
        Initialize the analyzer.

        Args:
            bus_factor_threshold (float): Share of all contributions that the
                bus factor's top contributors must reach.
        """
        self.bus_factor_threshold = bus_factor_threshold

    def summarize_repository(self, metadata: RepositoryMetadata) -> RepositorySummary:
        return RepositorySummary.model_validate(metadata.model_dump())

    def summarize_commits(
        self, commits: List[CommitRecord], now: Optional[datetime] = None
    ) -> CommitSummary:
        """
        Summarize commit activity.

        Commits whose author date cannot be parsed count towards the total and
        the per-author figures but stay out of every calendar bucket.

        Args:
            commits (List[CommitRecord]): Commits, newest first
            now (Optional[datetime]): Reference time for the per-day average

        Returns:
            CommitSummary: Commit statistics
        """
        if not commits:
            return CommitSummary.empty()

        now = now or datetime.now(timezone.utc)
        dates = [commit.parsed_date for commit in commits]
        dated = [date for date in dates if date is not None]
        if len(dated) < len(commits):
            logger.warning(
                {
                    "message": "Commits with unparseable dates left out of buckets",
                    "count": len(commits) - len(dated),
                }
            )

        frame = pd.DataFrame(
            {
                "month": [month_key(d) for d in dated],
                "week": [week_key(d) for d in dated],
                "day": [day_key(d) for d in dated],
                "hour": [hour_key(d) for d in dated],
            },
            dtype="object",
        )
        by_month = _value_counts(frame["month"])

        days_since_first_commit = 1
        if dated:
            oldest = min(
                d if d.tzinfo else d.replace(tzinfo=timezone.utc) for d in dated
            )
            days_since_first_commit = max((now - oldest).days, 1)

        return CommitSummary(
            total=len(commits),
            by_month=by_month,
            by_week=_value_counts(frame["week"]),
            by_day=_value_counts(frame["day"]),
            by_hour=_value_counts(frame["hour"]),
            by_author=_value_counts(
                (commit.author_name for commit in commits), by_key=False
            ),
            average_per_day=round(len(commits) / days_since_first_commit, 2),
            days_since_first_commit=days_since_first_commit,
            activity_trend=activity_trend(by_month),
            recent_activity=[
                CommitActivity(
                    hash=commit.hash[:7],
                    message=commit.message[:MESSAGE_LIMIT],
                    author=commit.author_name,
                    date=commit.author_date,
                    insertions=commit.insertions,
                    deletions=commit.deletions,
                )
                for commit in commits[:RECENT_LIMIT]
            ],
        )

    def summarize_pull_requests(
        self, pull_requests: List[PullRequestRecord]
    ) -> PullRequestSummary:
        if not pull_requests:
            return PullRequestSummary.empty()

        total = len(pull_requests)
        merged = sum(1 for pr in pull_requests if pr.merged_at is not None)

        return PullRequestSummary(
            total=total,
            open=sum(1 for pr in pull_requests if pr.state == "open"),
            closed=sum(1 for pr in pull_requests if pr.state == "closed"),
            merged=merged,
            merge_rate=percentage_rate(merged, total),
            average_review_time=round(average_review_hours(pull_requests)),
            by_month=_value_counts(month_key(pr.created_at) for pr in pull_requests),
            recent=[
                PullRequestActivity(
                    number=pr.number,
                    title=pr.title[:MESSAGE_LIMIT],
                    state=pr.state,
                    author=pr.author,
                    created_at=pr.created_at,
                    merged_at=pr.merged_at,
                )
                for pr in pull_requests[:RECENT_LIMIT]
            ],
        )

    def summarize_issues(self, issues: List[IssueRecord]) -> IssueSummary:
        if not issues:
            return IssueSummary.empty()

        total = len(issues)
        closed = sum(1 for issue in issues if issue.state == "closed")
        labels = (
            pd.Series([issue.labels for issue in issues], dtype="object")
            .explode()
            .dropna()
            .value_counts()
            .head(TOP_LABELS_LIMIT)
        )

        return IssueSummary(
            total=total,
            open=sum(1 for issue in issues if issue.state == "open"),
            closed=closed,
            close_rate=percentage_rate(closed, total),
            average_resolution_time=round(average_resolution_days(issues)),
            labels={str(name): int(count) for name, count in labels.items()},
            by_month=_value_counts(month_key(issue.created_at) for issue in issues),
            recent=[
                IssueActivity(
                    number=issue.number,
                    title=issue.title[:MESSAGE_LIMIT],
                    state=issue.state,
                    author=issue.author,
                    created_at=issue.created_at,
                    closed_at=issue.closed_at,
                    labels=issue.labels[:3],
                )
                for issue in issues[:RECENT_LIMIT]
            ],
        )

    def summarize_contributors(
        self, contributors: List[ContributorRecord]
    ) -> ContributorSummary:
        if not contributors:
            return ContributorSummary.empty()

        ranked = sorted(contributors, key=lambda c: c.contributions, reverse=True)
        counts = [contributor.contributions for contributor in ranked]
        total_contributions = sum(counts)

        return ContributorSummary(
            total=len(ranked),
            total_contributions=total_contributions,
            top=[
                TopContributor(
                    login=contributor.login,
                    contributions=contributor.contributions,
                    percentage=percentage_rate(
                        contributor.contributions, total_contributions
                    ),
                    profile_url=contributor.profile_url,
                    avatar_url=contributor.avatar_url,
                )
                for contributor in ranked[:TOP_CONTRIBUTORS_LIMIT]
            ],
            bus_factor=bus_factor(counts, self.bus_factor_threshold),
            distribution=ContributionDistribution(**contribution_distribution(counts)),
        )

    def summarize_churn(self, history: LocalHistory) -> ChurnSummary:
        """
        Summarize line churn per file and per month.

        Args:
            history (LocalHistory): File changes read from the numstat log

        Returns:
            ChurnSummary: Churn statistics; top files ranked by lines changed
        """
        if not history.file_changes:
            return ChurnSummary(commit_count=history.churn_commit_count)

        changes = pd.DataFrame([change.model_dump() for change in history.file_changes])
        total_additions = int(changes["additions"].sum())
        total_deletions = int(changes["deletions"].sum())

        per_file = changes.groupby("path", sort=False).agg(
            additions=("additions", "sum"),
            deletions=("deletions", "sum"),
            commits=("commit_hash", "size"),
        )
        per_file["total"] = per_file["additions"] + per_file["deletions"]
        per_file = per_file.sort_values("total", ascending=False, kind="stable").head(
            TOP_FILES_LIMIT
        )

        per_month = changes.groupby("month").agg(
            additions=("additions", "sum"), deletions=("deletions", "sum")
        )

        return ChurnSummary(
            total_additions=total_additions,
            total_deletions=total_deletions,
            net_change=total_additions - total_deletions,
            churn_rate=churn_rate(
                total_additions, total_deletions, history.churn_commit_count
            ),
            commit_count=history.churn_commit_count,
            top_churned_files=[
                ChurnedFile(
                    file=_short_path(str(path)),
                    full_path=str(path),
                    additions=int(row["additions"]),
                    deletions=int(row["deletions"]),
                    total=int(row["total"]),
                    commits=int(row["commits"]),
                )
                for path, row in per_file.iterrows()
            ],
            by_month={
                str(month): MonthlyChurn(
                    additions=int(row["additions"]), deletions=int(row["deletions"])
                )
                for month, row in per_month.iterrows()
            },
        )

    def summarize_branches(self, branches: List[BranchRecord]) -> BranchSummary:
        return BranchSummary(
            total=len(branches),
            protected_count=sum(1 for branch in branches if branch.protected),
            branches=[
                BranchInfo(
                    name=branch.name,
                    protected=branch.protected,
                    last_commit=BranchCommit(**branch.last_commit.model_dump())
                    if branch.last_commit
                    else None,
                    error=branch.error,
                )
                for branch in branches
            ],
        )
