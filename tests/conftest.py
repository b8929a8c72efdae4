from datetime import datetime, timezone

import pytest

from analyzers.models import (
    AnalysisReport,
    BranchSummary,
    ChurnSummary,
    CommitSummary,
    ContributorSummary,
    IssueSummary,
    PullRequestSummary,
    ReportMetadata,
    RepositorySummary,
    SlotResult,
)

ANALYZED_AT = datetime(2024, 6, 1, 12, 30, 15, 250000, tzinfo=timezone.utc)


def build_report(analyzed_at=ANALYZED_AT, commits=5):
    """Report for octo/demo whose contributors slot failed."""
    return AnalysisReport(
        metadata=ReportMetadata(
            repo_url="https://github.com/octo/demo",
            owner="octo",
            repo_name="demo",
            analyzed_at=analyzed_at,
            analysis_time_ms=1200,
            version="2.0.0",
        ),
        repository=RepositorySummary(name="demo", full_name="octo/demo"),
        commits=SlotResult[CommitSummary].ok(CommitSummary(total=commits)),
        pull_requests=SlotResult[PullRequestSummary].ok(PullRequestSummary(total=2)),
        issues=SlotResult[IssueSummary].ok(IssueSummary(total=1)),
        contributors=SlotResult[ContributorSummary].failed(
            ContributorSummary.empty(), "GitHub API rate limit exceeded"
        ),
        code_churn=SlotResult[ChurnSummary].ok(ChurnSummary.empty()),
        branches=SlotResult[BranchSummary].ok(BranchSummary.empty()),
    )


@pytest.fixture
def make_report():
    """Factory for sample analysis reports."""
    return build_report
