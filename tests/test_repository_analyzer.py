"""
Tests for the per-slot summaries built by GitHubAnalyzer.
"""

from datetime import datetime, timedelta, timezone

import pytest

from analyzers.models import CommitSummary
from analyzers.repository import GitHubAnalyzer
from miners.models import (
    BranchRecord,
    CommitRecord,
    ContributorRecord,
    FileChange,
    IssueRecord,
    LastCommit,
    LocalHistory,
    PullRequestRecord,
    RepositoryMetadata,
)

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def analyzer():
    return GitHubAnalyzer()


def commit(index, date, author="alice", insertions=1, deletions=0):
    return CommitRecord(
        hash=f"{index:040x}",
        author_name=author,
        author_date=date,
        message=f"Commit {index}",
        insertions=insertions,
        deletions=deletions,
    )


def test_summarize_repository(analyzer):
    metadata = RepositoryMetadata(
        name="demo", full_name="octo/demo", stars=5, license="MIT", topics=["x"]
    )
    summary = analyzer.summarize_repository(metadata)

    assert summary.full_name == "octo/demo"
    assert summary.stars == 5
    assert summary.model_dump(by_alias=True)["fullName"] == "octo/demo"


def test_summarize_commits(analyzer):
    commits = [
        commit(1, "2024-06-20T10:15:00+00:00", "alice"),
        commit(2, "2024-06-19T23:30:00+02:00", "bob"),
        commit(3, "2024-05-02T10:00:00+00:00", "alice"),
        commit(4, "2024-05-01T09:00:00+00:00", "alice"),
    ]

    summary = analyzer.summarize_commits(commits, now=NOW)

    assert summary.total == 4
    assert summary.by_month == {"2024-05": 2, "2024-06": 2}
    assert summary.by_author == {"alice": 3, "bob": 1}
    assert list(summary.by_author) == ["alice", "bob"]
    # Buckets use each commit's own UTC offset
    assert summary.by_day["2024-06-19"] == 1
    assert summary.by_hour["23"] == 1
    assert summary.days_since_first_commit == 60
    assert summary.average_per_day == round(4 / 60, 2)
    assert summary.recent_activity[0].hash == commits[0].hash[:7]
    assert sum(summary.by_week.values()) == 4


def test_unparseable_commit_dates_stay_out_of_buckets(analyzer):
    commits = [
        commit(1, "2024-06-20T10:15:00+00:00"),
        commit(2, "not a date", "bob"),
    ]

    summary = analyzer.summarize_commits(commits, now=NOW)

    assert summary.total == 2
    assert sum(summary.by_month.values()) == 1
    assert summary.by_author == {"alice": 1, "bob": 1}


def test_no_commits(analyzer):
    assert analyzer.summarize_commits([]) == CommitSummary.empty()


def test_summarize_pull_requests(analyzer):
    created = datetime(2024, 3, 1, tzinfo=timezone.utc)
    pull_requests = [
        PullRequestRecord(
            number=1,
            title="Merged",
            state="closed",
            created_at=created,
            closed_at=created + timedelta(hours=10),
            merged_at=created + timedelta(hours=10),
            author="alice",
        ),
        PullRequestRecord(
            number=2,
            title="Rejected",
            state="closed",
            created_at=created,
            closed_at=created + timedelta(hours=1),
            author="bob",
        ),
        PullRequestRecord(
            number=3, title="Pending", state="open", created_at=created, author="bob"
        ),
    ]

    summary = analyzer.summarize_pull_requests(pull_requests)

    assert (summary.total, summary.open, summary.closed, summary.merged) == (3, 1, 2, 1)
    assert summary.merge_rate == 33.3
    assert summary.average_review_time == 10
    assert summary.by_month == {"2024-03": 3}
    assert len(summary.recent) == 3


def test_summarize_issues(analyzer):
    created = datetime(2024, 4, 1, tzinfo=timezone.utc)
    issues = [
        IssueRecord(
            number=1,
            title="Crash",
            state="closed",
            created_at=created,
            closed_at=created + timedelta(days=3),
            author="x",
            labels=["bug", "p1"],
        ),
        IssueRecord(
            number=2,
            title="Idea",
            state="open",
            created_at=created,
            author="y",
            labels=["bug"],
        ),
    ]

    summary = analyzer.summarize_issues(issues)

    assert summary.close_rate == 50.0
    assert summary.average_resolution_time == 3
    assert summary.labels == {"bug": 2, "p1": 1}


def test_summarize_contributors(analyzer):
    contributors = [
        ContributorRecord(login="c", contributions=20),
        ContributorRecord(login="a", contributions=50),
        ContributorRecord(login="b", contributions=30),
    ]

    summary = analyzer.summarize_contributors(contributors)

    assert summary.total == 3
    assert summary.total_contributions == 100
    assert [c.login for c in summary.top] == ["a", "b", "c"]
    assert summary.top[0].percentage == 50.0
    assert summary.bus_factor == 1
    assert summary.distribution.top10_percent == 50
    assert summary.distribution.others == 50


def change(commit_hash, month, path, additions, deletions):
    return FileChange(
        commit_hash=commit_hash,
        month=month,
        path=path,
        additions=additions,
        deletions=deletions,
    )


def test_summarize_churn(analyzer):
    long_path = "src/" + "nested/" * 10 + "module.py"
    history = LocalHistory(
        file_changes=[
            change("a1", "2024-05", "app.py", 10, 2),
            change("a1", "2024-05", long_path, 1, 1),
            change("b2", "2024-06", "app.py", 5, 5),
            change("b2", "2024-06", "logo.png", 0, 0),
        ],
        churn_commit_count=2,
    )

    summary = analyzer.summarize_churn(history)

    assert summary.total_additions == 16
    assert summary.total_deletions == 8
    assert summary.net_change == 8
    assert summary.churn_rate == 12.0
    assert summary.commit_count == 2

    top = summary.top_churned_files[0]
    assert (top.full_path, top.total, top.commits) == ("app.py", 22, 2)
    shortened = next(f for f in summary.top_churned_files if f.full_path == long_path)
    assert shortened.file.startswith("...")
    assert len(shortened.file) == 50
    assert summary.by_month["2024-06"].deletions == 5


def test_summarize_churn_without_changes(analyzer):
    summary = analyzer.summarize_churn(LocalHistory(churn_commit_count=3))

    assert summary.total_additions == 0
    assert summary.top_churned_files == []
    assert summary.commit_count == 3


def test_summarize_branches(analyzer):
    branches = [
        BranchRecord(
            name="main",
            protected=True,
            last_commit=LastCommit(sha="abc1234", message="Release"),
        ),
        BranchRecord(name="dev", error="Repository not found"),
    ]

    summary = analyzer.summarize_branches(branches)

    assert summary.total == 2
    assert summary.protected_count == 1
    assert summary.branches[0].last_commit.sha == "abc1234"
    assert summary.branches[1].error == "Repository not found"
