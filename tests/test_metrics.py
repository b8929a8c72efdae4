"""
Tests for the derived repository metrics.
"""

from datetime import datetime, timedelta, timezone

import pytest

from analyzers.metrics import (
    activity_trend,
    average_resolution_days,
    average_review_hours,
    bus_factor,
    churn_rate,
    contribution_distribution,
    month_key,
    percentage_rate,
    week_key,
)
from miners.models import IssueRecord, PullRequestRecord

BASE = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_pr(number, state="closed", merged_after=None):
    merged_at = BASE + merged_after if merged_after is not None else None
    return PullRequestRecord(
        number=number,
        title=f"PR {number}",
        state=state,
        created_at=BASE,
        closed_at=merged_at,
        merged_at=merged_at,
        author="dev",
    )


def test_percentage_rate():
    """Test that one merged PR out of three gives a 33.3% merge rate."""
    assert percentage_rate(1, 3) == 33.3
    assert percentage_rate(0, 0) == 0.0
    assert percentage_rate(5, 5) == 100.0


def test_average_review_hours_excludes_anomalies():
    """Test that negative, zero and year-long review intervals are left out."""
    pull_requests = [
        make_pr(1, merged_after=timedelta(hours=2)),
        make_pr(2, merged_after=timedelta(hours=4)),
        make_pr(3, merged_after=timedelta(hours=0)),
        make_pr(4, merged_after=timedelta(hours=9000)),
        make_pr(5, merged_after=timedelta(hours=-3)),
        make_pr(6, state="open"),
    ]
    assert average_review_hours(pull_requests) == 3.0


def test_average_review_hours_without_merges():
    assert average_review_hours([make_pr(1, state="open")]) == 0.0


def test_average_resolution_days_counts_closed_issues_only():
    issues = [
        IssueRecord(
            number=1,
            title="a",
            state="closed",
            created_at=BASE,
            closed_at=BASE + timedelta(days=2, hours=20),
            author="x",
        ),
        IssueRecord(
            number=2,
            title="b",
            state="closed",
            created_at=BASE,
            closed_at=BASE + timedelta(days=4),
            author="x",
        ),
        IssueRecord(number=3, title="c", state="open", created_at=BASE, author="x"),
    ]
    assert average_resolution_days(issues) == 3.0


@pytest.mark.parametrize(
    "contributions, expected",
    [
        ([50, 30, 20], 1),
        ([40, 30, 20, 10], 2),
        ([10, 10, 10, 10], 2),
        ([1], 1),
        ([], 0),
        ([20, 50, 30], 1),
    ],
)
def test_bus_factor(contributions, expected):
    """Test the bus factor at the 50% threshold, ties stopping at the boundary."""
    assert bus_factor(contributions) == expected


def test_bus_factor_never_exceeds_contributor_count():
    assert bus_factor([1, 1, 1], threshold=1.0) == 3


def test_contribution_distribution():
    counts = [40, 20, 10, 10, 5, 5, 4, 3, 2, 1]
    distribution = contribution_distribution(counts)

    # top 10% of 10 contributors is 1, top 25% rounds up to 3
    assert distribution == {"top10_percent": 40, "top25_percent": 70, "others": 30}


def test_contribution_distribution_single_contributor():
    assert contribution_distribution([7]) == {
        "top10_percent": 7,
        "top25_percent": 7,
        "others": 0,
    }


def test_churn_rate():
    assert churn_rate(30, 10, 4) == 10.0
    assert churn_rate(5, 5, 0) == 0.0


def test_activity_trend():
    rising = {
        "2024-01": 1,
        "2024-02": 1,
        "2024-03": 1,
        "2024-04": 5,
        "2024-05": 5,
        "2024-06": 5,
    }
    falling = {month: 6 - count for month, count in rising.items()}

    assert activity_trend(rising) == "increasing"
    assert activity_trend(falling) == "decreasing"
    assert activity_trend({"2024-01": 3, "2024-02": 9}) == "decreasing"
    assert activity_trend({}) == "decreasing"


def test_calendar_keys():
    moment = datetime(2024, 12, 30, 8, 15, tzinfo=timezone.utc)
    assert month_key(moment) == "2024-12"
    # ISO week belongs to the following year
    assert week_key(moment) == "2025-W01"
