"""
Derived Repository Metrics.

Pure functions over already fetched records: rates, review and resolution
times, bus factor, contribution distribution, churn rate, activity trend and
calendar bucketing. Nothing here performs I/O.
"""

import math
from datetime import datetime
from typing import Dict, Iterable, List, Sequence

from miners.models import IssueRecord, PullRequestRecord

BUS_FACTOR_THRESHOLD = 0.5
MAX_REVIEW_HOURS = 8760
TREND_WINDOW = 3


def percentage_rate(part: int, total: int) -> float:
    """
    Share of ``part`` in ``total`` as a percentage rounded to one decimal.

    Args:
        part (int): Matching items
        total (int): All items

    Returns:
        float: Percentage, 0 when total is 0
    """
    if total <= 0:
        return 0.0
    return round(part / total * 100, 1)


def average_review_hours(pull_requests: Iterable[PullRequestRecord]) -> float:
    """
    Mean hours from creation to merge.

    Intervals outside (0, 8760) hours are data anomalies and are excluded, not
    clamped.
    """
    hours: List[float] = []
    for pr in pull_requests:
        if pr.created_at is None or pr.merged_at is None:
            continue
        interval = (pr.merged_at - pr.created_at).total_seconds() / 3600
        if 0 < interval < MAX_REVIEW_HOURS:
            hours.append(interval)
    return sum(hours) / len(hours) if hours else 0.0


def average_resolution_days(issues: Iterable[IssueRecord]) -> float:
    """Mean whole days from creation to close over closed issues."""
    days: List[int] = []
    for issue in issues:
        if issue.state != "closed" or issue.closed_at is None:
            continue
        interval = (issue.closed_at - issue.created_at).total_seconds()
        if interval >= 0:
            days.append(int(interval // 86400))
    return sum(days) / len(days) if days else 0.0


def bus_factor(
    contributions: Sequence[int], threshold: float = BUS_FACTOR_THRESHOLD
) -> int:
    """
    Smallest number of top contributors whose contributions reach ``threshold``
    of the total.

    Accumulation stops as soon as the running sum is greater than or equal to
    the threshold, so [50, 30, 20] gives 1 at 50%.

    Args:
        contributions (Sequence[int]): Contribution count per contributor
        threshold (float): Fraction of all contributions to cover

    Returns:
        int: Bus factor, capped at the number of contributors
    """
    ordered = sorted(contributions, reverse=True)
    if not ordered:
        return 0

    target = sum(ordered) * threshold
    cumulative = 0
    factor = 0
    for count in ordered:
        cumulative += count
        factor += 1
        if cumulative >= target:
            break
    return min(factor, len(ordered))


def contribution_distribution(contributions: Sequence[int]) -> Dict[str, int]:
    """
    Contributions held by the top 10% and top 25% of contributors by rank.

    Both groups hold at least one contributor; ``others`` is everything outside
    the top 25%.
    """
    ordered = sorted(contributions, reverse=True)
    if not ordered:
        return {"top10_percent": 0, "top25_percent": 0, "others": 0}

    total = sum(ordered)
    top10 = max(1, math.ceil(len(ordered) * 0.1))
    top25 = max(1, math.ceil(len(ordered) * 0.25))
    top25_sum = sum(ordered[:top25])
    return {
        "top10_percent": sum(ordered[:top10]),
        "top25_percent": top25_sum,
        "others": total - top25_sum,
    }


def churn_rate(additions: int, deletions: int, commit_count: int) -> float:
    """Lines changed per commit, one decimal, 0 without commits."""
    if commit_count <= 0:
        return 0.0
    return round((additions + deletions) / commit_count, 1)


def activity_trend(by_month: Dict[str, int]) -> str:
    """
    Compare the mean of the last three monthly buckets with the three before.

    Returns:
        str: "increasing" when the recent mean is strictly higher, otherwise
            "decreasing" (including when there is no earlier window)
    """
    counts = [by_month[month] for month in sorted(by_month)]
    recent = counts[-TREND_WINDOW:]
    earlier = counts[-2 * TREND_WINDOW : -TREND_WINDOW]
    if not recent or not earlier:
        return "decreasing"

    recent_mean = sum(recent) / len(recent)
    earlier_mean = sum(earlier) / len(earlier)
    return "increasing" if recent_mean > earlier_mean else "decreasing"


def month_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m")


def week_key(moment: datetime) -> str:
    year, week, _ = moment.isocalendar()
    return f"{year}-W{week:02d}"


def day_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d")


def hour_key(moment: datetime) -> str:
    return moment.strftime("%H")
