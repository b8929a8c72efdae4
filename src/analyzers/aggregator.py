"""
Partial-Failure Report Aggregation.

Runs the independent sub-analyses of one repository concurrently and assembles
their outcomes into a single AnalysisReport. Each sub-analysis settles on its
own: a failure becomes a zero-value summary plus the failure reason in that
slot and never cancels or empties its siblings.

Only identifier parsing, work directory setup and the repository metadata
fetch (which supplies the default branch to clone) can abort an analysis.
"""

import asyncio
import os
import time
from datetime import datetime, timezone
from typing import Awaitable, Type

from analyzers.models import (
    AnalysisReport,
    BranchSummary,
    ChurnSummary,
    CommitSummary,
    ContributorSummary,
    IssueSummary,
    PullRequestSummary,
    ReportMetadata,
    SlotResult,
    SummaryT,
)
from analyzers.repository import GitHubAnalyzer
from config import APP_VERSION, logger
from errors import AggregationSetupError, GitGaugeError
from miners.base import RepositoryMiner
from miners.git_miner import GitHistoryMiner
from miners.identity import parse_repository_url
from miners.models import LocalHistory, RepositoryIdentity


async def settle(
    operation: Awaitable[SummaryT],
    summary_type: Type[SummaryT],
    slot: str,
    repository: str,
) -> SlotResult[SummaryT]:
    """
    Await one sub-analysis and capture its outcome.

    Args:
        operation (Awaitable[SummaryT]): Sub-analysis producing a summary
        summary_type (Type[SummaryT]): Summary model, provides the zero value
        slot (str): Slot name, for logging
        repository (str): Repository name, for logging

    Returns:
        SlotResult[SummaryT]: ok with the summary, or failed with the zero
            value and the failure message
    """
    try:
        summary = await operation
    except Exception as e:
        reason = str(e) or type(e).__name__
        logger.error(
            {
                "message": f"{slot} analysis failed",
                "repository": repository,
                "error": reason,
                "code": getattr(e, "code", None),
            }
        )
        return SlotResult[summary_type].failed(summary_type.empty(), reason)
    return SlotResult[summary_type].ok(summary)


class ReportAggregator:
    """
    Builds an AnalysisReport for one repository.

    Attributes:
        miner (RepositoryMiner): Remote metadata source
        history_miner (GitHistoryMiner): Local clone reader
        analyzer (GitHubAnalyzer): Record to summary transformer
        version (str): Tool version stamped on reports
    """

    def __init__(
        self,
        miner: RepositoryMiner,
        history_miner: GitHistoryMiner,
        analyzer: GitHubAnalyzer,
        version: str = APP_VERSION,
    ):
        self.miner = miner
        self.history_miner = history_miner
        self.analyzer = analyzer
        self.version = version

    def _prepare_work_dir(self) -> None:
        try:
            os.makedirs(self.history_miner.work_dir, exist_ok=True)
        except OSError as e:
            raise AggregationSetupError(
                f"Cannot create clone directory {self.history_miner.work_dir}: {e}"
            ) from e

    async def _commits(self, history: Awaitable[LocalHistory]) -> CommitSummary:
        return self.analyzer.summarize_commits((await history).commits)

    async def _churn(self, history: Awaitable[LocalHistory]) -> ChurnSummary:
        return self.analyzer.summarize_churn(await history)

    async def _pull_requests(self, identity: RepositoryIdentity) -> PullRequestSummary:
        return self.analyzer.summarize_pull_requests(
            await self.miner.fetch_pull_requests(identity)
        )

    async def _issues(self, identity: RepositoryIdentity) -> IssueSummary:
        return self.analyzer.summarize_issues(await self.miner.fetch_issues(identity))

    async def _contributors(self, identity: RepositoryIdentity) -> ContributorSummary:
        return self.analyzer.summarize_contributors(
            await self.miner.fetch_contributors(identity)
        )

    async def _branches(self, identity: RepositoryIdentity) -> BranchSummary:
        return self.analyzer.summarize_branches(
            await self.miner.fetch_branches(identity)
        )

    async def analyze(self, repo_url: str) -> AnalysisReport:
        """
        Analyze one repository.

        Args:
            repo_url (str): GitHub repository URL

        Returns:
            AnalysisReport: Report with every slot settled

        Raises:
            MalformedIdentifier: If the URL cannot be parsed
            AggregationSetupError: If the clone directory cannot be created
            RepositoryNotFound, AccessDenied, RateLimitExceeded, RemoteServiceError:
                If the repository metadata cannot be fetched
        """
        started = time.monotonic()
        identity = parse_repository_url(repo_url)
        repository = identity.full_name
        logger.info(
            {"message": "Starting repository analysis", "repository": repository}
        )

        self._prepare_work_dir()

        try:
            metadata = await self.miner.fetch_repository(identity)
        except GitGaugeError:
            raise
        except Exception as e:
            raise AggregationSetupError(
                f"Fetching repository metadata failed: {e}"
            ) from e

        # One clone feeds both the commit and the churn slot
        history = asyncio.ensure_future(
            self.history_miner.extract(identity, metadata.default_branch)
        )

        commits, pull_requests, issues, contributors, code_churn, branches = (
            await asyncio.gather(
                settle(self._commits(history), CommitSummary, "commits", repository),
                settle(
                    self._pull_requests(identity),
                    PullRequestSummary,
                    "pull requests",
                    repository,
                ),
                settle(self._issues(identity), IssueSummary, "issues", repository),
                settle(
                    self._contributors(identity),
                    ContributorSummary,
                    "contributors",
                    repository,
                ),
                settle(self._churn(history), ChurnSummary, "code churn", repository),
                settle(self._branches(identity), BranchSummary, "branches", repository),
            )
        )

        report = AnalysisReport(
            metadata=ReportMetadata(
                repo_url=repo_url,
                owner=identity.owner,
                repo_name=identity.name,
                analyzed_at=datetime.now(timezone.utc),
                analysis_time_ms=int((time.monotonic() - started) * 1000),
                version=self.version,
            ),
            repository=self.analyzer.summarize_repository(metadata),
            commits=commits,
            pull_requests=pull_requests,
            issues=issues,
            contributors=contributors,
            code_churn=code_churn,
            branches=branches,
        )

        logger.info(
            {
                "message": "Repository analysis completed",
                "repository": repository,
                "analysis_time_ms": report.metadata.analysis_time_ms,
                "failed_slots": report.failed_slots,
                "total_commits": report.commits.summary.total,
                "total_prs": report.pull_requests.summary.total,
                "total_issues": report.issues.summary.total,
                "total_contributors": report.contributors.summary.total,
            }
        )
        return report
