"""
Multi-Repository Analysis Module.

Runs report aggregation for a list of repository URLs, one after another, and
stores every finished report. A repository whose analysis aborts is logged and
recorded as a failure while the remaining repositories are still analyzed.
"""

from typing import Dict, List

from analyzers.aggregator import ReportAggregator
from analyzers.models import AnalysisReport
from config import logger
from errors import GitGaugeError
from storage.report_store import ReportStore


class MultiRepositoryAnalyzer:
    """
    Coordinates the analysis of multiple GitHub repositories.

    Attributes:
        aggregator (ReportAggregator): Builds one report per repository
        store (ReportStore): Persists finished reports
        repository_urls (List[str]): Repository URLs to analyze
        failures (Dict[str, Exception]): Aborted or unsaved analyses by URL
    """

    def __init__(
        self,
        report_store: ReportStore,
        aggregator: ReportAggregator,
        repository_urls: List[str],
    ):
        """Initialize the multi-repository analyzer.

        Args:
            report_store (ReportStore): Instance for storing reports.
            aggregator (ReportAggregator): Instance for analyzing one repository.
            repository_urls (List[str]): List of repository URLs to analyze.
        """
        self.aggregator = aggregator
        self.store = report_store
        self.repository_urls = repository_urls
        self.failures: Dict[str, Exception] = {}

    async def analyze_repositories(self) -> Dict[str, AnalysisReport]:
        """
        Analyze and store every configured repository.

        Returns:
            Dict[str, AnalysisReport]: Stored reports keyed by report file name

        Note:
            If analysis fails for a repository, it logs the error, records it in
            ``failures`` and continues with the remaining repositories.
        """
        self.failures = {}
        results: Dict[str, AnalysisReport] = {}
        for repo_url in self.repository_urls:
            try:
                report = await self.aggregator.analyze(repo_url)
                filename = self.store.save(report)
            except (GitGaugeError, OSError) as e:
                logger.error(
                    {
                        "message": "Failed to analyze repository",
                        "repository": repo_url,
                        "error": str(e),
                        "code": getattr(e, "code", None),
                    }
                )
                self.failures[repo_url] = e
                continue

            results[filename] = report

        logger.info(
            {
                "message": "Repository batch finished",
                "analyzed": len(results),
                "failed": len(self.failures),
            }
        )
        return results
