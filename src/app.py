"""
Main Application Entry Point.

Runs GitGauge from the command line:
- Builds the miners, analyzer, aggregator and report store from settings
- Analyzes every repository URL given as an argument (or configured in
  GITHUB_REPO_URLS)
- Stores each report and prints a short summary of it

Exit code is 0 when every analysis produced a stored report and 1 when any
of them aborted.
"""

import asyncio
import json
import sys
from typing import List, Optional

from analyzers.aggregator import ReportAggregator
from analyzers.models import AnalysisReport
from analyzers.multi_repository import MultiRepositoryAnalyzer
from analyzers.repository import GitHubAnalyzer
from config import APP_VERSION, logger, settings
from errors import GitGaugeError
from miners.base import RepositoryMiner
from miners.git_miner import GitHistoryMiner
from miners.github_miner import GitHubMiner
from storage.report_store import ReportStore


def render_summary(filename: str, report: AnalysisReport) -> str:
    """
    One-paragraph human readable summary of a stored report.

    Args:
        filename (str): Report file name
        report (AnalysisReport): Stored report

    Returns:
        str: Summary text
    """
    lines = [
        f"{report.repository.full_name} -> {filename}",
        f"  commits:      {report.commits.summary.total}",
        f"  pull requests: {report.pull_requests.summary.total}"
        f" (merge rate {report.pull_requests.summary.merge_rate}%)",
        f"  issues:       {report.issues.summary.total}"
        f" (close rate {report.issues.summary.close_rate}%)",
        f"  contributors: {report.contributors.summary.total}"
        f" (bus factor {report.contributors.summary.bus_factor})",
        f"  churn:        {report.code_churn.summary.net_change:+d} lines"
        f" over {report.code_churn.summary.commit_count} commits",
    ]
    for name in report.failed_slots:
        lines.append(f"  ! {name}: {getattr(report, name).error}")
    return "\n".join(lines)


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Execute the command line workflow.

    Args:
        argv (Optional[List[str]]): Repository URLs; defaults to the process
            arguments, then to the configured repository URLs

    Returns:
        int: Process exit code
    """
    repository_urls = list(argv if argv is not None else sys.argv[1:])
    if not repository_urls:
        repository_urls = settings.repository_urls
    if not repository_urls:
        logger.error({"message": "No repository URLs given"})
        print(
            "usage: gitgauge <github-repo-url> [<github-repo-url> ...]",
            file=sys.stderr,
        )
        return 1

    logger.info(
        {
            "message": "Starting GitGauge",
            "version": APP_VERSION,
            "repositories": len(repository_urls),
        }
    )

    logger.debug("initializing github miner...")
    github_miner: RepositoryMiner = GitHubMiner(settings.github_config())
    history_miner = GitHistoryMiner(
        settings.temp_dir,
        clone_depth=settings.clone_depth,
        commit_window=settings.commit_window,
        churn_window=settings.churn_window,
    )

    logger.debug("initializing report aggregator...")
    aggregator = ReportAggregator(github_miner, history_miner, GitHubAnalyzer())
    store = ReportStore(settings.report_output_dir)
    multi_analyzer = MultiRepositoryAnalyzer(store, aggregator, repository_urls)

    reports = await multi_analyzer.analyze_repositories()

    for filename, report in reports.items():
        print(render_summary(filename, report))

    for repo_url, error in multi_analyzer.failures.items():
        response = (
            error.to_response()
            if isinstance(error, GitGaugeError)
            else {"error": "Failed to store report", "message": str(error)}
        )
        print(f"{repo_url}: {json.dumps(response)}", file=sys.stderr)

    logger.info("application finished")
    return 1 if multi_analyzer.failures else 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
