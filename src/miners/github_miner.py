"""
GitHub Repository Data Mining Module.

This module handles the extraction of remote GitHub repository data: repository
attributes, pull requests, issues, contributors and branches. It applies a page
cap per resource, maps GitHub failures onto the GitGauge error taxonomy and
keeps type safety through Pydantic models.

PyGithub is a blocking client, so every fetch runs in a worker thread and the
event loop stays free to multiplex the other sub-analyses.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar

from github import Auth, Github
from github.Branch import Branch
from github.GithubException import GithubException, RateLimitExceededException
from github.Issue import Issue
from github.NamedUser import NamedUser
from github.PullRequest import PullRequest
from github.Repository import Repository
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from config import GitHubConfig, logger
from errors import (
    AccessDenied,
    GitGaugeError,
    RateLimitExceeded,
    RemoteServiceError,
    RepositoryNotFound,
)
from miners.base import RepositoryMiner
from miners.models import (
    BranchRecord,
    ContributorRecord,
    IssueRecord,
    LastCommit,
    PullRequestRecord,
    RepositoryIdentity,
    RepositoryMetadata,
)

T = TypeVar("T")


def _header(headers: Optional[Dict[str, Any]], name: str) -> Optional[str]:
    for key, value in (headers or {}).items():
        if key.lower() == name:
            return value
    return None


def _retry_after(headers: Optional[Dict[str, Any]]) -> Optional[int]:
    """Seconds until the quota resets, from Retry-After or X-RateLimit-Reset."""
    retry_after = _header(headers, "retry-after")
    if retry_after is not None:
        try:
            return int(retry_after)
        except ValueError:
            pass

    reset = _header(headers, "x-ratelimit-reset")
    if reset is not None:
        try:
            now = datetime.now(timezone.utc).timestamp()
            return max(0, int(float(reset) - now))
        except ValueError:
            pass

    return None


def _translate_error(error: GithubException) -> GitGaugeError:
    """
    Map a PyGithub exception onto the GitGauge error taxonomy.

    Args:
        error (GithubException): Exception raised by PyGithub

    Returns:
        GitGaugeError: Equivalent GitGauge error
    """
    data = error.data if isinstance(error.data, dict) else {}
    message = data.get("message") or str(error)
    status = error.status

    is_rate_limited = (
        isinstance(error, RateLimitExceededException)
        or status == 429
        or (status == 403 and "rate limit" in message.lower())
    )
    if is_rate_limited:
        return RateLimitExceeded(
            f"GitHub API rate limit exceeded: {message}",
            retry_after=_retry_after(error.headers),
        )
    if status == 404:
        return RepositoryNotFound(
            "The repository may be private, deleted, or does not exist"
        )
    if status in (401, 403):
        return AccessDenied(f"Unable to access this repository: {message}")

    return RemoteServiceError(message or "GitHub API error", upstream_status=status)


def _is_transient(error: BaseException) -> bool:
    if not isinstance(error, RemoteServiceError):
        return False
    return error.upstream_status is None or error.upstream_status >= 500


class GitHubMiner(RepositoryMiner):
    """
    GitHubMiner is responsible for mining data from the GitHub REST API.
    It extracts repository attributes, pull requests, issues, contributors and
    branches, transforming them into Pydantic models.
    """

    def __init__(self, config: GitHubConfig, client: Optional[Github] = None):
        """Initialize GitHub miner with an explicit configuration.

        Args:
            config (GitHubConfig): Credential, pagination caps and retry policy.
            client (Optional[Github]): Pre-built PyGithub client, mainly for tests.
        """
        self.config = config
        if client is None:
            token = config.token.get_secret_value() if config.token else None
            client = Github(
                auth=Auth.Token(token) if token else None,
                base_url=config.base_url,
                per_page=config.per_page,
                timeout=config.timeout,
                retry=None,
            )
        self.github = client

    def _request(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Perform one blocking GitHub call with error translation.

        Transient failures (5xx, transport errors) are retried with exponential
        backoff; everything else surfaces immediately.
        """
        for attempt in Retrying(
            stop=stop_after_attempt(self.config.retry_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        ):
            with attempt:
                try:
                    return fn(*args, **kwargs)
                except GithubException as e:
                    raise _translate_error(e) from e
                except OSError as e:
                    raise RemoteServiceError(
                        f"Failed to connect to GitHub API: {e}"
                    ) from e

    def _repo(self, identity: RepositoryIdentity) -> Repository:
        """Lazy repository handle; list endpoints do not need the full object."""
        return self.github.get_repo(identity.full_name, lazy=True)

    def _collect_pages(
        self,
        paginated: Any,
        convert: Callable[[Any], Optional[T]],
        resource: str,
        identity: RepositoryIdentity,
    ) -> List[T]:
        """
        Walk a paginated list up to the configured page cap.

        Stops early when a page holds fewer items than the page size. An error
        on any page fails the whole resource unless partial pages are allowed,
        in which case the items gathered so far are returned.
        """
        items: List[T] = []
        for page in range(self.config.max_pages):
            try:
                batch = self._request(paginated.get_page, page)
            except GitGaugeError as e:
                if page > 0 and self.config.allow_partial_pages:
                    logger.warning(
                        {
                            "message": "Pagination stopped early, keeping partial results",
                            "repository": identity.full_name,
                            "resource": resource,
                            "page": page + 1,
                            "items": len(items),
                            "error": str(e),
                        }
                    )
                    break
                raise

            for element in batch:
                record = convert(element)
                if record is not None:
                    items.append(record)

            if len(batch) < self.config.per_page:
                break

        logger.debug(
            {
                "message": f"Fetched {resource}",
                "repository": identity.full_name,
                "count": len(items),
            }
        )
        return items

    def check_rate_limit(self, check_name: str = None) -> None:
        """
        Log the GitHub API rate limit status, warning when it runs low.

        Args:
            check_name (Optional[str]): Identifier for the rate limit check point.
        """
        remaining, limit = self.github.rate_limiting
        reset_time = datetime.fromtimestamp(
            self.github.rate_limiting_resettime, timezone.utc
        )

        logger.info(
            {
                "message": f"{check_name} API rate limit status",
                "remaining_points": remaining,
                "total_points": limit,
                "reset_time": reset_time.isoformat(),
            }
        )

        # If less than 10% of rate limit remains, log a warning
        if 0 < remaining < limit * 0.1:
            logger.warning(
                {
                    "message": "GitHub API rate limit running low",
                    "remaining_points": remaining,
                    "reset_time": reset_time.isoformat(),
                }
            )
        elif remaining == 0:
            logger.critical(
                {
                    "message": "GitHub API rate limit exhausted",
                    "reset_time": reset_time.isoformat(),
                }
            )

    def _get_repository_data(self, repo: Repository) -> RepositoryMetadata:
        return RepositoryMetadata(
            name=repo.name,
            full_name=repo.full_name,
            description=repo.description,
            url=repo.html_url,
            stars=repo.stargazers_count,
            forks=repo.forks_count,
            watchers=repo.watchers_count,
            open_issues=repo.open_issues_count,
            default_branch=repo.default_branch or "main",
            language=repo.language,
            created_at=repo.created_at,
            updated_at=repo.updated_at,
            pushed_at=repo.pushed_at,
            size=repo.size,
            license=repo.license.name if repo.license else None,
            is_private=repo.private,
            has_wiki=repo.has_wiki,
            has_pages=repo.has_pages,
            topics=repo.topics or [],
        )

    def _get_pr_data(self, pr: PullRequest) -> PullRequestRecord:
        """Convert a GitHub PullRequest object to a Pydantic model.

        Args:
            pr (PullRequest): The GitHub PullRequest object.

        Returns:
            PullRequestRecord: A Pydantic model representing the PR data.
        """
        return PullRequestRecord(
            number=pr.number,
            title=pr.title,
            state=pr.state,
            created_at=pr.created_at,
            updated_at=pr.updated_at,
            closed_at=pr.closed_at,
            merged_at=pr.merged_at,
            author=pr.user.login if pr.user else "ghost",
        )

    def _get_issue_data(self, issue: Issue) -> Optional[IssueRecord]:
        """Convert a GitHub Issue object to a Pydantic model.

        The issues endpoint also lists pull requests; those are dropped here.
        Their html_url points at /pull/ which avoids completing every issue to
        read its pull_request field.

        Args:
            issue (Issue): The GitHub Issue object.

        Returns:
            Optional[IssueRecord]: The issue, or None for pull requests.
        """
        if "/pull/" in (issue.html_url or ""):
            return None
        return IssueRecord(
            number=issue.number,
            title=issue.title,
            state=issue.state,
            created_at=issue.created_at,
            closed_at=issue.closed_at,
            author=issue.user.login if issue.user else "ghost",
            labels=[label.name for label in issue.labels],
        )

    def _get_contributor_data(self, user: NamedUser) -> ContributorRecord:
        return ContributorRecord(
            login=user.login,
            contributions=user.contributions or 0,
            profile_url=user.html_url,
            avatar_url=user.avatar_url,
        )

    def _get_branch_data(self, branch: Branch, with_last_commit: bool) -> BranchRecord:
        record = BranchRecord(name=branch.name, protected=branch.protected)
        if not with_last_commit:
            return record

        try:
            commit = self._request(lambda: branch.commit.commit)
            record.last_commit = LastCommit(
                sha=branch.commit.sha[:7],
                message=commit.message.split("\n")[0][:50],
                author=commit.author.name if commit.author else None,
                date=commit.author.date if commit.author else None,
            )
        except GitGaugeError as e:
            record.error = str(e)
        return record

    def _fetch_repository(self, identity: RepositoryIdentity) -> RepositoryMetadata:
        repo = self._request(self.github.get_repo, identity.full_name)
        metadata = self._request(self._get_repository_data, repo)
        try:
            self._request(self.check_rate_limit, "Repository metadata")
        except GitGaugeError as e:
            logger.warning(
                {
                    "message": "Could not read GitHub API rate limit status",
                    "repository": identity.full_name,
                    "error": str(e),
                }
            )
        return metadata

    def _fetch_pull_requests(
        self, identity: RepositoryIdentity
    ) -> List[PullRequestRecord]:
        pulls = self._repo(identity).get_pulls(
            state="all", sort="updated", direction="desc"
        )
        return self._collect_pages(pulls, self._get_pr_data, "pull requests", identity)

    def _fetch_issues(self, identity: RepositoryIdentity) -> List[IssueRecord]:
        issues = self._repo(identity).get_issues(
            state="all", sort="updated", direction="desc"
        )
        return self._collect_pages(issues, self._get_issue_data, "issues", identity)

    def _fetch_contributors(
        self, identity: RepositoryIdentity
    ) -> List[ContributorRecord]:
        contributors = self._request(self._repo(identity).get_contributors().get_page, 0)

        records: List[ContributorRecord] = []
        seen = set()
        for user in contributors[: self.config.contributor_limit]:
            if user.login in seen:
                continue
            seen.add(user.login)
            records.append(self._get_contributor_data(user))
        return records

    def _fetch_branches(self, identity: RepositoryIdentity) -> List[BranchRecord]:
        branches = self._request(self._repo(identity).get_branches().get_page, 0)
        branches = branches[: self.config.branch_limit]
        return [
            self._get_branch_data(branch, index < self.config.branch_detail_limit)
            for index, branch in enumerate(branches)
        ]

    async def _run(
        self,
        resource: str,
        fn: Callable[[RepositoryIdentity], T],
        identity: RepositoryIdentity,
    ) -> T:
        logger.info(
            {"message": f"Fetching {resource}", "repository": identity.full_name}
        )
        try:
            return await asyncio.to_thread(fn, identity)
        except GitGaugeError as e:
            logger.error(
                {
                    "message": f"Fetching {resource} failed",
                    "repository": identity.full_name,
                    "code": e.code,
                    "error": str(e),
                }
            )
            raise

    async def fetch_repository(self, identity: RepositoryIdentity) -> RepositoryMetadata:
        return await self._run("repository metadata", self._fetch_repository, identity)

    async def fetch_pull_requests(
        self, identity: RepositoryIdentity
    ) -> List[PullRequestRecord]:
        return await self._run("pull requests", self._fetch_pull_requests, identity)

    async def fetch_issues(self, identity: RepositoryIdentity) -> List[IssueRecord]:
        return await self._run("issues", self._fetch_issues, identity)

    async def fetch_contributors(
        self, identity: RepositoryIdentity
    ) -> List[ContributorRecord]:
        return await self._run("contributors", self._fetch_contributors, identity)

    async def fetch_branches(self, identity: RepositoryIdentity) -> List[BranchRecord]:
        return await self._run("branches", self._fetch_branches, identity)
