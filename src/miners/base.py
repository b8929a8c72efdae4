"""
Abstract Base Class for Repository Miners.

Defines the interface for remote repository data mining implementations.
All remote miners (GitHub, GitLab, etc.) should implement this interface.
"""

from abc import ABC, abstractmethod
from typing import List

from miners.models import (
    BranchRecord,
    ContributorRecord,
    IssueRecord,
    PullRequestRecord,
    RepositoryIdentity,
    RepositoryMetadata,
)


class RepositoryMiner(ABC):
    """
    Abstract base class for remote repository miners.

    Implementations should handle:
    - Authentication with the repository service
    - Pagination caps per resource
    - Translation of service failures into the GitGauge error taxonomy
    - Data transformation to common models
    """

    @abstractmethod
    async def fetch_repository(self, identity: RepositoryIdentity) -> RepositoryMetadata:
        """
        Fetch the repository attributes.

        Args:
            identity (RepositoryIdentity): Repository to fetch

        Returns:
            RepositoryMetadata: Repository attributes

        Raises:
            GitGaugeError: If the service refuses or fails the request
        """
        pass

    @abstractmethod
    async def fetch_pull_requests(
        self, identity: RepositoryIdentity
    ) -> List[PullRequestRecord]:
        """Fetch pull requests in every state, newest update first."""
        pass

    @abstractmethod
    async def fetch_issues(self, identity: RepositoryIdentity) -> List[IssueRecord]:
        """Fetch issues in every state, excluding pull requests."""
        pass

    @abstractmethod
    async def fetch_contributors(
        self, identity: RepositoryIdentity
    ) -> List[ContributorRecord]:
        """Fetch contributors ordered by contribution count."""
        pass

    @abstractmethod
    async def fetch_branches(self, identity: RepositoryIdentity) -> List[BranchRecord]:
        """Fetch branches, the first few enriched with their last commit."""
        pass
