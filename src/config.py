"""
Application Configuration Module.

Manages application settings and environment variables using Pydantic for validation.
Provides centralized configuration management with type safety and validation.

Features:
- Environment variable loading and validation
- Secure credential management
- Explicit client configuration handed to the miners
- Path normalization for output directories
"""

import os
from typing import List, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from logger import LogManager

APP_VERSION = "2.0.0"


class GitHubConfig(BaseModel):
    """
    Explicit configuration for the GitHub miner.

    Built once by the application and passed into the miner's constructor, so no
    client or credential lives at module level.

    Attributes:
        token (Optional[SecretStr]): Static API credential, anonymous access when empty
        base_url (str): REST API root
        per_page (int): Page size for list endpoints
        max_pages (int): Page cap per paginated resource
        contributor_limit (int): Contributors fetched (single page)
        branch_limit (int): Branches fetched (single page)
        branch_detail_limit (int): Branches enriched with their last commit
        allow_partial_pages (bool): Return already fetched pages when a later page fails
        retry_attempts (int): Attempts for transient (5xx / transport) failures
        timeout (int): Request timeout in seconds
    """

    token: Optional[SecretStr] = None
    base_url: str = "https://api.github.com"
    per_page: int = Field(default=100, ge=1, le=100)
    max_pages: int = Field(default=5, ge=1)
    contributor_limit: int = Field(default=100, ge=1, le=100)
    branch_limit: int = Field(default=50, ge=1, le=100)
    branch_detail_limit: int = Field(default=10, ge=0)
    allow_partial_pages: bool = False
    retry_attempts: int = Field(default=3, ge=1)
    timeout: int = Field(default=15, ge=1)


class Settings(BaseSettings):
    """
    Application configuration settings with validation.

    Attributes:
        app_name (str): Name of the application
        dev (bool): Debug mode flag, enables console logging
        log_dir (str): Directory for log files
        log_level (int): Logging level (default: info)
        github_token (Optional[SecretStr]): GitHub API authentication token
        github_repo_urls (str): Comma-separated repository URLs for batch runs
        per_page (int): Page size for GitHub list endpoints
        max_pages (int): Page cap per paginated resource
        allow_partial_pages (bool): Keep already fetched pages on a later page error
        clone_depth (int): Commits fetched by the shallow clone
        commit_window (str): git --since window for commit statistics
        churn_window (str): git --since window for code churn
        temp_dir (str): Parent directory for temporary clones
        report_output_dir (str): Directory for persisted reports
    """

    # Application settings
    app_name: str = Field(default="GitGauge", description="Application name")
    dev: bool = Field(default=False, description="Debug mode")
    log_dir: str = Field(default="logs", description="Logging directory")
    log_level: int = Field(default=20, description="Logging level, default info")

    # GitHub configuration
    github_token: Optional[SecretStr] = Field(default=None, description="GitHub token")
    github_repo_urls: str = Field(
        default="", description="Comma-separated GitHub repository URLs to analyze"
    )
    per_page: int = Field(default=100, description="GitHub page size")
    max_pages: int = Field(default=5, description="Maximum pages per resource")
    allow_partial_pages: bool = Field(
        default=False, description="Return partial results on later page failures"
    )

    # Local history configuration
    clone_depth: int = Field(default=500, description="Shallow clone depth")
    commit_window: str = Field(
        default="1 year ago", description="Lookback for commit statistics"
    )
    churn_window: str = Field(
        default="6 months ago", description="Lookback for code churn"
    )
    temp_dir: str = Field(default=".tmp", description="Temporary clone directory")

    report_output_dir: str = Field(
        default="reports", description="Report output directory"
    )

    @property
    def repository_urls(self) -> List[str]:
        """
        Get list of repository URLs from configuration.

        Returns:
            List[str]: List of cleaned repository URLs
        """
        return [url.strip() for url in self.github_repo_urls.split(",") if url.strip()]

    def github_config(self) -> GitHubConfig:
        """
        Build the explicit miner configuration from these settings.

        Returns:
            GitHubConfig: Configuration for the GitHub miner
        """
        return GitHubConfig(
            token=self.github_token,
            per_page=self.per_page,
            max_pages=self.max_pages,
            allow_partial_pages=self.allow_partial_pages,
        )

    @field_validator("report_output_dir", "temp_dir")
    def ensure_absolute_path(cls, v: str) -> str:
        """
        Ensure directory paths are absolute.

        Args:
            v (str): Directory path to validate

        Returns:
            str: Absolute path
        """
        if not os.path.isabs(v):
            return os.path.abspath(v)
        return v

    # Configure env file loading
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env file
    )


settings = Settings()

# Initialize logging configuration
logger = LogManager(
    app_name=settings.app_name.lower(),
    log_dir=settings.log_dir,
    development=settings.dev,
    level=settings.log_level,
).logger
