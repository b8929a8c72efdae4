"""
Error Taxonomy.

Every failure raised by GitGauge derives from GitGaugeError and carries a
machine-readable code plus the HTTP-equivalent status a caller should report.
Identifier, setup and repository-metadata errors abort an analysis; the rest
are contained in the report slot of the sub-analysis that raised them.
"""

from typing import Any, Dict, Optional


class GitGaugeError(Exception):
    """Base class for all GitGauge errors."""

    code = "INTERNAL_ERROR"
    status = 500
    title = "Analysis failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.title)
        self.message = message or self.title

    def to_response(self) -> Dict[str, Any]:
        """
        Render the error the way a transport layer reports it.

        Returns:
            Dict[str, Any]: error title, human readable message and code
        """
        return {"error": self.title, "message": self.message, "code": self.code}


class MalformedIdentifier(GitGaugeError):
    """The repository URL cannot be turned into an owner/name pair."""

    code = "VALIDATION_ERROR"
    status = 400
    title = "Invalid input"


class RepositoryNotFound(GitGaugeError):
    code = "REPO_NOT_FOUND"
    status = 404
    title = "Repository not found"


class AccessDenied(GitGaugeError):
    code = "ACCESS_DENIED"
    status = 403
    title = "Access denied"


class RateLimitExceeded(GitGaugeError):
    """The hosting API refused the request because the quota is spent."""

    code = "GITHUB_RATE_LIMIT_EXCEEDED"
    status = 429
    title = "GitHub API rate limit exceeded"

    def __init__(
        self, message: Optional[str] = None, retry_after: Optional[int] = None
    ):
        super().__init__(message)
        self.retry_after = retry_after

    def to_response(self) -> Dict[str, Any]:
        response = super().to_response()
        if self.retry_after is not None:
            response["retryAfter"] = self.retry_after
        return response


class RemoteServiceError(GitGaugeError):
    """Any other non-2xx answer from the hosting API."""

    code = "GITHUB_API_ERROR"
    status = 502
    title = "GitHub API error"

    def __init__(
        self, message: Optional[str] = None, upstream_status: Optional[int] = None
    ):
        super().__init__(message)
        self.upstream_status = upstream_status


class CloneFailed(GitGaugeError):
    code = "CLONE_FAILED"
    status = 500
    title = "Failed to clone repository"


class LocalExtractionError(GitGaugeError):
    code = "LOCAL_EXTRACTION_FAILED"
    status = 500
    title = "Failed to read local history"


class AggregationSetupError(GitGaugeError):
    code = "ANALYSIS_FAILED"
    status = 500
    title = "Analysis failed"


class InvalidReportName(GitGaugeError):
    code = "INVALID_FILENAME"
    status = 400
    title = "Invalid filename"


class ReportNotFound(GitGaugeError):
    code = "REPORT_NOT_FOUND"
    status = 404
    title = "Report not found"
