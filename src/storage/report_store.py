"""
Report Storage Module.

Persists analysis reports as standalone JSON documents, one file per analysis,
and serves them back for listing, retrieval and cleanup. Report files are
written once and never rewritten.
"""

import json
import math
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from analyzers.models import AnalysisReport
from config import logger
from errors import InvalidReportName, ReportNotFound


@dataclass
class ReportEntry:
    """
    Listing entry for one stored report.

    Attributes:
        filename (str): Report file name inside the store
        metadata (dict): Report metadata block
        timestamp (str): When the analysis ran (ISO 8601)
        summary (dict): Headline totals per slot
    """

    filename: str
    metadata: Dict[str, Any]
    timestamp: str
    summary: Dict[str, int]


@dataclass
class ReportPage:
    """One page of report listings, newest first."""

    reports: List[ReportEntry]
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    def to_document(self) -> Dict[str, Any]:
        return {
            "reports": [asdict(entry) for entry in self.reports],
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "totalPages": self.total_pages,
                "hasNext": self.has_next,
                "hasPrev": self.has_prev,
            },
        }


def _sort_key(entry: ReportEntry) -> datetime:
    try:
        moment = datetime.fromisoformat(entry.timestamp.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


class ReportStore:
    """
    Directory of persisted analysis reports.

    Attributes:
        storage_dir (Path): Directory holding the report files
    """

    def __init__(self, reports_dir: str):
        """Initialize the report store.

        Args:
            reports_dir (str): Directory for report files, created when missing.
        """
        self.storage_dir = Path(reports_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def validate_filename(filename: str) -> str:
        """
        Reject names that could escape the report directory.

        Args:
            filename (str): Candidate report file name

        Returns:
            str: The unchanged file name

        Raises:
            InvalidReportName: If the name contains "..", a path separator or
                does not end in ".json"
        """
        if (
            not filename
            or ".." in filename
            or "/" in filename
            or "\\" in filename
            or not filename.endswith(".json")
        ):
            raise InvalidReportName(
                f"Filename contains invalid characters: {filename!r}"
            )
        return filename

    def _path(self, filename: str) -> Path:
        path = self.storage_dir / self.validate_filename(filename)
        if not path.is_file():
            raise ReportNotFound(
                f"The requested analysis report does not exist: {filename}"
            )
        return path

    @staticmethod
    def report_filename(document: Dict[str, Any]) -> str:
        """Build ``{repoName}-{timestamp}.json`` from a report document."""
        timestamp = document["metadata"]["analyzedAt"]
        safe_timestamp = timestamp.replace(":", "-").replace(".", "-")
        return f"{document['metadata']['repoName']}-{safe_timestamp}.json"

    def save(self, report: AnalysisReport) -> str:
        """
        Persist a report as a new file.

        Args:
            report (AnalysisReport): Assembled report

        Returns:
            str: Name of the written file

        Raises:
            FileExistsError: If a report with the same name is already stored
        """
        document = report.to_document()
        filename = self.validate_filename(self.report_filename(document))
        file_path = self.storage_dir / filename

        try:
            with open(file_path, "x", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
        except OSError as e:
            logger.error(
                {
                    "message": "Failed to store analysis report",
                    "repository": report.repository.full_name,
                    "file_path": str(file_path),
                    "error": str(e),
                }
            )
            raise

        logger.info(
            {
                "message": "Stored analysis report",
                "repository": report.repository.full_name,
                "file_path": str(file_path),
                "failed_slots": report.failed_slots,
            }
        )
        return filename

    def load(self, filename: str) -> Dict[str, Any]:
        """
        Load a stored report.

        Args:
            filename (str): Report file name

        Returns:
            Dict[str, Any]: Stored document with an added ``accessedAt`` timestamp

        Raises:
            InvalidReportName: If the file name is rejected
            ReportNotFound: If no such report exists
        """
        path = self._path(filename)
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)

        document["accessedAt"] = datetime.now(timezone.utc).isoformat()
        return document

    def _read_entry(self, path: Path) -> ReportEntry:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)

        metadata = document["metadata"]
        return ReportEntry(
            filename=path.name,
            metadata=metadata,
            timestamp=str(document.get("timestamp") or metadata["analyzedAt"]),
            summary={
                "commits": document["commits"].get("total", 0),
                "pullRequests": document["pullRequests"].get("total", 0),
                "issues": document["issues"].get("total", 0),
                "contributors": document["contributors"].get("total", 0),
            },
        )

    def list_reports(self, page: int = 1, limit: int = 20) -> ReportPage:
        """
        List stored reports, newest first.

        Args:
            page (int): 1-based page number
            limit (int): Reports per page

        Returns:
            ReportPage: Requested page and pagination details
        """
        page = max(page, 1)
        limit = max(limit, 1)

        entries: List[ReportEntry] = []
        for path in sorted(self.storage_dir.glob("*.json")):
            try:
                entries.append(self._read_entry(path))
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning(
                    {
                        "message": "Failed to read report file",
                        "file": path.name,
                        "error": str(e),
                    }
                )

        entries.sort(key=_sort_key, reverse=True)
        offset = (page - 1) * limit
        return ReportPage(
            reports=entries[offset : offset + limit],
            page=page,
            limit=limit,
            total=len(entries),
            total_pages=math.ceil(len(entries) / limit),
            has_next=offset + limit < len(entries),
            has_prev=page > 1,
        )

    def delete(self, filename: str) -> None:
        """
        Remove a stored report.

        Raises:
            InvalidReportName: If the file name is rejected
            ReportNotFound: If no such report exists
        """
        path = self._path(filename)
        os.remove(path)
        logger.info({"message": "Report deleted", "file": filename})
