"""
Local Git History Mining Module.

Clones a repository shallowly into a temporary directory and reads commit
statistics and per-file churn straight from ``git log``. The temporary checkout
is owned by a single extraction and is removed before the extraction returns,
whatever the outcome.
"""

import asyncio
import os
import re
import shutil
import tempfile
from datetime import datetime
from typing import List, Optional, Tuple

from config import logger
from errors import CloneFailed, LocalExtractionError
from miners.models import CommitRecord, FileChange, LocalHistory, RepositoryIdentity

RECORD_SEPARATOR = "\x1e"
FIELD_SEPARATOR = "\x1f"

COMMIT_LOG_FORMAT = (
    f"--pretty=format:{RECORD_SEPARATOR}%H{FIELD_SEPARATOR}%an"
    f"{FIELD_SEPARATOR}%aI{FIELD_SEPARATOR}%s"
)
CHURN_LOG_FORMAT = "--pretty=format:%H|%an|%aI|%s"

_HEADER_RE = re.compile(r"^[0-9a-f]{7,64}\|")
_NUMSTAT_RE = re.compile(r"^(\d+|-)\t(\d+|-)\t(.+)$")
_INSERTIONS_RE = re.compile(r"(\d+) insertions?\(\+\)")
_DELETIONS_RE = re.compile(r"(\d+) deletions?\(-\)")
_MONTH_PREFIX_RE = re.compile(r"^(\d{4}-\d{2})")

UNKNOWN_MONTH = "unknown"


def _month_of(date: str) -> str:
    """YYYY-MM of a commit's declared date, keeping its own UTC offset."""
    try:
        return datetime.fromisoformat(date.strip()).strftime("%Y-%m")
    except ValueError:
        match = _MONTH_PREFIX_RE.match(date.strip())
        return match.group(1) if match else UNKNOWN_MONTH


def _count(value: str) -> int:
    # Binary files report "-" instead of line counts
    return 0 if value == "-" else int(value)


def parse_commit_log(output: str) -> List[CommitRecord]:
    """
    Parse ``git log --shortstat`` output produced with COMMIT_LOG_FORMAT.

    Args:
        output (str): Raw log output

    Returns:
        List[CommitRecord]: Commits, newest first
    """
    commits: List[CommitRecord] = []
    for record in output.split(RECORD_SEPARATOR):
        if not record.strip():
            continue
        header, _, stats = record.partition("\n")
        fields = header.split(FIELD_SEPARATOR, 3)
        if len(fields) < 4:
            continue
        commit_hash, author, date, subject = fields

        insertions = _INSERTIONS_RE.search(stats)
        deletions = _DELETIONS_RE.search(stats)
        commits.append(
            CommitRecord(
                hash=commit_hash,
                author_name=author,
                author_date=date,
                message=subject,
                insertions=int(insertions.group(1)) if insertions else 0,
                deletions=int(deletions.group(1)) if deletions else 0,
            )
        )
    return commits


def parse_numstat(output: str) -> Tuple[List[FileChange], int]:
    """
    Parse ``git log --numstat`` output produced with CHURN_LOG_FORMAT.

    Each commit block starts with ``hash|author|date|subject`` followed by
    ``additions<TAB>deletions<TAB>path`` lines. A ``-`` count (binary file)
    is read as zero; malformed lines are skipped without abandoning the rest
    of the block or the blocks after it. Lines appearing before any header are
    attributed to an unknown commit.

    Args:
        output (str): Raw log output

    Returns:
        Tuple[List[FileChange], int]: File changes and the number of commit blocks
    """
    changes: List[FileChange] = []
    commit_count = 0
    current_hash = ""
    current_month = UNKNOWN_MONTH

    for line in output.splitlines():
        line = line.strip("\r")
        if not line.strip():
            continue

        if _HEADER_RE.match(line):
            parts = line.split("|", 3)
            current_hash = parts[0]
            current_month = _month_of(parts[2]) if len(parts) > 2 else UNKNOWN_MONTH
            commit_count += 1
            continue

        match = _NUMSTAT_RE.match(line)
        if not match:
            continue
        added, deleted, path = match.groups()
        changes.append(
            FileChange(
                commit_hash=current_hash,
                month=current_month,
                path=path,
                additions=_count(added),
                deletions=_count(deleted),
            )
        )

    return changes, commit_count


class GitHistoryMiner:
    """
    Extracts commit and churn statistics from a temporary shallow clone.

    Attributes:
        work_dir (str): Parent directory for temporary clones
        clone_depth (int): Number of commits fetched by the shallow clone
        commit_window (str): ``--since`` value for commit statistics
        churn_window (str): ``--since`` value for code churn
    """

    def __init__(
        self,
        work_dir: str,
        clone_depth: int = 500,
        commit_window: str = "1 year ago",
        churn_window: str = "6 months ago",
        git_binary: str = "git",
    ):
        self.work_dir = work_dir
        self.clone_depth = clone_depth
        self.commit_window = commit_window
        self.churn_window = churn_window
        self.git_binary = git_binary

    async def _git(self, *args: str, cwd: Optional[str] = None) -> str:
        """
        Run a git command without blocking the event loop.

        Raises:
            LocalExtractionError: If git is missing or exits with a non-zero status
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.git_binary,
                *args,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
            )
        except OSError as e:
            raise LocalExtractionError(f"Unable to run git: {e}") from e

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise LocalExtractionError(
                stderr.decode("utf-8", errors="replace").strip()
                or f"git {args[0]} exited with status {process.returncode}"
            )
        return stdout.decode("utf-8", errors="replace")

    async def clone(
        self, identity: RepositoryIdentity, default_branch: str, destination: str
    ) -> None:
        """
        Shallow-clone the default branch, retrying once without a branch.

        Raises:
            CloneFailed: If both clone attempts fail
        """
        depth = str(self.clone_depth)
        url = identity.clone_url
        logger.info(
            {
                "message": "Cloning repository",
                "repository": identity.full_name,
                "branch": default_branch,
                "depth": self.clone_depth,
            }
        )
        try:
            await self._git(
                "clone",
                "--depth",
                depth,
                "--single-branch",
                "--branch",
                default_branch,
                url,
                destination,
            )
            return
        except LocalExtractionError as e:
            logger.warning(
                {
                    "message": "Clone with default branch failed, retrying without branch",
                    "repository": identity.full_name,
                    "branch": default_branch,
                    "error": str(e),
                }
            )

        if os.path.exists(destination):
            shutil.rmtree(destination)

        try:
            await self._git("clone", "--depth", depth, url, destination)
        except LocalExtractionError as e:
            raise CloneFailed(f"Failed to clone {identity.full_name}: {e}") from e

    async def read_commits(self, repo_path: str) -> List[CommitRecord]:
        output = await self._git(
            "log",
            "--all",
            f"--since={self.commit_window}",
            COMMIT_LOG_FORMAT,
            "--shortstat",
            cwd=repo_path,
        )
        if not output.strip():
            return []
        return parse_commit_log(output)

    async def read_churn(self, repo_path: str) -> Tuple[List[FileChange], int]:
        output = await self._git(
            "log",
            "--numstat",
            f"--since={self.churn_window}",
            CHURN_LOG_FORMAT,
            cwd=repo_path,
        )
        if not output.strip():
            return [], 0
        return parse_numstat(output)

    async def extract(
        self, identity: RepositoryIdentity, default_branch: str = "main"
    ) -> LocalHistory:
        """
        Clone the repository and read its local history.

        The temporary directory is removed on every exit path.

        Args:
            identity (RepositoryIdentity): Repository to clone
            default_branch (str): Branch to clone first

        Returns:
            LocalHistory: Commits and file changes; empty when the log is empty

        Raises:
            CloneFailed: If the repository cannot be cloned
            LocalExtractionError: If reading the log fails
        """
        os.makedirs(self.work_dir, exist_ok=True)
        temp_dir = tempfile.mkdtemp(
            prefix=f"{identity.owner}_{identity.name}_", dir=self.work_dir
        )
        try:
            repo_path = os.path.join(temp_dir, "checkout")
            await self.clone(identity, default_branch, repo_path)

            commits, (file_changes, churn_commit_count) = await asyncio.gather(
                self.read_commits(repo_path), self.read_churn(repo_path)
            )

            logger.info(
                {
                    "message": "Local history extracted",
                    "repository": identity.full_name,
                    "commits": len(commits),
                    "file_changes": len(file_changes),
                }
            )
            return LocalHistory(
                commits=commits,
                file_changes=file_changes,
                churn_commit_count=churn_commit_count,
            )
        finally:
            try:
                shutil.rmtree(temp_dir)
                logger.debug({"message": "Temporary directory cleaned up", "path": temp_dir})
            except OSError as e:
                logger.warning(
                    {
                        "message": "Failed to clean up temporary directory",
                        "path": temp_dir,
                        "error": str(e),
                    }
                )
