"""
Tests for the local git history miner.
"""

import os
from unittest.mock import AsyncMock

import pytest

from errors import CloneFailed, LocalExtractionError
from miners.git_miner import (
    FIELD_SEPARATOR,
    RECORD_SEPARATOR,
    GitHistoryMiner,
    parse_commit_log,
    parse_numstat,
)
from miners.models import RepositoryIdentity

IDENTITY = RepositoryIdentity(owner="octo", name="demo")


def commit_block(commit_hash, author, date, subject, stats=""):
    header = FIELD_SEPARATOR.join([commit_hash, author, date, subject])
    return f"{RECORD_SEPARATOR}{header}\n{stats}\n"


COMMIT_LOG = commit_block(
    "a" * 40,
    "Alice",
    "2024-03-05T10:00:00+01:00",
    "Add parser",
    " 2 files changed, 10 insertions(+), 3 deletions(-)\n",
) + commit_block(
    "b" * 40,
    "Bob",
    "2024-02-01T09:30:00+00:00",
    "Only deletes",
    " 1 file changed, 1 deletion(-)\n",
) + commit_block("c" * 40, "Carol", "2024-01-10T08:00:00+00:00", "Empty merge")

NUMSTAT_LOG = (
    "abc1234|Alice|2024-03-05T10:00:00+01:00|Fix\n"
    "3\t1\tfile.js\n"
    "-\t-\timage.png\n"
    "\n"
    "def5678|Bob|2024-04-01T00:00:00+00:00|Refactor: a|b\n"
    "10\t0\tsrc/app.py\n"
)


def test_parse_commit_log():
    commits = parse_commit_log(COMMIT_LOG)

    assert [c.author_name for c in commits] == ["Alice", "Bob", "Carol"]
    assert (commits[0].insertions, commits[0].deletions) == (10, 3)
    assert (commits[1].insertions, commits[1].deletions) == (0, 1)
    assert (commits[2].insertions, commits[2].deletions) == (0, 0)
    assert commits[0].message == "Add parser"


def test_parse_commit_log_empty_output():
    assert parse_commit_log("") == []


def test_parse_numstat_binary_placeholders():
    """Test that "-" counts from binary files are read as zero."""
    changes, commit_count = parse_numstat(
        "abc1234|A|2024-01-01T00:00:00Z|m\n3\t1\tfile.js\n-\t-\timage.png\n"
    )

    assert commit_count == 1
    assert [(c.path, c.additions, c.deletions) for c in changes] == [
        ("file.js", 3, 1),
        ("image.png", 0, 0),
    ]


def test_parse_numstat_attributes_lines_to_commits():
    changes, commit_count = parse_numstat(NUMSTAT_LOG)

    assert commit_count == 2
    assert [(c.commit_hash, c.month) for c in changes] == [
        ("abc1234", "2024-03"),
        ("abc1234", "2024-03"),
        ("def5678", "2024-04"),
    ]


def test_parse_numstat_skips_malformed_lines():
    output = (
        "abc1234|A|2024-01-01T00:00:00+00:00|m\n"
        "garbage line\n"
        "3\tx\tbroken.py\n"
        "2\t2\tkept.py\n"
    )
    changes, _ = parse_numstat(output)

    assert [c.path for c in changes] == ["kept.py"]


def test_parse_numstat_lines_before_any_header():
    changes, commit_count = parse_numstat("5\t2\torphan.py\n")

    assert commit_count == 0
    assert changes[0].commit_hash == ""
    assert changes[0].month == "unknown"


def test_parse_numstat_empty_output():
    assert parse_numstat("") == ([], 0)


def fake_git(clone_failures=0):
    """Build a _git replacement that fails the first clone attempts."""
    attempts = {"clone": 0}

    async def run(*args, cwd=None):
        if args[0] == "clone":
            attempts["clone"] += 1
            if attempts["clone"] <= clone_failures:
                raise LocalExtractionError("Remote branch main not found")
            os.makedirs(args[-1])
            return ""
        if "--shortstat" in args:
            return COMMIT_LOG
        if "--numstat" in args:
            return NUMSTAT_LOG
        raise AssertionError(f"unexpected git call {args}")

    return AsyncMock(side_effect=run)


@pytest.fixture
def miner(tmp_path):
    return GitHistoryMiner(str(tmp_path / "clones"), clone_depth=50)


@pytest.mark.asyncio
async def test_extract_reads_history_and_removes_clone(miner):
    miner._git = fake_git()

    history = await miner.extract(IDENTITY, "main")

    assert len(history.commits) == 3
    assert len(history.file_changes) == 3
    assert history.churn_commit_count == 2
    assert os.listdir(miner.work_dir) == []

    clone_args = miner._git.await_args_list[0].args
    assert clone_args[:6] == (
        "clone",
        "--depth",
        "50",
        "--single-branch",
        "--branch",
        "main",
    )
    assert clone_args[6] == IDENTITY.clone_url


@pytest.mark.asyncio
async def test_extract_retries_clone_without_branch(miner):
    miner._git = fake_git(clone_failures=1)

    history = await miner.extract(IDENTITY, "does-not-exist")

    assert len(history.commits) == 3
    retry_args = miner._git.await_args_list[1].args
    assert "--branch" not in retry_args
    assert os.listdir(miner.work_dir) == []


@pytest.mark.asyncio
async def test_extract_clone_failure_cleans_up(miner):
    miner._git = fake_git(clone_failures=2)

    with pytest.raises(CloneFailed) as exc_info:
        await miner.extract(IDENTITY, "main")

    assert "octo/demo" in exc_info.value.message
    assert os.listdir(miner.work_dir) == []


@pytest.mark.asyncio
async def test_extract_log_failure_cleans_up(miner):
    async def run(*args, cwd=None):
        if args[0] == "clone":
            os.makedirs(args[-1])
            return ""
        raise LocalExtractionError("fatal: bad revision")

    miner._git = AsyncMock(side_effect=run)

    with pytest.raises(LocalExtractionError):
        await miner.extract(IDENTITY, "main")

    assert os.listdir(miner.work_dir) == []


@pytest.mark.asyncio
async def test_empty_history(miner):
    async def run(*args, cwd=None):
        if args[0] == "clone":
            os.makedirs(args[-1])
        return ""

    miner._git = AsyncMock(side_effect=run)

    history = await miner.extract(IDENTITY, "main")

    assert history.commits == []
    assert history.file_changes == []
    assert history.churn_commit_count == 0
