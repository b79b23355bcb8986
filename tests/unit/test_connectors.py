"""Unit tests for the JSON-lines and git connectors."""

from __future__ import annotations

import asyncio
import os
import shutil
import subprocess
import typing as typ

import pytest

from tallyman.common import ActivityWindow
from tallyman.connectors import (
    GitLogConnector,
    JsonLinesConnector,
    SourceError,
    branch_name,
    parse_git_log,
)
from tallyman.timeline import EntityType
from tests.helpers.events import utc

if typ.TYPE_CHECKING:
    from pathlib import Path

WINDOW = ActivityWindow(utc(2024, 3, 1), utc(2024, 4, 1))

_LINES = b"""\
{"kind": "opened", "actor": "alice", "occurred_at": "2024-03-04T09:00:00Z", \
"subject": {"type": "issue", "repository": "acme/api", "number": 7, "title": "Crash"}}

{"kind": "status_changed", "actor": "bob", "occurred_at": "2024-03-04T10:00:00+01:00", \
"subject": {"type": "issue", "repository": "acme/api", "number": 7}, \
"payload": {"status": "In Review"}}
{"entity_id": "custom-1", "kind": "commented", \
"subject": {"type": "pull_request", "repository": "acme/api", "url": "https://x/pr/1"}}
"""


class TestJsonLinesConnector:
    """Decoding event exports."""

    @pytest.mark.asyncio
    async def test_fetch_decodes_every_line(self, tmp_path: Path) -> None:
        """Blank lines are skipped and entity ids derived from subjects."""
        path = tmp_path / "events.jsonl"
        path.write_bytes(_LINES)
        connector = JsonLinesConnector(path)

        events = await connector.fetch(WINDOW)

        assert connector.name == "jsonl:events.jsonl"
        assert [event.entity_id for event in events] == [
            "issue:acme/api#7",
            "issue:acme/api#7",
            "custom-1",
        ]
        assert events[0].subject.entity_type is EntityType.ISSUE
        assert events[0].subject.title == "Crash"
        assert events[1].occurred_at == utc(2024, 3, 4, 9)
        assert events[1].payload == {"status": "In Review"}
        assert events[2].actor is None
        assert events[2].occurred_at is None

    @pytest.mark.asyncio
    async def test_missing_file_is_unavailable(self, tmp_path: Path) -> None:
        """An unreadable file fails the fetch as an unavailable source."""
        connector = JsonLinesConnector(tmp_path / "absent.jsonl", name="export")
        with pytest.raises(SourceError) as excinfo:
            await connector.fetch(WINDOW)
        assert excinfo.value.reason == "unavailable"
        assert excinfo.value.source == "export"

    @pytest.mark.parametrize(
        "line",
        [
            b"not json",
            b'{"kind": "opened"}',
            b'{"kind": "opened", "subject": {"type": "epic", "repository": "r"}}',
            b'{"kind": "opened", "subject": {"type": "issue", "repository": "r"}}',
        ],
    )
    def test_invalid_lines_are_rejected(self, line: bytes) -> None:
        """Structurally invalid lines fail with their line number."""
        connector = JsonLinesConnector("events.jsonl")
        with pytest.raises(SourceError, match="line 2") as excinfo:
            connector.parse(b"\n" + line)
        assert excinfo.value.reason == "invalid_payload"


_SEP_RECORD, _SEP_FIELD, _SEP_STATS = "\x1e", "\x1f", "\x1d"


def _log_record(  # noqa: PLR0913
    commit_hash: str,
    when: str,
    subject: str,
    body: str,
    stats: str,
    ref: str = "",
) -> str:
    fields = [commit_hash, "Alice", "alice@example.test", when, ref, subject, body]
    return f"{_SEP_RECORD}{_SEP_FIELD.join(fields)}{_SEP_STATS}{stats}"


def test_parse_git_log() -> None:
    """Headers, messages, and numstat totals are parsed per commit."""
    output = "".join(
        [
            _log_record(
                "a" * 40,
                "2024-03-04T10:00:00+01:00",
                "Add parser",
                "Longer body\n",
                "\n\n3\t1\tsrc/a.py\n-\t-\tlogo.png\n10\t0\tsrc/b.py\n",
            ),
            _log_record(
                "b" * 40,
                "2024-03-05T09:00:00Z",
                "Tidy",
                "",
                "\n",
                ref="refs/heads/feature",
            ),
            _log_record("c" * 40, "yesterday", "Broken date", "", ""),
        ]
    )

    entries = parse_git_log(output)

    assert [entry.hash for entry in entries] == ["a" * 40, "b" * 40]
    first = entries[0]
    assert first.authored_at == utc(2024, 3, 4, 9)
    assert first.message == "Add parser\n\nLonger body"
    assert (first.lines_added, first.lines_removed) == (13, 1)
    assert first.ref == ""
    assert entries[1].message == "Tidy"
    assert entries[1].ref == "refs/heads/feature"


@pytest.mark.parametrize(
    ("ref", "expected"),
    [
        ("refs/heads/feature/x", "feature/x"),
        ("refs/remotes/origin/main", "origin/main"),
        ("refs/tags/v1.0", "tags/v1.0"),
        ("main", "main"),
    ],
)
def test_branch_name(ref: str, expected: str) -> None:
    """Ref namespaces are stripped for display."""
    assert branch_name(ref) == expected


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
class TestGitLogConnector:
    """Reading commits from a real repository."""

    @staticmethod
    def _git(
        repo: Path,
        *args: str,
        when: str | None = None,
        committed: str | None = None,
    ) -> None:
        env = {
            **os.environ,
            "GIT_AUTHOR_NAME": "Alice",
            "GIT_AUTHOR_EMAIL": "alice@example.test",
            "GIT_COMMITTER_NAME": "Alice",
            "GIT_COMMITTER_EMAIL": "alice@example.test",
        }
        if when is not None:
            env["GIT_AUTHOR_DATE"] = when
            env["GIT_COMMITTER_DATE"] = committed or when
        subprocess.run(  # noqa: S603
            ["git", "-C", str(repo), *args],  # noqa: S607
            check=True,
            capture_output=True,
            env=env,
        )

    @pytest.mark.asyncio
    async def test_fetch_reads_commits_in_window(self, tmp_path: Path) -> None:
        """Commits inside the window become committed events."""
        repo = tmp_path / "widget"
        repo.mkdir()
        self._git(repo, "init", "-b", "main")
        (repo / "a.txt").write_text("one\ntwo\n")
        self._git(repo, "add", "a.txt")
        self._git(repo, "commit", "-m", "Too early", when="2024-02-01T10:00:00Z")
        (repo / "a.txt").write_text("one\n")
        self._git(repo, "commit", "-am", "Trim", when="2024-03-04T10:00:00Z")

        events = await GitLogConnector(repo, is_fork=True).fetch(WINDOW)

        assert len(events) == 1
        event = events[0]
        assert event.kind == "committed"
        assert event.actor == "Alice"
        assert event.occurred_at == utc(2024, 3, 4, 10)
        assert event.subject.repository == "widget"
        assert event.payload["message"] == "Trim"
        assert event.payload["branch"] == "main"
        assert event.payload["lines_removed"] == 1
        assert event.payload["is_fork"] is True

    @pytest.mark.asyncio
    async def test_non_repository_is_unavailable(self, tmp_path: Path) -> None:
        """A directory that is not a git repository fails the fetch."""
        with pytest.raises(SourceError) as excinfo:
            await GitLogConnector(tmp_path).fetch(WINDOW)
        assert excinfo.value.reason == "unavailable"

    @pytest.mark.asyncio
    async def test_rebased_commit_lands_in_its_authoring_window(
        self, tmp_path: Path
    ) -> None:
        """A commit re-committed later is read once, in the window it was authored."""
        repo = tmp_path / "widget"
        repo.mkdir()
        self._git(repo, "init", "-b", "main")
        (repo / "a.txt").write_text("one\n")
        self._git(repo, "add", "a.txt")
        self._git(
            repo,
            "commit",
            "-m",
            "Rebased",
            when="2024-03-04T10:00:00Z",
            committed="2024-03-06T10:00:00Z",
        )
        connector = GitLogConnector(repo)

        authored_day = await connector.fetch(
            ActivityWindow(utc(2024, 3, 4), utc(2024, 3, 5))
        )
        following_days = await connector.fetch(
            ActivityWindow(utc(2024, 3, 5), utc(2024, 3, 7))
        )

        assert [event.payload["message"] for event in authored_day] == ["Rebased"]
        assert following_days == []

    @pytest.mark.asyncio
    async def test_all_branches_records_each_commits_branch(
        self, tmp_path: Path
    ) -> None:
        """Commits reached only from another ref carry that ref's branch."""
        repo = tmp_path / "widget"
        repo.mkdir()
        self._git(repo, "init", "-b", "main")
        (repo / "a.txt").write_text("one\n")
        self._git(repo, "add", "a.txt")
        self._git(repo, "commit", "-m", "Base", when="2024-03-04T09:00:00Z")
        self._git(repo, "checkout", "-b", "feature")
        (repo / "b.txt").write_text("two\n")
        self._git(repo, "add", "b.txt")
        self._git(repo, "commit", "-m", "Feature work", when="2024-03-04T10:00:00Z")
        self._git(repo, "checkout", "main")
        (repo / "c.txt").write_text("three\n")
        self._git(repo, "add", "c.txt")
        self._git(repo, "commit", "-m", "Main work", when="2024-03-04T11:00:00Z")

        events = await GitLogConnector(repo, all_branches=True).fetch(WINDOW)

        branches = {
            event.payload["message"]: event.payload["branch"] for event in events
        }
        assert branches["Feature work"] == "feature"
        assert branches["Main work"] == "main"
        assert len(events) == 3


@pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")
@pytest.mark.asyncio
async def test_cancelled_fetch_kills_the_child_process(tmp_path: Path) -> None:
    """A fetch abandoned by its deadline leaves no git process behind."""
    pid_file = tmp_path / "git.pid"
    fake_git = tmp_path / "slow-git"
    fake_git.write_text(f'#!/bin/sh\necho $$ > "{pid_file}"\nexec sleep 30\n')
    fake_git.chmod(0o755)
    connector = GitLogConnector(tmp_path, executable=str(fake_git))

    with pytest.raises(TimeoutError):
        async with asyncio.timeout(0.5):
            await connector.fetch(WINDOW)

    pid = int(pid_file.read_text())
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
