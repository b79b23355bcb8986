"""Read commits from a local git repository.

Commits are read with ``git log --numstat`` so each event carries the lines
added and removed. Binary files, which ``numstat`` reports as ``-``, count as
zero lines.

Windows are applied to the author date. git's ``--since`` filters on the
committer date, which is never earlier than the author date for rebased or
amended commits, so it only narrows the walk; the upper bound is checked
here rather than with ``--until`` so such commits land in the window they
were authored in.
"""

from __future__ import annotations

import asyncio
import dataclasses
import datetime as dt
import typing as typ
from pathlib import Path

from tallyman.common.time import isoformat_seconds
from tallyman.logging import get_logger, log_debug
from tallyman.timeline import EntityType, EventKind, RawEvent, Subject

from .errors import SourceError

if typ.TYPE_CHECKING:
    from tallyman.common import ActivityWindow

logger = get_logger(__name__)

_RECORD_SEP = "\x1e"
_FIELD_SEP = "\x1f"
_STATS_SEP = "\x1d"
_LOG_FORMAT = (
    f"{_RECORD_SEP}%H{_FIELD_SEP}%an{_FIELD_SEP}%ae{_FIELD_SEP}%aI"
    f"{_FIELD_SEP}%S{_FIELD_SEP}%s{_FIELD_SEP}%b{_STATS_SEP}"
)
_HEADER_FIELDS = 7
_REF_PREFIXES = ("refs/heads/", "refs/remotes/", "refs/")


@dataclasses.dataclass(frozen=True, slots=True)
class CommitLogEntry:
    """One commit as parsed from ``git log``.

    ``ref`` is the ref the commit was reached from; it is only filled in
    when the log was produced with ``--source``.
    """

    hash: str
    author: str
    email: str
    authored_at: dt.datetime
    message: str
    lines_added: int = 0
    lines_removed: int = 0
    ref: str = ""


def _count(value: str) -> int:
    return int(value) if value.isdigit() else 0


def _parse_numstat(block: str) -> tuple[int, int]:
    added = removed = 0
    for line in block.splitlines():
        parts = line.split("\t")
        if len(parts) < 3:  # noqa: PLR2004
            continue
        added += _count(parts[0])
        removed += _count(parts[1])
    return (added, removed)


def branch_name(ref: str) -> str:
    """Strip the ``refs/...`` namespace from a ref reported by ``%S``."""
    for prefix in _REF_PREFIXES:
        if ref.startswith(prefix):
            return ref.removeprefix(prefix)
    return ref


def parse_git_log(output: str) -> list[CommitLogEntry]:
    """Parse ``git log`` output produced with this module's format string.

    Records whose header is incomplete are skipped.
    """
    entries: list[CommitLogEntry] = []
    for record in output.split(_RECORD_SEP):
        if not record.strip():
            continue
        header, _, stats = record.partition(_STATS_SEP)
        fields = header.split(_FIELD_SEP)
        if len(fields) != _HEADER_FIELDS:
            continue
        commit_hash, author, email, authored, ref, subject, body = fields
        try:
            authored_at = dt.datetime.fromisoformat(authored.strip())
        except ValueError:
            continue
        message = subject.strip()
        if body.strip():
            message = f"{message}\n\n{body.strip()}"
        added, removed = _parse_numstat(stats)
        entries.append(
            CommitLogEntry(
                hash=commit_hash.strip(),
                author=author.strip(),
                email=email.strip(),
                authored_at=authored_at,
                message=message,
                lines_added=added,
                lines_removed=removed,
                ref=ref.strip(),
            )
        )
    return entries


class GitLogConnector:
    """Source connector that reads commits from one local clone.

    Parameters
    ----------
    path
        Working tree or bare repository to read.
    repository
        Name recorded on each commit; defaults to the directory name.
    is_fork
        Whether the clone is a fork, recorded on every commit.
    all_branches
        Read commits reachable from every ref instead of ``HEAD`` only. Each
        commit is then attributed to the ref it was first reached from.
    executable
        git binary to run.

    """

    def __init__(
        self,
        path: Path | str,
        *,
        repository: str | None = None,
        is_fork: bool = False,
        all_branches: bool = False,
        executable: str = "git",
    ) -> None:
        """Store the repository location and how commits are attributed."""
        self._path = Path(path)
        self._repository = repository or self._path.resolve().name
        self._is_fork = is_fork
        self._all_branches = all_branches
        self._executable = executable

    @property
    def name(self) -> str:
        """Return the connector name used in summaries."""
        return f"git:{self._repository}"

    async def fetch(self, window: ActivityWindow) -> list[RawEvent]:
        """Return ``committed`` events authored inside ``window``.

        Raises
        ------
        SourceError
            If git is missing, the path is not a repository, or ``git log``
            fails.

        """
        head = (await self._git("rev-parse", "--abbrev-ref", "HEAD")).strip()
        args = [
            "log",
            f"--since={isoformat_seconds(window.start)}",
            f"--format={_LOG_FORMAT}",
            "--numstat",
        ]
        if self._all_branches:
            args.extend(["--all", "--source"])
        entries = parse_git_log(await self._git(*args))
        events = [
            self._to_event(entry, head)
            for entry in entries
            if window.contains(entry.authored_at)
        ]
        log_debug(logger, "Read %d commits from %s", len(events), self._path)
        return events

    def _to_event(self, entry: CommitLogEntry, head: str) -> RawEvent:
        subject = Subject(
            entity_type=EntityType.COMMIT,
            repository=self._repository,
            title=entry.message.splitlines()[0] if entry.message else "",
        )
        branch = head
        if entry.ref and entry.ref != "HEAD":
            branch = branch_name(entry.ref)
        return RawEvent(
            entity_id=f"commit:{self._repository}@{entry.hash}",
            kind=EventKind.COMMITTED.value,
            actor=entry.author,
            occurred_at=entry.authored_at,
            subject=subject,
            payload={
                "hash": entry.hash,
                "message": entry.message,
                "email": entry.email,
                "branch": branch,
                "lines_added": entry.lines_added,
                "lines_removed": entry.lines_removed,
                "is_fork": self._is_fork,
            },
        )

    async def _git(self, *args: str) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                self._executable,
                "-C",
                str(self._path),
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise SourceError.unavailable(self.name, str(exc)) from exc
        try:
            stdout, stderr = await process.communicate()
        except BaseException:
            # Cancelled by a fetch timeout; reap the child before propagating.
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise
        if process.returncode != 0:
            detail = stderr.decode("utf-8", "replace").strip() or (
                f"git exited with status {process.returncode}"
            )
            raise SourceError.unavailable(self.name, detail)
        return stdout.decode("utf-8", "replace")
