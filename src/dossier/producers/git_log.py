"""
dossier — git history reader

File: src/dossier/producers/git_log.py

Purpose
- Read per-author commit history (with numstat file changes) from local repositories.
- Detect the GitHub web URL of a repository from its ``origin`` remote.

Behavior
- Every git call runs through ``run_git``: no terminal prompts, captured text output,
  ``GitCommandError`` on non-zero exit.
- Commits are deduplicated by SHA across author emails and returned newest first.
- Log records use ASCII record/unit separators so subjects and names may contain ``|``.
"""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Final

from dossier.producers.outputs import CommitRecord, FileChange, RepositoryHistory

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

_RECORD_SEP: Final[str] = "\x1e"
_FIELD_SEP: Final[str] = "\x1f"
_LOG_FORMAT: Final[str] = "--pretty=format:" + _RECORD_SEP + _FIELD_SEP.join(
    ("%H", "%aI", "%an", "%ae", "%s")
)

_GITHUB_HOST_RE: Final[re.Pattern[str]] = re.compile(
    r"github\.(com|[A-Za-z0-9.-]+)", re.IGNORECASE
)
_SSH_REMOTE_RE: Final[re.Pattern[str]] = re.compile(
    r"^(?:ssh://)?git@([^:/]+)[:/](.+?)(?:\.git)?/?$"
)
_HTTPS_REMOTE_RE: Final[re.Pattern[str]] = re.compile(
    r"^https?://(?:[^@/]+@)?([^/]+)/(.+?)(?:\.git)?/?$"
)


class GitCommandError(RuntimeError):
    """Raised when a git subprocess command exits non-zero or cannot be started."""

    def __init__(
        self,
        *,
        command: Sequence[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        message = f"git command failed ({returncode}): {' '.join(command)}"
        if stderr.strip():
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class CommandResult:
    command: tuple[str, ...]
    cwd: str
    returncode: int
    stdout: str
    stderr: str


def run_git(args: Sequence[str], *, cwd: Path, check: bool = True) -> CommandResult:
    command = ("git", *args)
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    env.setdefault("GIT_CONFIG_NOSYSTEM", "1")

    try:
        completed = subprocess.run(
            command,
            cwd=cwd,
            env=env,
            text=True,
            encoding="utf-8",
            errors="replace",
            capture_output=True,
            check=False,
        )
    except OSError as exc:
        raise GitCommandError(command=command, returncode=-1, stderr=str(exc)) from exc

    result = CommandResult(
        command=command,
        cwd=cwd.as_posix(),
        returncode=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
    )
    if check and result.returncode != 0:
        raise GitCommandError(
            command=result.command,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    return result


def is_git_repository(path: str | Path) -> bool:
    candidate = Path(path).expanduser()
    return candidate.is_dir() and (candidate / ".git").exists()


def git_user_email(cwd: Path | None = None) -> str | None:
    """Return ``git config user.email`` or ``None`` when unset or git is missing."""

    try:
        result = run_git(("config", "user.email"), cwd=cwd or Path.cwd(), check=False)
    except GitCommandError:
        return None
    email = result.stdout.strip()
    return email if result.returncode == 0 and email else None


def read_repository(
    path: str | Path,
    author_emails: Iterable[str],
    *,
    since: str | None = None,
    until: str | None = None,
) -> RepositoryHistory:
    """Collect commits by ``author_emails`` in ``path``; raises ``GitCommandError``."""

    repo_path = Path(path).expanduser()
    if not is_git_repository(repo_path):
        raise GitCommandError(
            command=("git", "-C", str(repo_path), "log"),
            returncode=128,
            stderr=f"not a git repository: {repo_path}",
        )

    commits: dict[str, CommitRecord] = {}
    for email in author_emails:
        for commit in _commits_for_author(repo_path, email, since=since, until=until):
            commits.setdefault(commit.sha, commit)

    remote = origin_url(repo_path)
    return RepositoryHistory(
        path=str(repo_path),
        name=repo_path.resolve().name,
        commits=tuple(sorted(commits.values(), key=_commit_sort_key, reverse=True)),
        remote=remote,
        github_url=github_web_url(remote),
    )


def origin_url(repo_path: Path) -> str | None:
    result = run_git(("remote", "get-url", "origin"), cwd=repo_path, check=False)
    url = result.stdout.strip()
    return url if result.returncode == 0 and url else None


def github_web_url(remote: str | None) -> str | None:
    """Map a GitHub (or GitHub Enterprise) remote to ``https://host/owner/repo``."""

    if not remote or not _GITHUB_HOST_RE.search(remote):
        return None
    for pattern in (_SSH_REMOTE_RE, _HTTPS_REMOTE_RE):
        match = pattern.match(remote.strip())
        if match:
            host, repo_path = match.groups()
            return f"https://{host}/{repo_path}"
    return None


def parse_log(output: str) -> tuple[CommitRecord, ...]:
    """Parse ``git log`` output produced with ``_LOG_FORMAT`` and ``--numstat``."""

    commits: list[CommitRecord] = []
    for record in output.split(_RECORD_SEP):
        if not record.strip():
            continue
        header, _, body = record.partition("\n")
        parts = header.split(_FIELD_SEP)
        if len(parts) < 5:
            continue
        sha, date, author, email = parts[:4]
        message = _FIELD_SEP.join(parts[4:]).strip()

        files: list[FileChange] = []
        for line in body.splitlines():
            columns = line.split("\t")
            if len(columns) < 3:
                continue
            files.append(_file_change(columns[0], columns[1], "\t".join(columns[2:])))

        commits.append(
            CommitRecord(
                sha=sha.strip(),
                date=date.strip(),
                author=author.strip(),
                email=email.strip(),
                message=message,
                files=tuple(files),
            )
        )
    return tuple(commits)


def _commits_for_author(
    repo_path: Path,
    email: str,
    *,
    since: str | None,
    until: str | None,
) -> tuple[CommitRecord, ...]:
    args = ["log", f"--author={email}", _LOG_FORMAT, "--date=iso-strict", "--numstat"]
    if since:
        args.append(f"--since={since}")
    if until:
        args.append(f"--until={until}")
    return parse_log(run_git(args, cwd=repo_path).stdout)


def _file_change(additions: str, deletions: str, path: str) -> FileChange:
    if additions == "-" and deletions == "-":
        return FileChange(path=path, additions=0, deletions=0, status="binary")
    added = int(additions) if additions.isdigit() else 0
    deleted = int(deletions) if deletions.isdigit() else 0
    return FileChange(path=path, additions=added, deletions=deleted)


def _commit_sort_key(commit: CommitRecord) -> datetime:
    try:
        return datetime.fromisoformat(commit.date)
    except ValueError:
        return datetime.min.replace(tzinfo=UTC)


__all__ = [
    "CommandResult",
    "GitCommandError",
    "github_web_url",
    "git_user_email",
    "is_git_repository",
    "origin_url",
    "parse_log",
    "read_repository",
    "run_git",
]
