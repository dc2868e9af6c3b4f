"""
dossier — git commits producer

File: src/dossier/producers/git.py

Purpose
- Configure the work period, company, repositories and author emails.
- Summarize the author's commits per repository, grouped by month.

Behavior
- Commits below ``minimum_commit_changes`` are dropped; each repository keeps at most
  ``max_commits`` (newest first).
- A repository that cannot be read is logged as ``git_repository_skipped`` and left out.
- No readable repository means no output (dependents see nothing for ``git``).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from dossier.config.schema import is_valid_date
from dossier.constants import GIT_PRIORITY, GIT_PRODUCER_ID
from dossier.plugins.base import ProducerDescriptor, ProducerResult
from dossier.producers.base import BuiltinProducer
from dossier.producers.git_log import (
    GitCommandError,
    git_user_email,
    is_git_repository,
    read_repository,
)
from dossier.producers.outputs import CommitRecord, GitOutput, RepositoryHistory

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dossier.config.schema import DossierConfig
    from dossier.plugins.base import ConfigureOptions
    from dossier.plugins.outputs import DependencyView
    from dossier.ui.prompts import Prompter

COMMITS_PER_MONTH_SHOWN: Final[int] = 10

RepositoryReader = Callable[..., RepositoryHistory]


class GitProducer(BuiltinProducer):
    descriptor = ProducerDescriptor(identity=GIT_PRODUCER_ID, name="Git Commits")
    priority = GIT_PRIORITY

    def __init__(
        self,
        prompter: Prompter,
        *,
        logger: Any | None = None,
        reader: RepositoryReader | None = None,
        email_detector: Callable[[], str | None] | None = None,
    ) -> None:
        super().__init__(prompter, logger=logger)
        self._reader = reader if reader is not None else read_repository
        self._email_detector = email_detector if email_detector is not None else git_user_email

    def prompt(self, config: DossierConfig, options: ConfigureOptions) -> DossierConfig:
        changes: dict[str, Any] = {}

        if not config.company_name or options.reset:
            changes["company_name"] = self._prompter.text(
                "Which company is this document for?",
                default=config.company_name or None,
                validate=_required("Company name is required"),
            )

        if not config.start_date or not config.end_date or options.reset:
            self._prompter.note("\nDate range for work history:")
            changes["start_date"] = self._prompter.text(
                "Start date (YYYY-MM-DD)",
                default=config.start_date or None,
                validate=_date_validator("Start date is required"),
            )
            changes["end_date"] = self._prompter.text(
                "End date (YYYY-MM-DD)",
                default=config.end_date or None,
                validate=_date_validator("End date is required"),
            )

        if not config.repositories or options.reset:
            self._prompter.note("\nAdd git repositories to analyze:")
            if options.reset and config.repositories:
                self._prompter.note(f"Current repositories: {', '.join(config.repositories)}")
            existing = config.repositories if options.reset else ()
            changes["repositories"] = self._collect(
                existing,
                first="Repository path",
                more="Add another repository (or leave empty to continue)",
                validate=_repository_problem,
                required="At least one repository is required",
            )

        if not config.author_emails or options.reset:
            self._prompter.note("\nAdd author emails to filter commits:")
            if options.reset and config.author_emails:
                self._prompter.note(f"Current emails: {', '.join(config.author_emails)}")
            detected = self._email_detector()
            if detected:
                self._prompter.note(f"  Detected git email: {detected}")
            existing = config.author_emails if options.reset else ()
            changes["author_emails"] = self._collect(
                existing,
                first="Author email",
                more="Add another email (or leave empty to continue)",
                validate=_email_problem,
                required="At least one email is required",
                first_default=detected,
            )

        changed = {key: value for key, value in changes.items() if getattr(config, key) != value}
        if not changed:
            return config
        return config.evolve(**changed)

    def is_eligible(self, config: DossierConfig, deps: DependencyView) -> bool:
        return bool(
            config.repositories
            and config.author_emails
            and config.start_date
            and config.end_date
        )

    def run(self, config: DossierConfig, deps: DependencyView) -> ProducerResult | None:
        histories: list[RepositoryHistory] = []
        for repository in config.repositories:
            try:
                history = self._reader(
                    repository,
                    config.author_emails,
                    since=config.start_date or None,
                    until=_end_of_day(config.end_date),
                )
            except (GitCommandError, OSError) as exc:
                self._logger.warning(
                    "git_repository_skipped",
                    repository=repository,
                    error=f"{type(exc).__name__}: {exc}",
                )
                continue
            histories.append(
                limit_commits(history, config.minimum_commit_changes, config.max_commits)
            )

        if not histories:
            return None

        output = GitOutput(repositories=tuple(histories))
        body = format_commits_section(output.repositories)
        if not body:
            return self.result(output)
        return self.result(output, self.fragment("Git Commits", body))

    def _collect(
        self,
        existing: Sequence[str],
        *,
        first: str,
        more: str,
        validate: Callable[[str], str | None],
        required: str,
        first_default: str | None = None,
    ) -> tuple[str, ...]:
        items = list(existing)
        while True:
            is_first = not items

            def check(value: str, is_first: bool = is_first) -> str | None:
                if not value:
                    return required if is_first else None
                return validate(value)

            answer = self._prompter.text(
                first if is_first else more,
                default=first_default if is_first else None,
                validate=check,
            )
            if not answer:
                return tuple(items)
            if answer not in items:
                items.append(answer)
                self._prompter.note(f"  Added: {answer}")


def limit_commits(
    history: RepositoryHistory,
    minimum_changes: int,
    max_commits: int,
) -> RepositoryHistory:
    kept = [commit for commit in history.commits if commit.total_changes >= minimum_changes]
    return replace(history, commits=tuple(kept[:max_commits]))


def format_commits_section(repositories: Sequence[RepositoryHistory]) -> str:
    """Markdown summary: one heading per repository, commits grouped by month."""

    if not any(repo.commits for repo in repositories):
        return ""

    lines = ["## Code Contributions", ""]
    for repo in repositories:
        if not repo.commits:
            continue
        lines.append(f"### {repo.name}")
        lines.append(f"Total commits: {len(repo.commits)}")
        lines.append("")

        by_month: dict[str, list[CommitRecord]] = {}
        for commit in repo.commits:
            by_month.setdefault(commit.month, []).append(commit)

        for month, commits in by_month.items():
            lines.append(f"**{month}** ({len(commits)} commits)")
            for commit in commits[:COMMITS_PER_MONTH_SHOWN]:
                lines.append(f"- {commit.message} (+{commit.additions}/-{commit.deletions})")
            if len(commits) > COMMITS_PER_MONTH_SHOWN:
                lines.append(f"- ... and {len(commits) - COMMITS_PER_MONTH_SHOWN} more commits")
            lines.append("")
    return "\n".join(lines)


def _end_of_day(date: str) -> str | None:
    # ``--until=YYYY-MM-DD`` means midnight at the start of that day.
    return f"{date} 23:59:59" if date else None


def _required(message: str) -> Callable[[str], str | None]:
    def check(value: str) -> str | None:
        return message if not value.strip() else None

    return check


def _date_validator(missing: str) -> Callable[[str], str | None]:
    def check(value: str) -> str | None:
        if not value.strip():
            return missing
        if not is_valid_date(value):
            return "Use format YYYY-MM-DD"
        return None

    return check


def _repository_problem(value: str) -> str | None:
    path = Path(value).expanduser()
    if not path.exists():
        return "Path does not exist"
    if not is_git_repository(path):
        return "Not a git repository"
    return None


def _email_problem(value: str) -> str | None:
    return None if "@" in value else "Invalid email format"


__all__ = ["GitProducer", "format_commits_section", "limit_commits"]
