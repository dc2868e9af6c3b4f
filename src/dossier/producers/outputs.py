"""
Typed outputs of the built-in producers.

One ``ProducerOutput`` subclass per built-in identity; dependents read them with
``deps.get(GitOutput)`` and get ``None`` when the producer did not succeed.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import ClassVar, Literal

from dossier.constants import (
    GIT_PRODUCER_ID,
    GITHUB_PRODUCER_ID,
    LANGUAGE_PRODUCER_ID,
    SLACK_AI_PRODUCER_ID,
    TECHNOLOGIES_PRODUCER_ID,
    TEMPLATE_PRODUCER_ID,
)
from dossier.plugins.outputs import ProducerOutput

FileStatus = Literal["modified", "binary"]
TechnologyCategory = Literal[
    "language", "framework", "library", "database", "cloud", "infrastructure", "tool"
]
TechnologySource = Literal["file", "readme", "dependency"]
Confidence = Literal["high", "medium", "low"]


@dataclass(frozen=True, slots=True)
class LanguageOutput(ProducerOutput):
    producer_id: ClassVar[str] = LANGUAGE_PRODUCER_ID

    language: str


@dataclass(frozen=True, slots=True)
class TemplateOutput(ProducerOutput):
    producer_id: ClassVar[str] = TEMPLATE_PRODUCER_ID

    content: str


@dataclass(frozen=True, slots=True)
class SlackAIOutput(ProducerOutput):
    producer_id: ClassVar[str] = SLACK_AI_PRODUCER_ID

    content: str


@dataclass(frozen=True, slots=True)
class FileChange:
    path: str
    additions: int
    deletions: int
    status: FileStatus = "modified"


@dataclass(frozen=True, slots=True)
class CommitRecord:
    sha: str
    date: str
    author: str
    email: str
    message: str
    files: tuple[FileChange, ...] = ()

    @property
    def additions(self) -> int:
        return sum(item.additions for item in self.files)

    @property
    def deletions(self) -> int:
        return sum(item.deletions for item in self.files)

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions

    @property
    def month(self) -> str:
        return self.date[:7]


@dataclass(frozen=True, slots=True)
class RepositoryHistory:
    path: str
    name: str
    commits: tuple[CommitRecord, ...]
    remote: str | None = None
    github_url: str | None = None

    @property
    def is_github(self) -> bool:
        return self.github_url is not None


@dataclass(frozen=True, slots=True)
class GitOutput(ProducerOutput):
    producer_id: ClassVar[str] = GIT_PRODUCER_ID

    repositories: tuple[RepositoryHistory, ...]

    def commits(self) -> Iterator[CommitRecord]:
        for repository in self.repositories:
            yield from repository.commits

    @property
    def github_repositories(self) -> tuple[RepositoryHistory, ...]:
        return tuple(repo for repo in self.repositories if repo.is_github)


@dataclass(frozen=True, slots=True)
class Technology:
    name: str
    category: TechnologyCategory
    source: TechnologySource
    confidence: Confidence = "high"


@dataclass(frozen=True, slots=True)
class TechnologiesOutput(ProducerOutput):
    producer_id: ClassVar[str] = TECHNOLOGIES_PRODUCER_ID

    technologies: tuple[Technology, ...]

    def names(self) -> tuple[str, ...]:
        return tuple(item.name for item in self.technologies)


@dataclass(frozen=True, slots=True)
class PullRequest:
    repository: str
    number: int
    title: str
    state: str
    author: str
    created_at: str
    merged_at: str | None = None
    body: str = ""
    labels: tuple[str, ...] = ()

    @property
    def status(self) -> str:
        return "merged" if self.merged_at else self.state


@dataclass(frozen=True, slots=True)
class GitHubOutput(ProducerOutput):
    producer_id: ClassVar[str] = GITHUB_PRODUCER_ID

    pull_requests: tuple[PullRequest, ...]


__all__ = [
    "CommitRecord",
    "FileChange",
    "GitHubOutput",
    "GitOutput",
    "LanguageOutput",
    "PullRequest",
    "RepositoryHistory",
    "SlackAIOutput",
    "TechnologiesOutput",
    "Technology",
    "TemplateOutput",
]
