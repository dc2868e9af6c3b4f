"""
dossier built-in producers.

File: src/dossier/producers/__init__.py

Purpose
- Export the built-in producers and their typed outputs.
- ``build_default_manager`` wires the standard set into a ``PluginManager``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from dossier.plugins.manager import ConfigSink, PluginManager
from dossier.producers.base import BuiltinProducer
from dossier.producers.git import GitProducer
from dossier.producers.github import GitHubAPIError, GitHubProducer
from dossier.producers.language import LanguageProducer
from dossier.producers.outputs import (
    CommitRecord,
    FileChange,
    GitHubOutput,
    GitOutput,
    LanguageOutput,
    PullRequest,
    RepositoryHistory,
    SlackAIOutput,
    TechnologiesOutput,
    Technology,
    TemplateOutput,
)
from dossier.producers.slack_ai import SlackAIProducer
from dossier.producers.technologies import TechnologiesProducer
from dossier.producers.template import TemplateProducer

if TYPE_CHECKING:
    from dossier.ui.prompts import Prompter


def default_producers(
    prompter: Prompter,
    *,
    logger: Any | None = None,
    github_transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[BuiltinProducer, ...]:
    """The standard producer set, in registration order."""

    return (
        LanguageProducer(prompter, logger=logger),
        TemplateProducer(prompter, logger=logger),
        GitProducer(prompter, logger=logger),
        TechnologiesProducer(prompter, logger=logger),
        GitHubProducer(prompter, logger=logger, transport=github_transport),
        SlackAIProducer(prompter, logger=logger),
    )


def build_default_manager(
    prompter: Prompter,
    *,
    store: ConfigSink | None = None,
    logger: Any | None = None,
    github_transport: httpx.AsyncBaseTransport | None = None,
) -> PluginManager:
    manager = PluginManager(store=store, logger=logger)
    manager.register_all(
        default_producers(prompter, logger=logger, github_transport=github_transport)
    )
    return manager


__all__ = [
    "BuiltinProducer",
    "CommitRecord",
    "FileChange",
    "GitHubAPIError",
    "GitHubOutput",
    "GitHubProducer",
    "GitOutput",
    "GitProducer",
    "LanguageOutput",
    "LanguageProducer",
    "PullRequest",
    "RepositoryHistory",
    "SlackAIOutput",
    "SlackAIProducer",
    "TechnologiesOutput",
    "TechnologiesProducer",
    "Technology",
    "TemplateOutput",
    "TemplateProducer",
    "build_default_manager",
    "default_producers",
]
