"""Stable constants shared across the engine, producers, and CLI."""

from __future__ import annotations

from typing import Final

# Persistence.
DEFAULT_CONFIG_FILE: Final[str] = ".dossier.json"
CONFIG_PATH_ENV: Final[str] = "DOSSIER_CONFIG"
DEFAULT_OUTPUT_FILE: Final[str] = "work-history.md"
LOG_LEVEL_ENV: Final[str] = "DOSSIER_LOG_LEVEL"

# Tri-state markers used only at the JSON persistence boundary.
PENDING_MARKER: Final[str] = "$pending"
DECLINED_MARKER: Final[str] = "$declined"

# Producer identities for the built-in set.
LANGUAGE_PRODUCER_ID: Final[str] = "language"
TEMPLATE_PRODUCER_ID: Final[str] = "template"
GIT_PRODUCER_ID: Final[str] = "git"
TECHNOLOGIES_PRODUCER_ID: Final[str] = "technologies"
GITHUB_PRODUCER_ID: Final[str] = "github"
SLACK_AI_PRODUCER_ID: Final[str] = "slack-ai"

# Fragment priorities (lower renders earlier).
LANGUAGE_PRIORITY: Final[int] = 0
TEMPLATE_PRIORITY: Final[int] = 1
TECHNOLOGIES_PRIORITY: Final[int] = 5
GIT_PRIORITY: Final[int] = 10
GITHUB_PRIORITY: Final[int] = 15
SLACK_AI_PRIORITY: Final[int] = 20

# Defaults for configuration fields.
DEFAULT_LANGUAGE: Final[str] = "English"
DEFAULT_MAX_COMMITS: Final[int] = 100
DEFAULT_MINIMUM_COMMIT_CHANGES: Final[int] = 3

# Rough token estimate: ~4 characters per token.
CHARS_PER_TOKEN: Final[int] = 4
LARGE_DOCUMENT_TOKEN_THRESHOLD: Final[int] = 50_000

SUPPORTED_LANGUAGES: Final[tuple[tuple[str, str], ...]] = (
    ("English", "English"),
    ("French", "French (Français)"),
    ("Spanish", "Spanish (Español)"),
    ("German", "German (Deutsch)"),
    ("Portuguese", "Portuguese (Português)"),
    ("Italian", "Italian (Italiano)"),
    ("Dutch", "Dutch (Nederlands)"),
    ("Japanese", "Japanese (日本語)"),
    ("Chinese", "Chinese (中文)"),
    ("Korean", "Korean (한국어)"),
)

__all__ = [
    "CHARS_PER_TOKEN",
    "CONFIG_PATH_ENV",
    "DECLINED_MARKER",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_LANGUAGE",
    "DEFAULT_MAX_COMMITS",
    "DEFAULT_MINIMUM_COMMIT_CHANGES",
    "DEFAULT_OUTPUT_FILE",
    "GITHUB_PRIORITY",
    "GITHUB_PRODUCER_ID",
    "GIT_PRIORITY",
    "GIT_PRODUCER_ID",
    "LANGUAGE_PRIORITY",
    "LANGUAGE_PRODUCER_ID",
    "LARGE_DOCUMENT_TOKEN_THRESHOLD",
    "LOG_LEVEL_ENV",
    "PENDING_MARKER",
    "SLACK_AI_PRIORITY",
    "SLACK_AI_PRODUCER_ID",
    "SUPPORTED_LANGUAGES",
    "TECHNOLOGIES_PRIORITY",
    "TECHNOLOGIES_PRODUCER_ID",
    "TEMPLATE_PRIORITY",
    "TEMPLATE_PRODUCER_ID",
]
