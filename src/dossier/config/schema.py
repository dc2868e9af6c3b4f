"""
dossier — configuration schema.

File: src/dossier/config/schema.py

Purpose
- Define the flat ``DossierConfig`` record shared by every producer.
- Convert between the in-memory record and its JSON-friendly mapping.
- Report readiness problems (errors) and missing optional integrations (warnings).
- Produce masked display mappings and apply ``key=value`` edits from the CLI.

Behavior notes
- ``DossierConfig`` is frozen; producers return a new object (``evolve``) when they change
  something and the same object otherwise. The configuration pass uses object identity to
  decide whether to checkpoint.
- Unknown keys in persisted payloads are ignored so older files keep loading.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from typing import TYPE_CHECKING, Any, Final

from dossier.config.values import (
    DECLINED,
    UNSET,
    ConfigValue,
    Declined,
    Present,
    Unset,
    decode_config_value,
    encode_config_value,
)
from dossier.constants import (
    DEFAULT_LANGUAGE,
    DEFAULT_MAX_COMMITS,
    DEFAULT_MINIMUM_COMMIT_CHANGES,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping, Sequence

_DATE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MASK_CHAR: Final[str] = "*"


@dataclass(frozen=True, slots=True)
class DossierConfig:
    """Persisted operator choices consumed by producers."""

    company_name: str = ""
    start_date: str = ""
    end_date: str = ""
    repositories: tuple[str, ...] = ()
    author_emails: tuple[str, ...] = ()
    github_token: ConfigValue[str] = field(default=UNSET)
    template_path: ConfigValue[str] = field(default=UNSET)
    template_content: ConfigValue[str] = field(default=UNSET)
    slack_ai_file_path: ConfigValue[str] = field(default=UNSET)
    slack_ai_content: ConfigValue[str] = field(default=UNSET)
    language: str = DEFAULT_LANGUAGE
    max_commits: int = DEFAULT_MAX_COMMITS
    minimum_commit_changes: int = DEFAULT_MINIMUM_COMMIT_CHANGES

    def evolve(self, **changes: Any) -> DossierConfig:
        """Return a copy with ``changes`` applied."""

        return replace(self, **changes)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {}
        for name in CONFIG_FIELDS:
            value = getattr(self, name)
            if name in TRI_STATE_FIELDS:
                payload[name] = encode_config_value(value)
            elif name in LIST_FIELDS:
                payload[name] = list(value)
            else:
                payload[name] = value
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> DossierConfig:
        issues = _IssueCollector()
        values: dict[str, Any] = {}
        for name in CONFIG_FIELDS:
            if name not in payload:
                continue
            raw = payload[name]
            if name in TRI_STATE_FIELDS:
                decoded = decode_config_value(raw)
                if isinstance(decoded, Present) and not isinstance(decoded.value, str):
                    issues.add(name, "must be a string, '$pending' or '$declined'")
                    continue
                values[name] = decoded
            elif name in LIST_FIELDS:
                if not isinstance(raw, (list, tuple)) or not all(
                    isinstance(item, str) for item in raw
                ):
                    issues.add(name, "must be a list of strings")
                    continue
                values[name] = tuple(item.strip() for item in raw if item.strip())
            elif name in INT_FIELDS:
                if isinstance(raw, bool) or not isinstance(raw, int):
                    issues.add(name, "must be an integer")
                    continue
                if raw < 0:
                    issues.add(name, "must be >= 0")
                    continue
                values[name] = raw
            else:
                if not isinstance(raw, str):
                    issues.add(name, "must be a string")
                    continue
                values[name] = raw

        if issues.has_issues:
            raise ConfigValidationError(issues.items())
        return cls(**values)


CONFIG_FIELDS: Final[tuple[str, ...]] = tuple(item.name for item in fields(DossierConfig))
TRI_STATE_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "github_token",
        "template_path",
        "template_content",
        "slack_ai_file_path",
        "slack_ai_content",
    }
)
LIST_FIELDS: Final[frozenset[str]] = frozenset({"repositories", "author_emails"})
INT_FIELDS: Final[frozenset[str]] = frozenset({"max_commits", "minimum_commit_changes"})


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation finding."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Readiness report: errors block generation, warnings only inform."""

    errors: tuple[ConfigValidationIssue, ...]
    warnings: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return not self.errors


class ConfigValidationError(ValueError):
    """Raised when a payload or an edit cannot be applied to the schema."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> DossierConfig:
    """Return built-in defaults: every optional integration is ``Unset``."""

    return DossierConfig()


def is_valid_date(value: str) -> bool:
    return bool(_DATE_PATTERN.match(value.strip()))


def validate_config(config: DossierConfig) -> ConfigValidationResult:
    """Check that a configuration is ready for generation."""

    errors = _IssueCollector()
    warnings = _IssueCollector()

    if not config.company_name.strip():
        errors.add("company_name", "Company name not configured")

    if not config.start_date or not config.end_date:
        errors.add("start_date", "Date range not configured")
    else:
        for name in ("start_date", "end_date"):
            if not is_valid_date(getattr(config, name)):
                errors.add(name, "Use format YYYY-MM-DD")
        if (
            is_valid_date(config.start_date)
            and is_valid_date(config.end_date)
            and config.start_date > config.end_date
        ):
            errors.add("end_date", "End date is before start date")

    if not config.repositories:
        errors.add("repositories", "No repositories configured")

    if not config.author_emails:
        errors.add("author_emails", "No author emails configured")

    if not isinstance(config.github_token, Present):
        warnings.add("github_token", "GitHub not configured (PR data will be skipped)")

    return ConfigValidationResult(errors=errors.items(), warnings=warnings.items())


def mask_secret(secret: str) -> str:
    """Mask a secret, showing only the last 4 characters."""

    if len(secret) <= 4:
        return _MASK_CHAR * 4
    return _MASK_CHAR * (len(secret) - 4) + secret[-4:]


def redact_config(
    config: DossierConfig,
    sensitive_fields: Collection[str] = (),
) -> dict[str, str]:
    """Return a display mapping with sensitive present values masked."""

    rendered: dict[str, str] = {}
    for name in CONFIG_FIELDS:
        value = getattr(config, name)
        if isinstance(value, Unset):
            rendered[name] = "(not set)"
        elif isinstance(value, Declined):
            rendered[name] = "(declined)"
        elif isinstance(value, Present):
            text = str(value.value)
            rendered[name] = mask_secret(text) if name in sensitive_fields else _preview(text)
        elif isinstance(value, tuple):
            rendered[name] = ", ".join(value) if value else "(empty)"
        elif name in sensitive_fields and value:
            rendered[name] = mask_secret(str(value))
        else:
            rendered[name] = str(value) if value != "" else "(empty)"
    return rendered


def apply_setting(config: DossierConfig, key: str, raw: str) -> DossierConfig:
    """Apply a CLI ``key=value`` edit, parsing ``raw`` by the field's type."""

    name = _require_field(key)
    if name in TRI_STATE_FIELDS:
        value: object = decode_config_value(raw.strip()) if raw.strip() else UNSET
    elif name in LIST_FIELDS:
        stripped = raw.strip()
        if stripped in {"", "[]"}:
            value = ()
        else:
            value = tuple(part.strip() for part in stripped.split(",") if part.strip())
    elif name in INT_FIELDS:
        try:
            value = int(raw.strip())
        except ValueError as exc:
            raise ConfigValidationError(
                (ConfigValidationIssue(path=name, message="must be an integer"),)
            ) from exc
        if value < 0:
            raise ConfigValidationError((ConfigValidationIssue(path=name, message="must be >= 0"),))
    else:
        value = raw
    return config.evolve(**{name: value})


def unset_setting(config: DossierConfig, key: str) -> DossierConfig:
    """Reset a field so the next configuration pass asks for it again."""

    name = _require_field(key)
    if name in TRI_STATE_FIELDS:
        return config.evolve(**{name: UNSET})
    default = getattr(default_config(), name)
    return config.evolve(**{name: default})


def decline_setting(config: DossierConfig, key: str) -> DossierConfig:
    name = _require_field(key)
    if name not in TRI_STATE_FIELDS:
        raise ConfigValidationError(
            (
                ConfigValidationIssue(
                    path=name, message="only optional integrations can be declined"
                ),
            )
        )
    return config.evolve(**{name: DECLINED})


def _require_field(key: str) -> str:
    name = key.strip()
    if name not in CONFIG_FIELDS:
        known = ", ".join(CONFIG_FIELDS)
        raise ConfigValidationError(
            (ConfigValidationIssue(path=name or "<empty>", message=f"unknown key; known: {known}"),)
        )
    return name


def _preview(text: str, limit: int = 60) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= limit:
        return single_line
    return f"{single_line[: limit - 3]}... ({len(text)} chars)"


__all__ = [
    "CONFIG_FIELDS",
    "INT_FIELDS",
    "LIST_FIELDS",
    "TRI_STATE_FIELDS",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DossierConfig",
    "apply_setting",
    "decline_setting",
    "default_config",
    "is_valid_date",
    "mask_secret",
    "redact_config",
    "unset_setting",
    "validate_config",
]
