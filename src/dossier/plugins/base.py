"""
dossier — producer contract

File: src/dossier/plugins/base.py

Purpose
- Define the producer interface consumed by the plugin manager: descriptor, configuration
  step, eligibility check, generation step.
- Define the value types flowing through both passes (options, outcomes, fragments,
  results) and the engine's exception family.

Contract notes
- ``configure`` and ``run`` may be plain functions or coroutines; the manager awaits either.
- ``configure`` returns ``Completed(config)`` or ``Cancelled(reason)``. Returning the same
  config object means "nothing changed" and skips the checkpoint.
- ``is_eligible`` is a pure decision over the config and the dependency view.
- ``close`` is optional and called once at manager shutdown.
"""

from __future__ import annotations

import math
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, TypeAlias, runtime_checkable

from dossier.constants import CHARS_PER_TOKEN

if TYPE_CHECKING:
    from dossier.config.schema import DossierConfig
    from dossier.plugins.outputs import DependencyView, ProducerOutput


class PluginError(Exception):
    """Base class for errors raised by the plugin engine."""


class DuplicateIdentityError(PluginError, ValueError):
    """Raised when a producer identity is registered twice."""

    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__(f"producer {identity!r} is already registered")


class CircularDependencyError(PluginError, ValueError):
    """Raised when producer needs form a cycle."""

    cycle: tuple[str, ...]

    def __init__(self, cycle: Iterable[str]) -> None:
        self.cycle = tuple(cycle)
        if not self.cycle:
            message = "producer dependencies contain a cycle"
        else:
            message = f"producer dependencies contain a cycle: {' -> '.join(self.cycle)}"
        super().__init__(message)


class ConfigurationCancelled(PluginError):
    """Raised out of the configuration pass when the operator cancels."""

    def __init__(self, reason: str = "", *, producer_id: str | None = None) -> None:
        self.reason = reason
        self.producer_id = producer_id
        super().__init__(reason or "configuration cancelled")


class PluginManagerClosedError(PluginError, RuntimeError):
    """Raised when a shut-down manager is used."""


def _fail(field_name: str, message: str) -> None:
    raise ValueError(f"{field_name}: {message}")


@dataclass(frozen=True, slots=True)
class ProducerDescriptor:
    """Static identity of a producer; immutable once registered."""

    identity: str
    name: str
    needs: tuple[str, ...] = ()
    sensitive_fields: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not isinstance(self.identity, str) or not self.identity.strip():
            _fail("ProducerDescriptor.identity", "must be a non-empty string")
        object.__setattr__(self, "identity", self.identity.strip())

        if not isinstance(self.name, str) or not self.name.strip():
            _fail("ProducerDescriptor.name", "must be a non-empty string")

        needs: list[str] = []
        for item in self.needs:
            if not isinstance(item, str) or not item.strip():
                _fail("ProducerDescriptor.needs", "must contain non-empty strings")
            candidate = item.strip()
            if candidate not in needs:
                needs.append(candidate)
        object.__setattr__(self, "needs", tuple(needs))
        object.__setattr__(self, "sensitive_fields", frozenset(self.sensitive_fields))


@dataclass(frozen=True, slots=True)
class ConfigureOptions:
    reset: bool = False


@dataclass(frozen=True, slots=True)
class Completed:
    """Configuration step finished; ``config`` is the (possibly new) configuration."""

    config: DossierConfig


@dataclass(frozen=True, slots=True)
class Cancelled:
    """Operator aborted the configuration pass."""

    reason: str = ""


ConfigureOutcome: TypeAlias = Completed | Cancelled


def estimate_tokens(text: str) -> int:
    """Rough token estimate (``ceil(chars / 4)``)."""

    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass(frozen=True, slots=True)
class ContentFragment:
    """One titled chunk of the final document. Lower ``priority`` renders earlier."""

    title: str
    body: str
    priority: int
    source_producer: str
    size_estimate: int = field(default=-1)

    def __post_init__(self) -> None:
        if not isinstance(self.body, str):
            _fail("ContentFragment.body", "must be a string")
        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            _fail("ContentFragment.priority", "must be an integer")
        if self.size_estimate < 0:
            object.__setattr__(self, "size_estimate", estimate_tokens(self.body))


@dataclass(frozen=True, slots=True)
class ProducerResult:
    """Successful generation: fragments for the document plus an output for dependents.

    ``output`` may be ``None`` when a producer only contributes content; its fragments are
    kept and dependents see no entry for it.
    """

    output: ProducerOutput | None
    fragments: tuple[ContentFragment, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fragments", tuple(self.fragments))


RunResult: TypeAlias = ProducerResult | None


@runtime_checkable
class Producer(Protocol):
    """Producer protocol implemented by built-ins and external plugins."""

    descriptor: ProducerDescriptor

    def configure(
        self, config: DossierConfig, options: ConfigureOptions
    ) -> ConfigureOutcome | Awaitable[ConfigureOutcome]: ...

    def is_eligible(self, config: DossierConfig, deps: DependencyView) -> bool: ...

    def run(
        self, config: DossierConfig, deps: DependencyView
    ) -> RunResult | Awaitable[RunResult]: ...


__all__ = [
    "Cancelled",
    "CircularDependencyError",
    "Completed",
    "ConfigurationCancelled",
    "ConfigureOptions",
    "ConfigureOutcome",
    "ContentFragment",
    "DuplicateIdentityError",
    "PluginError",
    "PluginManagerClosedError",
    "Producer",
    "ProducerDescriptor",
    "ProducerResult",
    "RunResult",
    "estimate_tokens",
]
