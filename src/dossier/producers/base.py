"""
Shared plumbing for the built-in producers.

Built-ins subclass ``BuiltinProducer`` for the descriptor, prompter and logger wiring and
for ``fragment``/``result`` helpers. External producers only need to satisfy the
``dossier.plugins.Producer`` protocol.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

import structlog

from dossier.config.values import Present
from dossier.plugins.base import (
    Cancelled,
    Completed,
    ConfigureOptions,
    ConfigureOutcome,
    ContentFragment,
    ProducerDescriptor,
    ProducerResult,
)
from dossier.ui.prompts import PromptCancelled

if TYPE_CHECKING:
    from dossier.config.schema import DossierConfig
    from dossier.config.values import ConfigValue
    from dossier.plugins.outputs import DependencyView, ProducerOutput
    from dossier.ui.prompts import Prompter


class BuiltinProducer:
    descriptor: ClassVar[ProducerDescriptor]
    priority: ClassVar[int]

    def __init__(self, prompter: Prompter, *, logger: Any | None = None) -> None:
        self._prompter = prompter
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def identity(self) -> str:
        return self.descriptor.identity

    def configure(self, config: DossierConfig, options: ConfigureOptions) -> ConfigureOutcome:
        try:
            return Completed(self.prompt(config, options))
        except PromptCancelled as exc:
            return Cancelled(str(exc) or "prompt cancelled")

    def prompt(self, config: DossierConfig, options: ConfigureOptions) -> DossierConfig:
        """Ask for whatever this producer needs; return ``config`` itself when unchanged."""

        return config

    def is_eligible(self, config: DossierConfig, deps: DependencyView) -> bool:
        return True

    def fragment(self, title: str, body: str) -> ContentFragment:
        return ContentFragment(
            title=title,
            body=body,
            priority=self.priority,
            source_producer=self.identity,
        )

    def result(self, output: ProducerOutput, *fragments: ContentFragment) -> ProducerResult:
        return ProducerResult(output=output, fragments=fragments)


def existing_file(value: ConfigValue[str]) -> Path | None:
    """Return the path for a ``Present`` value naming an existing file, else ``None``."""

    if not isinstance(value, Present):
        return None
    candidate = Path(value.value).expanduser()
    return candidate if candidate.is_file() else None


__all__ = ["BuiltinProducer", "existing_file"]
