"""Output language producer: asks which language the document targets."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dossier.constants import (
    DEFAULT_LANGUAGE,
    LANGUAGE_PRIORITY,
    LANGUAGE_PRODUCER_ID,
    SUPPORTED_LANGUAGES,
)
from dossier.plugins.base import ProducerDescriptor, ProducerResult
from dossier.producers.base import BuiltinProducer
from dossier.producers.outputs import LanguageOutput

if TYPE_CHECKING:
    from dossier.config.schema import DossierConfig
    from dossier.plugins.base import ConfigureOptions
    from dossier.plugins.outputs import DependencyView


class LanguageProducer(BuiltinProducer):
    descriptor = ProducerDescriptor(identity=LANGUAGE_PRODUCER_ID, name="Output Language")
    priority = LANGUAGE_PRIORITY

    def prompt(self, config: DossierConfig, options: ConfigureOptions) -> DossierConfig:
        if config.language and not options.reset:
            return config

        self._prompter.note("\nOutput language:")
        language = self._prompter.select(
            "What language should the document be written in?",
            SUPPORTED_LANGUAGES,
            default=config.language or DEFAULT_LANGUAGE,
        )
        if language == config.language:
            return config
        return config.evolve(language=language)

    def is_eligible(self, config: DossierConfig, deps: DependencyView) -> bool:
        return bool(config.language)

    def run(self, config: DossierConfig, deps: DependencyView) -> ProducerResult:
        language = config.language or DEFAULT_LANGUAGE
        return self.result(
            LanguageOutput(language=language),
            self.fragment("Language Instruction", format_language_section(language)),
        )


def format_language_section(language: str) -> str:
    lines = [
        "## Output Language",
        "",
        f"**IMPORTANT: Generate all content in {language}.**",
        "",
    ]
    if language != DEFAULT_LANGUAGE:
        lines.append(
            f"Translate all technical descriptions, achievements, and summaries to {language}."
        )
        lines.append(
            "Keep technical terms, product names, and company names in their original form "
            "when appropriate."
        )
        lines.append("")
    return "\n".join(lines)


__all__ = ["LanguageProducer", "format_language_section"]
