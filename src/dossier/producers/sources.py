"""
dossier — paste-or-file content producers

File: src/dossier/producers/sources.py

Purpose
- Shared configuration/eligibility/run logic for producers whose input is a block of text
  either pasted into the config or read from a file (resume template, Slack AI export).

Tri-state rules (``path_field`` / ``content_field``)
- Present inline content is kept unless resetting.
- A Present path to an existing file is kept unless resetting; a vanished file re-prompts.
- If neither holds a usable value and either is Declined, the operator is not asked again
  unless resetting.
- Skip (or empty paste, or a missing file) declines both fields.
- Paste stores the content and declines the path; file stores the path and declines the
  content.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from dossier.config.values import DECLINED, Declined, Present
from dossier.plugins.base import ProducerResult
from dossier.producers.base import BuiltinProducer, existing_file

if TYPE_CHECKING:
    from dossier.config.schema import DossierConfig
    from dossier.plugins.base import ConfigureOptions
    from dossier.plugins.outputs import DependencyView, ProducerOutput

PASTE_CHOICE = "paste"
FILE_CHOICE = "file"
SKIP_CHOICE = "skip"


class ContentSourceProducer(BuiltinProducer, ABC):
    path_field: ClassVar[str]
    content_field: ClassVar[str]
    label: ClassVar[str]
    intro: ClassVar[str]
    file_message: ClassVar[str]
    section_title: ClassVar[str]

    def choices(self) -> tuple[tuple[str, str], ...]:
        return (
            (PASTE_CHOICE, "Paste content directly"),
            (FILE_CHOICE, "Provide a file path"),
            (SKIP_CHOICE, f"Skip (no {self.label})"),
        )

    def handle_choice(self, choice: str, config: DossierConfig) -> DossierConfig:
        """Hook for producer-specific choices; the default declines."""

        return self._declined(config)

    def prompt(self, config: DossierConfig, options: ConfigureOptions) -> DossierConfig:
        path_value = getattr(config, self.path_field)
        content_value = getattr(config, self.content_field)

        if not options.reset:
            if isinstance(content_value, Present):
                return config
            if isinstance(path_value, Present):
                if existing_file(path_value) is not None:
                    return config
                self._prompter.warn(
                    f"{_sentence(self.label)} file no longer exists: {path_value.value}"
                )
            elif isinstance(path_value, Declined) or isinstance(content_value, Declined):
                return config

        self._prompter.note(f"\n{self.intro}")
        choice = self._prompter.select(
            f"How would you like to provide the {self.label}?",
            self.choices(),
        )

        if choice == SKIP_CHOICE:
            return self._declined(config)
        if choice == PASTE_CHOICE:
            return self._from_paste(config)
        if choice == FILE_CHOICE:
            default = path_value.value if isinstance(path_value, Present) else ""
            return self._from_file(config, default)
        return self.handle_choice(choice, config)

    def is_eligible(self, config: DossierConfig, deps: DependencyView) -> bool:
        if isinstance(getattr(config, self.content_field), Present):
            return True
        return existing_file(getattr(config, self.path_field)) is not None

    def run(self, config: DossierConfig, deps: DependencyView) -> ProducerResult | None:
        text = self.read_content(config)
        if text is None:
            return None
        return self.result(
            self.make_output(text),
            self.fragment(self.section_title, self.format(text)),
        )

    def read_content(self, config: DossierConfig) -> str | None:
        content_value = getattr(config, self.content_field)
        if isinstance(content_value, Present):
            self._logger.info(
                "content_source_inline", plugin=self.identity, chars=len(content_value.value)
            )
            return str(content_value.value)

        path = existing_file(getattr(config, self.path_field))
        if path is None:
            return None
        text = path.read_text(encoding="utf-8")
        self._logger.info(
            "content_source_file", plugin=self.identity, path=str(path), chars=len(text)
        )
        return text

    @abstractmethod
    def make_output(self, text: str) -> ProducerOutput:
        """Typed output for dependents built from the source text."""

    @abstractmethod
    def format(self, text: str) -> str:
        """Markdown body of the section built from the source text."""

    def _from_paste(self, config: DossierConfig) -> DossierConfig:
        content = self._prompter.multiline(f"Paste your {self.label} below.")
        if not content.strip():
            self._prompter.warn(f"No content provided, skipping {self.label}.")
            return self._declined(config)
        self._prompter.note(f"  {_sentence(self.label)} saved ({len(content)} characters)")
        return config.evolve(**{self.path_field: DECLINED, self.content_field: Present(content)})

    def _from_file(self, config: DossierConfig, default: str) -> DossierConfig:
        raw = self._prompter.text(self.file_message, default=default or None)
        if not raw.strip():
            return self._declined(config)
        path = Path(raw.strip()).expanduser()
        if not path.is_file():
            self._prompter.warn(f"File not found: {raw.strip()}; skipping {self.label}.")
            return self._declined(config)
        return config.evolve(
            **{self.path_field: Present(raw.strip()), self.content_field: DECLINED}
        )

    def _declined(self, config: DossierConfig) -> DossierConfig:
        return config.evolve(**{self.path_field: DECLINED, self.content_field: DECLINED})


def _sentence(text: str) -> str:
    return text[:1].upper() + text[1:]


__all__ = ["FILE_CHOICE", "PASTE_CHOICE", "SKIP_CHOICE", "ContentSourceProducer"]
