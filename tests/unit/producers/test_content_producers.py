"""
dossier — unit tests for the language, template and Slack AI producers

File: tests/unit/producers/test_content_producers.py

Purpose
- Validate the tri-state configuration rules shared by paste-or-file producers and the
  fragments the simple producers emit.

What this test file should cover
- Declined integrations are not asked again without reset.
- Paste/file/skip choices set both tri-state fields consistently.
- A vanished template file warns and re-prompts.
- Prompt cancellation becomes a ``Cancelled`` outcome.
- Slack AI "generate" prints a prompt and leaves both fields unset.

Functional requirements
- Filesystem only under ``tmp_path``; no network.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dossier.config import DECLINED, UNSET, DossierConfig, Present
from dossier.plugins import Cancelled, Completed, ConfigureOptions, DependencyView
from dossier.producers import (
    LanguageOutput,
    LanguageProducer,
    SlackAIOutput,
    SlackAIProducer,
    TemplateOutput,
    TemplateProducer,
    build_default_manager,
)
from dossier.producers.slack_ai import build_slack_ai_prompt
from dossier.producers.sources import ContentSourceProducer
from dossier.ui import ScriptedPrompter

if TYPE_CHECKING:
    from pathlib import Path

NO_RESET = ConfigureOptions()
RESET = ConfigureOptions(reset=True)


# Language ------------------------------------------------------------------


def test_language_is_kept_without_reset() -> None:
    prompter = ScriptedPrompter()
    config = DossierConfig()

    assert LanguageProducer(prompter).prompt(config, NO_RESET) is config
    assert prompter.asked == []


def test_language_reset_selects_new_language() -> None:
    config = DossierConfig()

    updated = LanguageProducer(ScriptedPrompter(["German"])).prompt(config, RESET)

    assert updated.language == "German"


def test_language_reset_same_answer_is_unchanged() -> None:
    config = DossierConfig()
    assert LanguageProducer(ScriptedPrompter(["English"])).prompt(config, RESET) is config


def test_language_fragment_adds_translation_note_for_non_default() -> None:
    producer = LanguageProducer(ScriptedPrompter())

    english = producer.run(DossierConfig(), DependencyView())
    german = producer.run(DossierConfig(language="German"), DependencyView())

    assert english.output == LanguageOutput(language="English")
    assert "Generate all content in English" in english.fragments[0].body
    assert "Translate" not in english.fragments[0].body
    assert "Translate all technical descriptions" in german.fragments[0].body
    assert german.fragments[0].priority == 0
    assert german.fragments[0].source_producer == "language"


# Template ------------------------------------------------------------------


def test_template_skip_declines_both_fields() -> None:
    updated = TemplateProducer(ScriptedPrompter(["skip"])).prompt(DossierConfig(), NO_RESET)

    assert updated.template_path == DECLINED
    assert updated.template_content == DECLINED


def test_declined_template_is_not_asked_again() -> None:
    prompter = ScriptedPrompter()
    config = DossierConfig(template_path=DECLINED, template_content=DECLINED)

    assert TemplateProducer(prompter).prompt(config, NO_RESET) is config
    assert prompter.asked == []


def test_template_paste_stores_content_and_declines_path() -> None:
    prompter = ScriptedPrompter(["paste", "# Jane Doe\n- Shipped things"])

    updated = TemplateProducer(prompter).prompt(DossierConfig(), NO_RESET)

    assert updated.template_content == Present("# Jane Doe\n- Shipped things")
    assert updated.template_path == DECLINED
    assert any("Template saved" in note for note in prompter.notes)


def test_template_empty_paste_declines() -> None:
    updated = TemplateProducer(ScriptedPrompter(["paste", "   "])).prompt(
        DossierConfig(), NO_RESET
    )
    assert updated.template_content == DECLINED


def test_template_file_choice(tmp_path: Path) -> None:
    template = tmp_path / "resume.md"
    template.write_text("# Resume\n", encoding="utf-8")

    updated = TemplateProducer(ScriptedPrompter(["file", str(template)])).prompt(
        DossierConfig(), NO_RESET
    )
    missing = TemplateProducer(ScriptedPrompter(["file", str(tmp_path / "nope.md")])).prompt(
        DossierConfig(), NO_RESET
    )

    assert updated.template_path == Present(str(template))
    assert updated.template_content == DECLINED
    assert missing.template_path == DECLINED


def test_vanished_template_file_warns_and_reprompts(tmp_path: Path) -> None:
    prompter = ScriptedPrompter(["skip"])
    config = DossierConfig(template_path=Present(str(tmp_path / "gone.md")))

    updated = TemplateProducer(prompter).prompt(config, NO_RESET)

    assert any("no longer exists" in note for note in prompter.notes)
    assert updated.template_path == DECLINED


def test_template_run_reads_file_or_inline_content(tmp_path: Path) -> None:
    template = tmp_path / "resume.md"
    template.write_text("# From file\n", encoding="utf-8")
    producer = TemplateProducer(ScriptedPrompter())

    from_file = DossierConfig(template_path=Present(str(template)))
    inline = DossierConfig(template_content=Present("# Inline"))
    declined = DossierConfig(template_path=DECLINED, template_content=DECLINED)

    assert producer.is_eligible(from_file, DependencyView())
    assert not producer.is_eligible(declined, DependencyView())

    file_result = producer.run(from_file, DependencyView())
    inline_result = producer.run(inline, DependencyView())

    assert file_result is not None and inline_result is not None
    assert file_result.output == TemplateOutput(content="# From file\n")
    assert "```\n# Inline\n```" in inline_result.fragments[0].body
    assert inline_result.fragments[0].title == "Resume Template Example"


def test_prompt_cancellation_becomes_cancelled_outcome() -> None:
    outcome = TemplateProducer(ScriptedPrompter()).configure(DossierConfig(), NO_RESET)

    assert isinstance(outcome, Cancelled)


def test_configure_wraps_prompt_result() -> None:
    config = DossierConfig(template_content=Present("kept"))
    outcome = TemplateProducer(ScriptedPrompter()).configure(config, NO_RESET)

    assert outcome == Completed(config)


def test_content_source_requires_output_and_format_hooks() -> None:
    class Incomplete(ContentSourceProducer):
        descriptor = TemplateProducer.descriptor
        priority = 5

    with pytest.raises(TypeError, match="abstract"):
        Incomplete(ScriptedPrompter())  # type: ignore[abstract]


# Slack AI ------------------------------------------------------------------


def test_slack_generate_prints_prompt_and_leaves_fields_unset() -> None:
    prompter = ScriptedPrompter(["generate", "#platform, #incidents"])
    config = DossierConfig(start_date="2024-01-01", end_date="2024-06-30")

    updated = SlackAIProducer(prompter).prompt(config, NO_RESET)

    assert updated is config
    assert updated.slack_ai_content == UNSET
    prompt = next(note for note in prompter.notes if "I need to summarize" in note)
    assert "from 2024-01-01 to 2024-06-30" in prompt
    assert "Focus specifically on these channels: #platform, #incidents" in prompt


def test_slack_paste_produces_fragment() -> None:
    prompter = ScriptedPrompter(["paste", "Led incident reviews"])
    producer = SlackAIProducer(prompter)

    config = producer.prompt(DossierConfig(), NO_RESET)
    result = producer.run(config, DependencyView())

    assert result is not None
    assert result.output == SlackAIOutput(content="Led incident reviews")
    assert result.fragments[0].priority == 20
    assert "Communication & Collaboration" in result.fragments[0].body


def test_slack_prompt_placeholders_and_all_channels() -> None:
    prompt = build_slack_ai_prompt("", "", "")

    assert "from [START_DATE] to [END_DATE]" in prompt
    assert "Search across all channels I have access to." in prompt
    assert "Focus specifically" not in prompt


# Default set ---------------------------------------------------------------


@pytest.mark.asyncio
async def test_decided_config_is_not_reprompted_by_default_set() -> None:
    prompter = ScriptedPrompter()
    config = DossierConfig(
        company_name="Acme",
        start_date="2024-01-01",
        end_date="2024-12-31",
        repositories=("/srv/api",),
        author_emails=("dev@example.com",),
        github_token=DECLINED,
        template_path=DECLINED,
        template_content=DECLINED,
        slack_ai_file_path=DECLINED,
        slack_ai_content=DECLINED,
    )

    with build_default_manager(prompter) as manager:
        final = await manager.run_config_prompts(config)

    assert final is config
    assert prompter.asked == []
