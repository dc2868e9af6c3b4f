"""
dossier — Slack AI context producer

File: src/dossier/producers/slack_ai.py

Purpose
- Include a summary the operator exported from Slack AI (pasted or read from a file).
- Offer a "generate prompt" choice that prints a ready-to-paste Slack AI prompt for the
  configured period and leaves both fields unset, so the next run asks again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from dossier.config.values import UNSET
from dossier.constants import SLACK_AI_PRIORITY, SLACK_AI_PRODUCER_ID
from dossier.plugins.base import ProducerDescriptor
from dossier.producers.outputs import SlackAIOutput
from dossier.producers.sources import (
    FILE_CHOICE,
    PASTE_CHOICE,
    SKIP_CHOICE,
    ContentSourceProducer,
)
from dossier.rendering import render_template

if TYPE_CHECKING:
    from dossier.config.schema import DossierConfig

GENERATE_CHOICE: Final[str] = "generate"

_SECTION_TEMPLATE: Final[str] = """\
## Communication & Collaboration (from Slack)

The following is a summary of professional communication and collaboration activities:

{{ context }}
"""

SLACK_AI_PROMPT_TEMPLATE: Final[str] = """\
I need to summarize my professional contributions visible in Slack messages
from {{ start_date }} to {{ end_date }}.

Focus on messages from me (or mentioning my name/handle).
{% if channels %}
Focus specifically on these channels: {{ channels }}
{% else %}
Search across all channels I have access to.
{% endif %}

Please analyze my messages and group findings into the sections below.
For each section, give 3-5 concrete examples with brief context.
Skip sections with no relevant messages.

## 1. Project Discussions & Technical Decisions
- Architecture or design decisions I drove or contributed to
- Technical problems I helped solve
- Code review feedback I provided

## 2. Cross-Team Collaboration
- Work coordinated with other teams (name the teams if visible)
- Discussions with stakeholders, product managers or vendors

## 3. Leadership & Mentoring
- Helping teammates with questions or blockers
- Onboarding and knowledge sharing

## 4. Initiative Ownership
- Projects, features or process improvements I proposed or championed

## 5. Impact & Results
- Launches, releases or milestones I was involved in
- Metrics, outcomes and recognition received

**Formatting rules:**
- Plain text only: no hyperlinks, no emoji or emoji shortcodes
"""


def build_slack_ai_prompt(start_date: str, end_date: str, channels: str = "") -> str:
    """Render the Slack AI prompt for a period; blank dates become placeholders."""

    return render_template(
        SLACK_AI_PROMPT_TEMPLATE,
        {
            "start_date": start_date or "[START_DATE]",
            "end_date": end_date or "[END_DATE]",
            "channels": channels.strip(),
        },
    )


class SlackAIProducer(ContentSourceProducer):
    descriptor = ProducerDescriptor(identity=SLACK_AI_PRODUCER_ID, name="Slack AI Context")
    priority = SLACK_AI_PRIORITY

    path_field = "slack_ai_file_path"
    content_field = "slack_ai_content"
    label = "Slack AI context"
    intro = "Slack AI context (optional - for communication highlights):"
    file_message = "Path to Slack AI export file"
    section_title = "Slack Communication"

    def choices(self) -> tuple[tuple[str, str], ...]:
        return (
            (GENERATE_CHOICE, "Generate Slack AI prompt (Recommended)"),
            (PASTE_CHOICE, "Paste response directly"),
            (FILE_CHOICE, "Provide a file path"),
            (SKIP_CHOICE, "Skip (no Slack context)"),
        )

    def handle_choice(self, choice: str, config: DossierConfig) -> DossierConfig:
        if choice != GENERATE_CHOICE:
            return super().handle_choice(choice, config)

        channels = self._prompter.text(
            "Specific channels to focus on (leave empty for all)", default=""
        )
        prompt = build_slack_ai_prompt(config.start_date, config.end_date, channels)
        self._prompter.note("\nSlack AI Prompt:")
        self._prompter.note("-" * 50)
        self._prompter.note(prompt)
        self._prompter.note("-" * 50)
        self._prompter.note(
            "Paste this prompt into Slack AI, copy its response, then run again and choose "
            "'Paste response directly'."
        )
        cleared = config.evolve(**{self.path_field: UNSET, self.content_field: UNSET})
        return config if cleared == config else cleared

    def make_output(self, text: str) -> SlackAIOutput:
        return SlackAIOutput(content=text)

    def format(self, text: str) -> str:
        return render_template(_SECTION_TEMPLATE, {"context": text.rstrip("\n")})


__all__ = [
    "GENERATE_CHOICE",
    "SLACK_AI_PROMPT_TEMPLATE",
    "SlackAIProducer",
    "build_slack_ai_prompt",
]
