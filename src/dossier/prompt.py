"""
dossier — resume-writing prompt export

File: src/dossier/prompt.py

Purpose
- Wrap the rendered work-history document in resume-writing instructions so it can be pasted
  into an AI assistant as a single prompt.
- Derive the companion ``-prompt.md`` path written next to the data document.

Behavior
- The instructions name the company; a language section is added unless the output language
  is English.
- The data document follows the instructions after a ``---`` separator, unchanged.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from dossier.rendering import render_template

if TYPE_CHECKING:
    from dossier.config.schema import DossierConfig

PROMPT_SUFFIX: Final[str] = "-prompt.md"
DEFAULT_LANGUAGE: Final[str] = "english"

RESUME_PROMPT_TEMPLATE: Final[str] = """\
# Resume Content Generation Instructions

You are a professional resume writer helping to create compelling resume content for a software
engineer.
{% if translate %}

## Language

The source content (commits, PRs, messages) is in **{{ language }}**. Generate all resume
content in **{{ language }}**.
{% endif %}

## Your Task

Using the context data provided below, generate professional resume content that:

1. **Highlights technical contributions** through concrete achievements
2. **Demonstrates impact** on projects and team
3. **Uses strong action verbs** (implemented, architected, optimized, led, etc.)
4. **Focuses on outcomes**, not tasks or raw statistics

## Output Format

Generate the following sections:

### Professional Summary
1-2 sentences describing the role and main focus areas at {{ company }} during this period.

### Key Achievements
5-7 bullet points. Each bullet should:
- Start with a strong action verb
- Focus on IMPACT and OUTCOMES, not tasks
- Be concise (1-2 sentences max)
- Group related work across repositories when it makes sense

### Technologies
A simple comma-separated list of the main technologies used. No proficiency ratings.

## Important Guidelines

- Focus on outcomes and impact rather than activity
- Highlight leadership, collaboration and mentorship where evident
- Avoid generic statements; use concrete examples from the data
- Match the tone and style of the resume template if one is provided
- If Slack AI insights are provided, use them to enrich achievements with collaboration
  stories, cross-team work and soft skills that code does not show

## What NOT to Include

- **No commit counts or lines of code** (these are context only)
- **No proficiency ratings**
- **No per-project statistics**
- **No emojis**

The commit data and line counts in the context are meant to help you gauge the **scope and
significance** of contributions, but should NOT appear in the final resume content.

---

{{ document }}"""


def build_resume_prompt(document: str, config: DossierConfig) -> str:
    """Instructions for an AI assistant followed by the work-history ``document``."""

    language = config.language.strip()
    return render_template(
        RESUME_PROMPT_TEMPLATE,
        {
            "company": config.company_name,
            "language": language,
            "translate": language.lower() != DEFAULT_LANGUAGE,
            "document": document,
        },
    )


def prompt_path_for(output: Path) -> Path:
    """``history.md`` becomes ``history-prompt.md``; other names get the suffix appended."""

    if output.suffix == ".md":
        return output.with_name(output.stem + PROMPT_SUFFIX)
    return output.with_name(output.name + PROMPT_SUFFIX)


__all__ = [
    "PROMPT_SUFFIX",
    "RESUME_PROMPT_TEMPLATE",
    "build_resume_prompt",
    "prompt_path_for",
]
