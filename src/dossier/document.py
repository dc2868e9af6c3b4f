"""
dossier — document assembly

File: src/dossier/document.py

Purpose
- Render the aggregated fragments into the final Markdown work-history document.
- Summarize what went into it (sections per producer, estimated tokens).

Behavior
- Fragments are rendered in the order given; callers pass ``PluginManager.aggregate`` output.
- Documents above ``LARGE_DOCUMENT_TOKEN_THRESHOLD`` estimated tokens are flagged as large.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from dossier.constants import LARGE_DOCUMENT_TOKEN_THRESHOLD
from dossier.plugins.base import estimate_tokens
from dossier.rendering import render_template
from dossier.utils.fs import atomic_write

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dossier.config.schema import DossierConfig
    from dossier.plugins.base import ContentFragment
    from dossier.utils.fs import PathLike

DOCUMENT_TEMPLATE: Final[str] = """\
# Work Experience Data: {{ company }}
**Period:** {{ start_date }} to {{ end_date }}
**Language:** {{ language }}

{% for body in bodies %}
{{ body }}

{% endfor %}"""


@dataclass(frozen=True, slots=True)
class DocumentSummary:
    section_count: int
    fragment_tokens: int
    document_tokens: int
    sections_by_producer: dict[str, int] = field(default_factory=dict)

    @property
    def is_large(self) -> bool:
        return self.document_tokens > LARGE_DOCUMENT_TOKEN_THRESHOLD


def render_document(fragments: Sequence[ContentFragment], config: DossierConfig) -> str:
    return render_template(
        DOCUMENT_TEMPLATE,
        {
            "company": config.company_name,
            "start_date": config.start_date,
            "end_date": config.end_date,
            "language": config.language,
            "bodies": [fragment.body.strip("\n") for fragment in fragments],
        },
    )


def write_document(path: PathLike, text: str) -> None:
    atomic_write(path, text)


def summarize(fragments: Sequence[ContentFragment], document: str) -> DocumentSummary:
    by_producer: dict[str, int] = {}
    for fragment in fragments:
        by_producer[fragment.source_producer] = by_producer.get(fragment.source_producer, 0) + 1
    return DocumentSummary(
        section_count=len(fragments),
        fragment_tokens=sum(fragment.size_estimate for fragment in fragments),
        document_tokens=estimate_tokens(document),
        sections_by_producer=by_producer,
    )


def format_token_count(tokens: int) -> str:
    """``~850`` below a thousand, ``~12K`` above."""

    if tokens >= 1000:
        return f"~{round(tokens / 1000)}K"
    return f"~{tokens}"


__all__ = [
    "DOCUMENT_TEMPLATE",
    "DocumentSummary",
    "format_token_count",
    "render_document",
    "summarize",
    "write_document",
]
