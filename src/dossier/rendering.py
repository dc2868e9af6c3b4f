"""
dossier — strict template rendering

File: src/dossier/rendering.py

Purpose
- Render the small Markdown/text templates used by the document assembler and producers.
- Fail loudly on missing variables instead of rendering empty placeholders.

Rendering rules
- ``StrictUndefined``: any undeclared or missing variable raises ``TemplateRenderError``.
- No autoescaping (output is Markdown, not HTML).
- Newlines are normalized to ``\\n`` and trailing newlines are preserved.
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache

from jinja2 import Environment, StrictUndefined, Template, TemplateError, meta


class TemplateRenderError(RuntimeError):
    """Raised when a template cannot be parsed or is missing variables."""


_ENVIRONMENT = Environment(
    undefined=StrictUndefined,
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    newline_sequence="\n",
    keep_trailing_newline=True,
)


@lru_cache(maxsize=32)
def _compile(source: str) -> tuple[Template, frozenset[str]]:
    try:
        parsed = _ENVIRONMENT.parse(source)
    except TemplateError as exc:
        raise TemplateRenderError(f"invalid template: {exc}") from exc
    declared = frozenset(meta.find_undeclared_variables(parsed))
    return _ENVIRONMENT.from_string(source), declared


def render_template(source: str, variables: Mapping[str, object]) -> str:
    """Render ``source`` with ``variables``; every referenced name must be supplied."""

    template, declared = _compile(source)
    missing = sorted(declared - set(variables))
    if missing:
        raise TemplateRenderError("missing template variables: " + ", ".join(missing))
    try:
        return template.render(**variables)
    except TemplateError as exc:
        raise TemplateRenderError(f"template rendering failed: {exc}") from exc


__all__ = ["TemplateRenderError", "render_template"]
