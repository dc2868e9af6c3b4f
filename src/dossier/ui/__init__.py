"""UI package exports: interactive prompting and output rendering.

The CLI router lives in ``dossier.ui.cli``; it imports the producers, which import the
prompting layer from here, so it is not re-exported.
"""

from dossier.ui.prompts import ConsolePrompter, PromptCancelled, Prompter, ScriptedPrompter
from dossier.ui.render import CLIRenderer, create_renderer

__all__ = [
    "CLIRenderer",
    "ConsolePrompter",
    "PromptCancelled",
    "Prompter",
    "ScriptedPrompter",
    "create_renderer",
]
