"""Resume template producer: an example document used for style guidance."""

from __future__ import annotations

from typing import Final

from dossier.constants import TEMPLATE_PRIORITY, TEMPLATE_PRODUCER_ID
from dossier.plugins.base import ProducerDescriptor
from dossier.producers.outputs import TemplateOutput
from dossier.producers.sources import ContentSourceProducer
from dossier.rendering import render_template

_SECTION_TEMPLATE: Final[str] = """\
## Resume Format Template

Please format the output similar to this example:

```
{{ template }}
```
"""


class TemplateProducer(ContentSourceProducer):
    descriptor = ProducerDescriptor(identity=TEMPLATE_PRODUCER_ID, name="Resume Template")
    priority = TEMPLATE_PRIORITY

    path_field = "template_path"
    content_field = "template_content"
    label = "template"
    intro = "Resume template (optional - for style guidance):"
    file_message = "Path to resume template file"
    section_title = "Resume Template Example"

    def make_output(self, text: str) -> TemplateOutput:
        return TemplateOutput(content=text)

    def format(self, text: str) -> str:
        return render_template(_SECTION_TEMPLATE, {"template": text.rstrip("\n")})


__all__ = ["TemplateProducer"]
