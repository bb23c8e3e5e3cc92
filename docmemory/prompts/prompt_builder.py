# docmemory/prompts/prompt_builder.py

import re
from typing import Mapping, Optional

from docmemory.prompts.system_prompts import TEXT_MARKER, TEXT_VARIABLE


# {{input}}, {{$input}}, {{ $data }}
_PLACEHOLDER = re.compile(r"\{\{\s*\$?([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def render_template(
    template: str,
    variables: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Replace ``{{name}}`` / ``{{$name}}`` placeholders from ``variables``.

    Names without a binding render as the empty string.
    """

    variables = variables or {}

    return _PLACEHOLDER.sub(
        lambda match: str(variables.get(match.group(1), "")),
        template,
    )


def bind_text(prompt: str) -> str:
    """
    Turn the ``<TEXT>`` marker of a summarization prompt into the
    ``TEXT_VARIABLE`` placeholder.

    The text is then passed as a variable, so braces inside it are sent
    as written instead of being rendered.
    """
    return prompt.replace(TEXT_MARKER, "{{$" + TEXT_VARIABLE + "}}")


def build_context(texts) -> str:
    """Retrieved texts in ranking order, each followed by a blank line."""
    return "".join(f"{text}\n\n" for text in texts)
