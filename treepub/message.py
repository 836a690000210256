"""
message.py

Responsibility: Render commit messages from Jinja2 templates.

Rules:
- Undefined variables are errors (StrictUndefined), never silently empty.
- Output is plain text: no autoescaping, surrounding whitespace stripped.
"""

from __future__ import annotations

from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateError

DEFAULT_COMMIT_MESSAGE = (
    "Deploy {{ files_uploaded }} file(s) to {{ branch }}"
    "{% if source_sha %} from {{ source_sha }}{% endif %}"
)

_env = Environment(
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=False,
)


class MessageError(RuntimeError):
    pass


def render_commit_message(template: str, context: dict[str, Any]) -> str:
    try:
        out = _env.from_string(template).render(**context)
    except TemplateError as e:
        raise MessageError(f"Failed rendering commit message template: {e}") from e
    out = out.strip()
    if not out:
        raise MessageError("Commit message template rendered to an empty message.")
    return out
