"""Loads and renders the packaged SOAP request templates.

Templates live next to this module in `templates/{name}.xml` and use
`{{variable}}` placeholders. Every substituted value is XML-escaped, and
substitution is a single pass so values can never introduce placeholders.
"""

import re
from functools import lru_cache
from importlib import resources
from typing import Mapping
from xml.sax.saxutils import escape

TEMPLATE_PACKAGE = "workdocs.infrastructure.workday"
_TEMPLATE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{1,50}$")
_PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")
_XML_ENTITIES = {'"': "&quot;", "'": "&#39;"}


def escape_xml(value: object) -> str:
    """Escapes &, <, >, double and single quotes."""
    return escape(str(value), _XML_ENTITIES)


@lru_cache(maxsize=None)
def load_template(template_name: str) -> str:
    """Reads a template by name (without extension).

    Raises:
        ValueError: If the name is not a plain identifier or no such template exists.
    """
    if not _TEMPLATE_NAME_PATTERN.match(template_name):
        raise ValueError(f"Invalid template name: {template_name!r}")

    template = resources.files(TEMPLATE_PACKAGE).joinpath("templates", f"{template_name}.xml")
    try:
        return template.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ValueError(f"Template not found: {template_name}") from e


def render_template(template_name: str, variables: Mapping[str, object]) -> str:
    """Renders a template, escaping every substituted value.

    Raises:
        ValueError: If the template references a variable that was not supplied.
    """
    template = load_template(template_name)

    def substitute(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key not in variables:
            raise ValueError(f"Template {template_name} needs variable '{key}'")
        return escape_xml(variables[key])

    return _PLACEHOLDER_PATTERN.sub(substitute, template)
