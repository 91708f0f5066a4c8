# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Contract template rendering."""

import html
import re

from src.domains.contract.placeholders import ContractPlaceholders

_MARKER = re.compile(r"\{\{\s*([A-Za-z][A-Za-z0-9_]*)\s*\}\}")


def render_template(content: str, placeholders: ContractPlaceholders) -> str:
    """Substitute placeholder markers in template content.

    Only declared placeholder names are replaced; any other ``{{marker}}``
    is left untouched. Values are HTML-escaped.

    Args:
        content: Template text.
        placeholders: Values to substitute.

    Returns:
        Rendered text.
    """
    values = placeholders.as_mapping()

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        return html.escape(values[name]) if name in values else match.group(0)

    return _MARKER.sub(_replace, content)


def find_markers(content: str) -> set[str]:
    """Return every marker name used in a template."""
    return set(_MARKER.findall(content))


def unknown_markers(content: str) -> set[str]:
    """Return markers a template uses that will not be substituted."""
    return find_markers(content) - set(ContractPlaceholders.names())
