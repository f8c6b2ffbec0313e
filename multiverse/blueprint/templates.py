# multiverse/blueprint/templates.py
"""
Template utilities for decision code.

Placeholders are written ``{name}`` where ``name`` is a variable group.
``{{name}}`` produces a literal ``{name}``. Any other brace usage (dict
literals, nested ones included) is left untouched.
"""

from __future__ import annotations

import ast
import re
from typing import Dict, List, Set

_TOKEN = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_]*)\}\}|\{([A-Za-z_][A-Za-z0-9_]*)\}")
_BACKTICK = re.compile(r"`([^`]+)`")


def find_placeholders(template: str) -> List[str]:
    """Return placeholder names in order of first appearance."""
    seen: List[str] = []
    for match in _TOKEN.finditer(template or ""):
        name = match.group(2)
        if name and name not in seen:
            seen.append(name)
    return seen


def substitute(template: str, bindings: Dict[str, str]) -> str:
    """
    Replace ``{name}`` tokens with ``bindings[name]``; ``{{name}}`` becomes ``{name}``.

    Raises:
        KeyError: If a placeholder has no binding.
    """
    def _replace(match: re.Match) -> str:
        if match.group(1):
            return "{" + match.group(1) + "}"
        return str(bindings[match.group(2)])

    return _TOKEN.sub(_replace, template or "")


def referenced_names(expression: str) -> Set[str]:
    """
    Names an expression reads as columns.

    Function names in call position and attribute names are excluded, so
    ``abs(noise)`` and ``noise.isna()`` both reference only ``noise``.
    Backtick-quoted names are returned verbatim.

    Raises:
        SyntaxError: If the expression cannot be parsed.
    """
    quoted: Dict[str, str] = {}

    def _unquote(match: re.Match) -> str:
        alias = f"__bt{len(quoted)}__"
        quoted[alias] = match.group(1)
        return alias

    source = _BACKTICK.sub(_unquote, expression)
    tree = ast.parse(source.strip(), mode="eval")

    call_funcs = {
        id(node.func) for node in ast.walk(tree)
        if isinstance(node, ast.Call) and isinstance(node.func, ast.Name)
    }
    names: Set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Name) and id(node) not in call_funcs:
            names.add(quoted.get(node.id, node.id))
    return names
