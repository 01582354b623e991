"""C++ name normalization shared by extraction, merging and rendering."""

from __future__ import annotations

import re

SCOPE_SEPARATOR = "::"

_WHITESPACE_RE = re.compile(r"\s+")
_SCOPE_SEPARATOR_RE = re.compile(r"\s*::\s*")
_DESTRUCTOR_SPACING_RE = re.compile(r"::\s*~")
_OPERATOR_RE = re.compile(r"(?<![A-Za-z0-9_])operator(?![A-Za-z0-9_])")


def normalize_cpp_entity_name(entity_name: str) -> str:
    """Normalize C++ entity names into a canonical form.

    Collapses whitespace around ``::`` and runs of whitespace so the same
    symbol spelled differently in a header and a source file shares one
    identity.

    Args:
        entity_name: Raw entity name from parser output.

    Returns:
        Canonicalized entity name.
    """
    normalized = entity_name.strip()
    normalized = _SCOPE_SEPARATOR_RE.sub(SCOPE_SEPARATOR, normalized)
    normalized = _DESTRUCTOR_SPACING_RE.sub("::~", normalized)
    normalized = _WHITESPACE_RE.sub(" ", normalized)
    return normalized.strip()


def split_qualified_name(name: str) -> tuple[str, str]:
    """Split ``a::b::c`` into ``("a::b", "c")`` on the last separator.

    Names without a separator return an empty scope. Separators inside an
    operator name (``operator std::string``) are not split points.
    """
    operator = _OPERATOR_RE.search(name)
    search_end = operator.start() if operator else len(name)
    idx = name.rfind(SCOPE_SEPARATOR, 0, search_end)
    if idx == -1:
        return "", name
    return name[:idx], name[idx + len(SCOPE_SEPARATOR):]


def qualify(scope: str, name: str) -> str:
    """Join a scope and a simple name; empty names stay empty."""
    if not name:
        return ""
    if not scope:
        return name
    return f"{scope}{SCOPE_SEPARATOR}{name}"


def innermost_scope(scope: str) -> str:
    """Last scope segment without template arguments (``a::Vec<T>`` -> ``Vec``)."""
    _, last = split_qualified_name(scope)
    return last.split("<", 1)[0].strip()
