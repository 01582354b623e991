"""
Text-based name recovery for C++ callables.

tree-sitter does not always hand back a clean declarator for a function
(inline operators, destructors, definitions whose declarator is wrapped or
missing). The extractor tries these pure ``text -> Optional[str]`` functions
in a fixed order and keeps the first non-empty answer.
"""

import re
from typing import Callable, Iterable, Optional

from core.naming import normalize_cpp_entity_name

NameStrategy = Callable[[], Optional[str]]

OPERATOR_KEYWORD = "operator"

_OPERATOR_RE = re.compile(r"(?<![A-Za-z0-9_])operator(?![A-Za-z0-9_])")
_SYMBOL_RE = re.compile(r"[^\s(]*")


def _is_identifier_char(ch: str, allow_tilde: bool = True) -> bool:
    return ch.isalnum() or ch == "_" or (allow_tilde and ch == "~")


def _find_operator(text: str) -> int:
    match = _OPERATOR_RE.search(text)
    return match.start() if match else -1


def _parameter_list_start(text: str) -> int:
    """Index of the ``(`` opening the parameter list, or -1.

    The call operator's own ``()`` is skipped so ``operator()(int)`` splits
    after ``operator()``.
    """
    op = _find_operator(text)
    if op == -1:
        return text.find("(")

    after = op + len(OPERATOR_KEYWORD)
    rest = text[after:]
    stripped = rest.lstrip()
    if stripped.startswith("()"):
        call_start = after + (len(rest) - len(stripped))
        return text.find("(", call_start + 2)
    return text.find("(", after)


def _strip_template_suffix(text: str) -> str:
    """Drop a trailing ``<...>`` argument list (``make<int>`` -> ``make``)."""
    if not text.endswith(">"):
        return text
    depth = 0
    for i in range(len(text) - 1, -1, -1):
        if text[i] == ">":
            depth += 1
        elif text[i] == "<":
            depth -= 1
            if depth == 0:
                return text[:i].rstrip()
    return text


def _trailing_identifier(text: str, allow_tilde: bool = True) -> str:
    end = len(text)
    start = end
    while start > 0 and _is_identifier_char(text[start - 1], allow_tilde):
        start -= 1
    return text[start:end]


def _qualifier_before(text: str, pos: int) -> str:
    """Collect ``A::B::`` immediately preceding ``pos``."""
    qualifier = ""
    while pos >= 2 and text[pos - 2:pos] == "::":
        owner = _trailing_identifier(text[:pos - 2], allow_tilde=False)
        if not owner:
            break
        qualifier = f"{owner}::{qualifier}"
        pos -= 2 + len(owner)
    return qualifier


def _clean(name: str) -> Optional[str]:
    name = normalize_cpp_entity_name(name)
    return name or None


def name_from_qualified_identifier(text: str) -> Optional[str]:
    """Name from a qualified-identifier node (``Class::method``)."""
    if "::" not in text:
        return None
    return _clean(text)


def operator_name_from_definition_text(text: str) -> Optional[str]:
    """Operator name found anywhere in a definition's text.

    Used when the declarator carried no useful text: the span from
    ``operator`` up to the parameter list, trimmed.

    Example:
        >>> operator_name_from_definition_text("bool operator==(const A& o) const {}")
        'operator=='
    """
    op = _find_operator(text)
    if op == -1:
        return None
    paren = _parameter_list_start(text)
    end = paren if paren > op else len(text)
    return _clean(text[op:end])


def name_from_declarator_text(text: str) -> Optional[str]:
    """Name from raw declarator text.

    Qualified names are returned whole, operator names from the ``operator``
    keyword onward, anything else as the identifier run before the
    parameter list.

    Example:
        >>> name_from_declarator_text("JsonDoc::operator=(JsonDoc&& other) noexcept")
        'JsonDoc::operator='
        >>> name_from_declarator_text("~JsonDoc()")
        '~JsonDoc'
    """
    paren = _parameter_list_start(text)
    before = (text[:paren] if paren != -1 else text).rstrip()
    if not before:
        return None

    if "::" in before:
        return _clean(before)

    op = _find_operator(before)
    if op != -1:
        name = before[op:]
        if name.strip() == OPERATOR_KEYWORD:
            tail = text[op + len(OPERATOR_KEYWORD):].lstrip()
            symbol = "()" if tail.startswith("()") else _SYMBOL_RE.match(tail).group(0)
            name = OPERATOR_KEYWORD + symbol
        return _clean(name)

    return _trailing_identifier(_strip_template_suffix(before)) or None


def name_from_construct_text(text: str) -> Optional[str]:
    """Last-resort name recovery from a whole construct's text.

    Looks for an operator first, then for the identifier in front of the
    first ``(``. Any ``Owner::`` qualifiers directly in front of the name are
    kept.
    """
    op = _find_operator(text)
    if op != -1:
        paren = _parameter_list_start(text)
        end = paren if paren > op else len(text)
        name = text[op:end].rstrip()
        return _clean(_qualifier_before(text, op) + name)

    paren = text.find("(")
    if paren == -1:
        return None
    end = paren
    while end > 0 and text[end - 1].isspace():
        end -= 1
    prefix = _strip_template_suffix(text[:end])
    ident = _trailing_identifier(prefix)
    if not ident:
        return None
    start = len(prefix) - len(ident)
    return _clean(_qualifier_before(prefix, start) + ident)


def method_name_from_declaration_text(text: str) -> Optional[str]:
    """Name of a bare method declaration from its declarator text.

    Destructors are returned from the ``~``, operators from the keyword,
    anything else as the last identifier before the parameter list.
    """
    paren = _parameter_list_start(text)
    before = (text[:paren] if paren != -1 else text).rstrip()
    if not before:
        return None

    tilde = before.find("~")
    if tilde != -1:
        return _clean(before[tilde:])

    op = _find_operator(before)
    if op != -1:
        return _clean(before[op:])

    return _trailing_identifier(_strip_template_suffix(before), allow_tilde=False) or None


def first_recovered(strategies: Iterable[NameStrategy]) -> str:
    """Run strategies in order and return the first non-empty name."""
    for strategy in strategies:
        name = strategy()
        if name:
            return name
    return ""
