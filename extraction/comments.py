"""
Doxygen/Javadoc comment block parsing.

Finds documentation comments in source text, strips their delimiters and
splits them into a description plus ``@param``/``@return``/``@brief`` and
other tags. Both ``@tag`` and ``\\tag`` spellings are accepted.
"""

import logging
import re
from typing import List, Optional, Tuple, Union

from extraction.config import (
    BLOCK_COMMENT_STYLE,
    DEFAULT_DOCSTRING_STYLE,
    LINE_COMMENT_STYLES,
)
from extraction.models import DocstringBlock, SourceLocation

logger = logging.getLogger(__name__)

DOXYGEN_PREFIXES: Tuple[str, ...] = ("/**", "///", "//!", "/*!")

_BLOCK_RE = re.compile(r"/\*\*(?!/)[\s\S]*?\*/")
_PARAM_RE = re.compile(r"[@\\]param(?:\[[\w, ]*\])?\s+(\w+)\s*(.*)")
_RETURN_RE = re.compile(r"[@\\]returns?\b\s*(.*)")
_BRIEF_RE = re.compile(r"[@\\]brief\b\s*(.*)")
_OVERRIDE_RE = re.compile(r"[@\\](file|class|struct|enum)\b\s*(.*)")
_TAG_RE = re.compile(r"[@\\](\w+)(?:\s+(.+))?")


def is_doxygen_comment(comment_text: str) -> bool:
    """Check if a comment is a Doxygen-style documentation comment.

    Args:
        comment_text: The text content of the comment.

    Returns:
        True if the comment starts with a Doxygen marker (///, /**, //!, /*!).
    """
    stripped = comment_text.strip()
    if stripped.startswith("////") or stripped.startswith("/***"):
        return False
    return any(stripped.startswith(prefix) for prefix in DOXYGEN_PREFIXES)


def clean_comment(comment_text: str) -> str:
    """Strip comment delimiters and leading asterisks.

    Removes ``/**``, ``/*!`` and ``*/`` delimiters, ``///`` and ``//!`` line
    prefixes and the ``*`` continuation column of block comments. Blank lines
    inside the comment are kept so paragraphs survive.

    Args:
        comment_text: Raw comment text with delimiters.

    Returns:
        Cleaned comment text.
    """
    cleaned_lines = []
    for line in comment_text.split("\n"):
        stripped = line.strip()
        for prefix in ("///", "//!", "/**", "/*!"):
            if stripped.startswith(prefix):
                stripped = stripped[len(prefix):]
                break
        stripped = stripped.strip()

        if stripped.endswith("*/"):
            stripped = stripped[:-2].rstrip()

        if stripped.startswith("*"):
            stripped = stripped[1:].lstrip()

        cleaned_lines.append(stripped)

    while cleaned_lines and not cleaned_lines[0]:
        cleaned_lines.pop(0)
    while cleaned_lines and not cleaned_lines[-1]:
        cleaned_lines.pop()
    return "\n".join(cleaned_lines)


def _append(existing: str, extra: str) -> str:
    return f"{existing} {extra}".strip() if existing else extra


def parse_comment_block(raw_content: str, location: SourceLocation, end_byte: int) -> DocstringBlock:
    """Split a raw comment into description and tags.

    Text after a tag line continues that tag until a blank line or the next
    tag.
    """
    block = DocstringBlock(raw_content=raw_content, location=location, end_byte=end_byte)
    description_lines: List[str] = []
    seen_tag = False
    # (kind, key) of the tag that continuation lines extend
    current: Optional[Tuple[str, str]] = None

    for line in clean_comment(raw_content).split("\n"):
        stripped = line.strip()
        if not stripped:
            current = None
            if not seen_tag:
                description_lines.append("")
            continue

        if stripped[0] not in "@\\":
            if not seen_tag:
                description_lines.append(stripped)
            elif current is not None:
                kind, key = current
                if kind == "param":
                    block.params[key] = _append(block.params[key], stripped)
                elif kind == "return":
                    block.return_desc = _append(block.return_desc, stripped)
                elif kind == "brief":
                    block.brief = _append(block.brief, stripped)
            continue

        seen_tag = True
        current = None
        param = _PARAM_RE.match(stripped)
        if param:
            block.params[param.group(1)] = param.group(2).strip()
            current = ("param", param.group(1))
            continue
        returns = _RETURN_RE.match(stripped)
        if returns:
            block.return_desc = returns.group(1).strip()
            current = ("return", "")
            continue
        brief = _BRIEF_RE.match(stripped)
        if brief:
            block.brief = brief.group(1).strip()
            current = ("brief", "")
            continue
        override = _OVERRIDE_RE.match(stripped)
        if override:
            setattr(block, f"override_{override.group(1)}", True)
            continue
        tag = _TAG_RE.match(stripped)
        if tag:
            value = (tag.group(2) or "").strip()
            block.tags.append(f"{tag.group(1)}: {value}" if value else tag.group(1))

    block.description = "\n".join(description_lines).strip() or block.brief
    return block


class _ByteOffsets:
    """Character index to UTF-8 byte offset conversion for one text."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._ascii = text.isascii()

    def __call__(self, index: int) -> int:
        if self._ascii:
            return index
        return len(self._text[:index].encode("utf-8"))


def _location(text: str, index: int, offsets: _ByteOffsets) -> SourceLocation:
    line_start = text.rfind("\n", 0, index) + 1
    return SourceLocation(
        line=text.count("\n", 0, index) + 1,
        column=index - line_start + 1,
        byte_offset=offsets(index),
    )


def _block_comments(text: str, offsets: _ByteOffsets) -> List[DocstringBlock]:
    blocks = []
    for match in _BLOCK_RE.finditer(text):
        if not is_doxygen_comment(match.group(0)):
            continue
        blocks.append(
            parse_comment_block(
                match.group(0),
                _location(text, match.start(), offsets),
                offsets(match.end()),
            )
        )
    return blocks


def _line_comments(text: str, prefix: str, offsets: _ByteOffsets) -> List[DocstringBlock]:
    """Group runs of consecutive ``prefix`` lines into blocks."""
    blocks = []
    run_start: Optional[int] = None
    run_end = 0
    run_lines: List[str] = []

    def flush() -> None:
        if run_start is not None:
            blocks.append(
                parse_comment_block(
                    "\n".join(run_lines),
                    _location(text, run_start, offsets),
                    offsets(run_end),
                )
            )

    position = 0
    for line in text.split("\n"):
        stripped = line.lstrip()
        if stripped.startswith(prefix) and is_doxygen_comment(stripped):
            if run_start is None:
                run_start = position + (len(line) - len(stripped))
                run_lines = []
            run_lines.append(stripped.rstrip())
            run_end = position + len(line.rstrip())
        else:
            flush()
            run_start = None
        position += len(line) + 1
    flush()
    return blocks


def extract_docstring_blocks(
    source: Union[str, bytes],
    style: str = DEFAULT_DOCSTRING_STYLE,
) -> List[DocstringBlock]:
    """Find and parse documentation comments.

    Args:
        source: Source text (bytes are decoded as UTF-8).
        style: ``"/** */"``, ``"///"``, ``"//!"`` or ``"all"``.

    Returns:
        Parsed blocks ordered by position. Byte offsets are UTF-8 offsets
        into the source, comparable to tree-sitter node offsets.
    """
    if isinstance(source, bytes):
        source = source.decode("utf-8", errors="replace")

    offsets = _ByteOffsets(source)
    if style == "all":
        styles: Tuple[str, ...] = (BLOCK_COMMENT_STYLE,) + LINE_COMMENT_STYLES
    else:
        styles = (style,)

    blocks: List[DocstringBlock] = []
    for current in styles:
        if current == BLOCK_COMMENT_STYLE:
            blocks.extend(_block_comments(source, offsets))
        elif current in LINE_COMMENT_STYLES:
            blocks.extend(_line_comments(source, current, offsets))
        else:
            logger.warning("Unsupported docstring style %r; no comments parsed", current)

    blocks.sort(key=lambda block: block.location.byte_offset)
    logger.debug("Found %d docstring blocks", len(blocks))
    return blocks
