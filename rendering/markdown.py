"""
Markdown rendering of merged constructs.

One file per construct: YAML front matter for tooling, then signature,
parameters, return value, documentation and source locations.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Sequence

import yaml

from extraction.comments import clean_comment, parse_comment_block
from extraction.models import Construct, ConstructKind, DocstringBlock, SourceLocation

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"

# Characters that cannot appear in file names on common file systems
FILENAME_ESCAPES = (
    ("%", "%pct"),
    ("<", "%lt"),
    (">", "%gt"),
    ('"', "%quote"),
    ("|", "%pipe"),
    ("?", "%quest"),
    ("*", "%star"),
    ("\\", "%bslash"),
    ("/", "%slash"),
)

NO_DOCUMENTATION = (
    "*No documentation available. This {kind} was automatically discovered "
    "from the source code.*"
)


def escape_filename(name: str) -> str:
    """Make a qualified name file-system safe.

    ``::`` becomes ``.``, hostile characters become ``%`` tokens and spaces
    become underscores.

    Example:
        >>> escape_filename("ns::Vec<T>::operator*")
        'ns.Vec%ltT%gt.operator%star'
    """
    escaped = name.replace(":", ".")
    while ".." in escaped:
        escaped = escaped.replace("..", ".")
    for char, token in FILENAME_ESCAPES:
        escaped = escaped.replace(char, token)
    return escaped.replace(" ", "_")


def construct_filename(construct: Construct) -> str:
    """File name for a construct's Markdown page."""
    base = construct.qualified_name or construct.name
    if not base:
        stem = os.path.splitext(os.path.basename(construct.source_file))[0]
        base = f"unnamed_{construct.kind.value.lower()}_{stem}_{construct.start_line}"
    return escape_filename(base) + MARKDOWN_SUFFIX


def _front_matter(construct: Construct) -> Dict[str, Any]:
    return {
        "type": construct.kind.value,
        "namespace": construct.enclosing_scope,
        "name": construct.name,
        "full_name": construct.qualified_name,
        "start_line": construct.start_line,
        "end_line": construct.end_line,
        "file": construct.source_file,
        "return_type": construct.return_type or "",
        "is_merged": construct.merge_state.is_merged,
        "source_locations": list(construct.merge_state.source_locations),
    }


def format_signature(construct: Construct) -> str:
    """C++-style signature line for a callable construct."""
    params = []
    for param in construct.parameters:
        text = f"{param.type} {param.name}".strip()
        if param.default_value:
            text = f"{text} = {param.default_value}"
        params.append(text)

    name = construct.qualified_name or construct.name
    prefix = ""
    if construct.kind not in (ConstructKind.CONSTRUCTOR, ConstructKind.DESTRUCTOR) and construct.return_type:
        prefix = f"{construct.return_type} "
    if construct.is_virtual:
        prefix = f"virtual {prefix}"
    if construct.is_static:
        prefix = f"static {prefix}"
    suffix = " const" if construct.is_const else ""
    return f"{prefix}{name}({', '.join(params)}){suffix}"


def _parsed_doc(construct: Construct) -> Optional[DocstringBlock]:
    if not construct.doc_comment:
        return None
    return parse_comment_block(construct.doc_comment, SourceLocation(construct.start_line, 1, 0), 0)


def _table_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def render_construct(construct: Construct) -> str:
    """Render one construct as a Markdown document."""
    doc = _parsed_doc(construct)
    kind_label = construct.kind.value
    title = construct.name or construct.qualified_name or construct_filename(construct)[:-len(MARKDOWN_SUFFIX)]

    lines: List[str] = ["---", yaml.safe_dump(_front_matter(construct), sort_keys=False).rstrip(), "---", ""]
    lines.append(f"# {title}")
    lines.append("")
    if construct.enclosing_scope:
        lines.append(f"*{kind_label} in {construct.enclosing_scope}*")
    else:
        lines.append(f"*{kind_label}*")
    lines.append("")

    if construct.kind.is_callable:
        lines.extend(["## Signature", "", "```cpp", format_signature(construct), "```", ""])

        if construct.parameters:
            lines.extend(["## Parameters", "", "| Name | Type | Description |", "|------|------|-------------|"])
            for param in construct.parameters:
                description = doc.params.get(param.name, "") if doc else ""
                lines.append(f"| {param.name} | `{_table_cell(param.type)}` | {_table_cell(description)} |")
            lines.append("")

        if construct.return_type and construct.return_type != "void" and construct.kind not in (
            ConstructKind.CONSTRUCTOR,
            ConstructKind.DESTRUCTOR,
        ):
            lines.extend(["## Returns", "", f"`{construct.return_type}`"])
            if doc and doc.return_desc:
                lines.extend(["", doc.return_desc])
            lines.append("")

    if construct.base_types:
        lines.extend(["## Base Types", ""])
        lines.extend(f"- `{base}`" for base in construct.base_types)
        lines.append("")

    lines.extend(["## Documentation", ""])
    if construct.doc_comment:
        lines.append(clean_comment(construct.doc_comment))
    else:
        lines.append(NO_DOCUMENTATION.format(kind=kind_label.lower()))
    lines.append("")

    lines.extend(["## Source", "", f"**File:** `{construct.source_file}`", ""])
    lines.append(f"**Lines:** {construct.start_line}-{construct.end_line}")
    if construct.merge_state.is_merged:
        lines.extend(["", "**Locations:**", ""])
        lines.extend(f"- `{location}`" for location in construct.merge_state.source_locations)
    lines.append("")
    return "\n".join(lines)


def write_construct_files(constructs: Sequence[Construct], output_dir: str) -> List[str]:
    """Write one Markdown file per construct.

    Two constructs that map to the same file name (a class and a namespace
    named alike) are told apart by a kind suffix, then a counter.

    Args:
        constructs: Merged constructs.
        output_dir: Directory to write into (created if missing).

    Returns:
        Paths of the generated files, in construct order.
    """
    os.makedirs(output_dir, exist_ok=True)
    written: List[str] = []
    used = set()
    for construct in constructs:
        filename = construct_filename(construct)
        if filename in used:
            stem = f"{filename[:-len(MARKDOWN_SUFFIX)]}-{construct.kind.value.lower()}"
            filename = f"{stem}{MARKDOWN_SUFFIX}"
            counter = 2
            while filename in used:
                filename = f"{stem}-{counter}{MARKDOWN_SUFFIX}"
                counter += 1
            logger.warning(
                "File name collision for %s; writing %s",
                construct.qualified_name or construct.name,
                filename,
            )
        used.add(filename)
        path = os.path.join(output_dir, filename)
        with open(path, "w", encoding="utf-8") as f:
            f.write(render_construct(construct))
        written.append(path)

    logger.info("Wrote %d markdown files to %s", len(written), output_dir)
    return written
