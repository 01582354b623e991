"""
Association of documentation comments with the constructs they describe.

Each comment block is attached to the nearest construct-defining node that
starts after the comment ends, found with a tree-sitter query. Constructs
that still lack documentation afterwards can pick up a block from a few
lines above them.
"""

import logging
from typing import Dict, List, Optional, Sequence

from tree_sitter import Node, Query, QueryCursor, Tree

from core.naming import normalize_cpp_entity_name
from extraction.config import (
    ASSOCIATION_LINE_WINDOW,
    ASSOCIATION_QUERY,
    DECLARATOR_NAME_TYPES,
    FUNCTION_DEFINITION,
    QUALIFIED_IDENTIFIER,
    SCOPE_NODE_TYPES,
)
from extraction.models import Construct, DocstringBlock
from extraction.names import name_from_declarator_text
from extraction.traversal import find_function_declarator, node_text

logger = logging.getLogger(__name__)

CAPTURE_NAME = "decl"


def find_declaration_nodes(tree: Tree) -> List[Node]:
    """All function/class/struct/enum/namespace nodes, in document order."""
    query = Query(tree.language, ASSOCIATION_QUERY)
    nodes: List[Node] = []
    for _, captures in QueryCursor(query).matches(tree.root_node):
        nodes.extend(captures.get(CAPTURE_NAME, []))
    return nodes


def extract_namespace_path(node: Node, source_bytes: bytes) -> str:
    """``::``-joined names of the namespaces and classes enclosing a node."""
    parts: List[str] = []
    current = node.parent
    while current is not None:
        if current.type in SCOPE_NODE_TYPES:
            name = node_text(current.child_by_field_name("name"), source_bytes)
            if name:
                parts.append(normalize_cpp_entity_name(name))
        current = current.parent
    return "::".join(reversed(parts))


def extract_symbol_name(node: Node, source_bytes: bytes) -> str:
    """Name of a matched declaration node (empty when it cannot be found)."""
    if node.type == FUNCTION_DEFINITION:
        declarator = find_function_declarator(node)
        if declarator is None:
            return ""
        name_node = declarator.child_by_field_name("declarator")
        if name_node is not None and name_node.type in DECLARATOR_NAME_TYPES + (QUALIFIED_IDENTIFIER,):
            return normalize_cpp_entity_name(node_text(name_node, source_bytes))
        return name_from_declarator_text(node_text(declarator, source_bytes)) or ""

    return normalize_cpp_entity_name(node_text(node.child_by_field_name("name"), source_bytes))


def _nearest_following(block: DocstringBlock, nodes: Sequence[Node]) -> Optional[Node]:
    best: Optional[Node] = None
    best_distance = -1
    for node in nodes:
        distance = node.start_byte - block.end_byte
        if distance < 0:
            continue
        if best is None or distance < best_distance:
            best = node
            best_distance = distance
    return best


def associate_docs_with_nodes(
    blocks: List[DocstringBlock],
    tree: Tree,
    source_bytes: bytes,
) -> List[DocstringBlock]:
    """Attach each comment block to the nearest following declaration.

    Unmatched blocks keep empty symbol fields.

    Args:
        blocks: Parsed comment blocks (updated in place).
        tree: Parsed tree of the same source.
        source_bytes: The raw source bytes.

    Returns:
        The same blocks, for chaining.
    """
    if not blocks:
        return blocks

    nodes = find_declaration_nodes(tree)
    associated = 0
    for block in blocks:
        node = _nearest_following(block, nodes)
        if node is None:
            continue
        block.namespace_path = extract_namespace_path(node, source_bytes)
        block.symbol_name = extract_symbol_name(node, source_bytes)
        block.symbol_type = node.type
        block.associated_span = (node.start_byte, node.end_byte)
        associated += 1

    logger.debug("Associated %d of %d docstring blocks", associated, len(blocks))
    return blocks


def _nearest_block_above(construct: Construct, blocks: Sequence[DocstringBlock]) -> Optional[DocstringBlock]:
    best: Optional[DocstringBlock] = None
    for block in blocks:
        # blocks already tied to another node stay with it
        if block.associated_span is not None and block.associated_span[0] != construct.span.start_byte:
            continue
        gap = construct.start_line - block.location.line
        if 0 < gap <= ASSOCIATION_LINE_WINDOW:
            if best is None or block.location.line > best.location.line:
                best = block
    return best


def attach_docs_to_constructs(
    constructs: List[Construct],
    blocks: List[DocstringBlock],
) -> int:
    """Fill in missing doc comments from associated comment blocks.

    A construct takes the raw text of the block associated with the node
    starting at its own start byte; failing that, of the closest unassociated
    block starting at most ``ASSOCIATION_LINE_WINDOW`` lines above it.
    Constructs that already carry a doc comment are left alone.

    Returns:
        Number of constructs that received documentation.
    """
    by_start: Dict[int, DocstringBlock] = {}
    for block in blocks:
        if block.associated_span is not None:
            # a later block is closer to the node
            by_start[block.associated_span[0]] = block

    attached = 0
    for construct in constructs:
        if construct.doc_comment:
            continue
        block = by_start.get(construct.span.start_byte)
        if block is None:
            block = _nearest_block_above(construct, blocks)
        if block is None or not block.raw_content:
            continue
        construct.doc_comment = block.raw_content
        attached += 1
    return attached
