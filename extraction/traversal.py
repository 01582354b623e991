"""
AST traversal and construct extraction logic.

This module walks a tree-sitter C++ tree and emits one ``Construct`` per
function, method, class, struct, enum and namespace it can reach, qualified
with the namespace/class scope it was found in.
"""

import logging
import re
from dataclasses import dataclass, field
from functools import partial
from typing import List, Optional, Tuple

from tree_sitter import Node, Tree

from core.naming import innermost_scope, normalize_cpp_entity_name, qualify, split_qualified_name
from extraction.config import (
    ACCESS_SPECIFIER,
    BASE_CLASS_CLAUSE,
    BASE_TYPE_TYPES,
    CLASS_BODY,
    CLASS_LIKE_TYPES,
    DECLARATION_TYPES,
    DECLARATOR_NAME_TYPES,
    DECLARATOR_WRAPPERS,
    DEFAULT_RETURN_TYPE,
    DEFAULT_VISIBILITY,
    DELETED_FUNCTION_PATTERN,
    DOCSTRING_WINDOW_BYTES,
    ENUM_NODE,
    FUNCTION_DECLARATOR,
    FUNCTION_DEFINITION,
    FUNCTION_POINTER_NAME,
    INIT_DECLARATOR,
    NAMESPACE_NODE,
    PARAMETER_LIST,
    PARAMETER_TYPES,
    QUALIFIED_IDENTIFIER,
    RETURN_TYPE_TYPES,
)
from extraction.models import Construct, ConstructKind, Parameter, SourceSpan
from extraction.names import (
    first_recovered,
    method_name_from_declaration_text,
    name_from_construct_text,
    name_from_declarator_text,
    name_from_qualified_identifier,
    operator_name_from_definition_text,
)

logger = logging.getLogger(__name__)

_DELETED_RE = re.compile(DELETED_FUNCTION_PATTERN)

TEMPLATE_WRAPPER = "template_declaration"
TYPE_ALIAS_NODES = {"type_definition", "alias_declaration"}

_TYPE_KINDS = {
    "class_specifier": ConstructKind.CLASS,
    "struct_specifier": ConstructKind.STRUCT,
    ENUM_NODE: ConstructKind.ENUM,
}


@dataclass
class _TraversalState:
    """Per-file state threaded through the recursive walk."""

    source_bytes: bytes
    file_path: str
    log: logging.Logger
    constructs: List[Construct] = field(default_factory=list)

    def emit(self, construct: Construct) -> None:
        self.constructs.append(construct)
        self.log.debug(
            "Extracted %s: %s at %s:%d",
            construct.kind.value,
            construct.qualified_name or "<unnamed>",
            self.file_path,
            construct.span.start_line,
        )


def node_text(node: Optional[Node], source_bytes: bytes) -> str:
    """Source text of a node (empty for None)."""
    if node is None:
        return ""
    return source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def _span(node: Node) -> SourceSpan:
    return SourceSpan(
        start_line=node.start_point.row + 1,
        end_line=node.end_point.row + 1,
        start_byte=node.start_byte,
        end_byte=node.end_byte,
    )


def _inner_declarator(node: Node) -> Optional[Node]:
    inner = node.child_by_field_name("declarator")
    if inner is not None:
        return inner
    for child in node.named_children:
        if child.type.endswith("declarator") or child.type in DECLARATOR_NAME_TYPES:
            return child
    return None


def find_function_declarator(node: Node) -> Optional[Node]:
    """Locate the function declarator of a definition or declaration.

    Looks at direct children first, then unwraps pointer/reference
    declarators (``T& C::operator=(...)``, ``T* make()``).
    """
    for child in node.children:
        if child.type == FUNCTION_DECLARATOR:
            return child

    current = node.child_by_field_name("declarator")
    while current is not None:
        if current.type == FUNCTION_DECLARATOR:
            return current
        if current.type not in DECLARATOR_WRAPPERS:
            return None
        current = _inner_declarator(current)
    return None


def get_doc_anchor(node: Node) -> Node:
    """Outermost template wrapper of a node (the node itself if untemplated).

    Comments precede the ``template <...>`` header, not the inner definition.
    """
    anchor = node
    while anchor.parent is not None and anchor.parent.type == TEMPLATE_WRAPPER:
        anchor = anchor.parent
    return anchor


def find_nearby_docstring(node: Node, source_bytes: bytes) -> Optional[str]:
    """Find a ``/** ... */`` comment closing just before a node.

    Only the ``DOCSTRING_WINDOW_BYTES`` bytes in front of the node are
    searched for the opening marker; the comment must close before the node
    starts.

    Args:
        node: Construct node.
        source_bytes: The raw source file bytes.

    Returns:
        The full comment text including delimiters, or None.
    """
    start = node.start_byte
    window_start = max(0, start - DOCSTRING_WINDOW_BYTES)
    relative = source_bytes[window_start:start].rfind(b"/**")
    if relative == -1:
        return None

    open_pos = window_start + relative
    close_pos = source_bytes.find(b"*/", open_pos + 2)
    if close_pos == -1 or close_pos + 2 > start:
        return None
    return source_bytes[open_pos:close_pos + 2].decode("utf-8", errors="replace")


def extract_type_name(node: Optional[Node], source_bytes: bytes) -> str:
    """Recover a type name, adding ``*``/``&`` for pointer/reference declarators."""
    if node is None:
        return ""
    if node.type == "pointer_declarator":
        return extract_type_name(_inner_declarator(node), source_bytes) + "*"
    if node.type == "reference_declarator":
        return extract_type_name(_inner_declarator(node), source_bytes) + "&"
    return normalize_cpp_entity_name(node_text(node, source_bytes))


def extract_return_type(node: Node, source_bytes: bytes) -> str:
    """Return type of a function definition or declaration node.

    The first direct child tagged as a primitive type, type identifier,
    qualified identifier or template type wins, followed by the ``*``/``&``
    of any pointer or reference declarator wrapping the function declarator.
    Reaching the function declarator first means no return type
    (constructors, destructors).
    """
    for child in node.children:
        if child.type == FUNCTION_DECLARATOR:
            break
        if child.type in RETURN_TYPE_TYPES:
            return normalize_cpp_entity_name(node_text(child, source_bytes)) + _return_type_suffix(node)
    return DEFAULT_RETURN_TYPE


def _return_type_suffix(node: Node) -> str:
    suffix = ""
    current = node.child_by_field_name("declarator")
    while current is not None and current.type != FUNCTION_DECLARATOR:
        if current.type == "pointer_declarator":
            suffix += "*"
        elif current.type == "reference_declarator":
            suffix += _reference_suffix(current)
        elif current.type not in DECLARATOR_WRAPPERS and current.type != INIT_DECLARATOR:
            return ""
        current = _inner_declarator(current)
    return suffix if current is not None else ""


def _reference_suffix(node: Node) -> str:
    for child in node.children:
        if child.type in ("&", "&&"):
            return child.type
    return "&"


def _unwrap_parameter_declarator(declarator: Optional[Node], source_bytes: bytes) -> Tuple[str, str]:
    """Walk a parameter declarator to its identifier.

    Returns:
        (name, type suffix) such as ("key", "&") for ``const T& key``.
    """
    suffix = ""
    current = declarator
    while current is not None:
        node_type = current.type
        if node_type == "identifier":
            return node_text(current, source_bytes), suffix
        if node_type in ("pointer_declarator", "abstract_pointer_declarator"):
            suffix += "*"
        elif node_type in ("reference_declarator", "abstract_reference_declarator"):
            suffix += _reference_suffix(current)
        elif node_type in ("array_declarator", "abstract_array_declarator"):
            suffix += "[]"
        current = _inner_declarator(current)
    return "", suffix


def extract_parameter(node: Node, source_bytes: bytes) -> Parameter:
    """Build a Parameter from a (optional_)parameter_declaration node."""
    type_node = node.child_by_field_name("type")
    if type_node is None and node.named_child_count:
        type_node = node.named_children[0]
    type_name = extract_type_name(type_node, source_bytes)

    qualifiers = [
        node_text(child, source_bytes)
        for child in node.children
        if child.type == "type_qualifier"
    ]
    if qualifiers:
        type_name = " ".join(qualifiers + [type_name])

    name, suffix = _unwrap_parameter_declarator(node.child_by_field_name("declarator"), source_bytes)

    default_node = node.child_by_field_name("default_value")
    default_value = node_text(default_node, source_bytes).strip() if default_node is not None else None

    return Parameter(type=type_name + suffix, name=name, default_value=default_value or None)


def extract_parameters(declarator: Optional[Node], source_bytes: bytes) -> List[Parameter]:
    """Parameters listed in a function declarator's parameter list."""
    if declarator is None:
        return []
    params_node = declarator.child_by_field_name("parameters")
    if params_node is None:
        params_node = next((c for c in declarator.children if c.type == PARAMETER_LIST), None)
    if params_node is None:
        return []

    parameters = [
        extract_parameter(child, source_bytes)
        for child in params_node.named_children
        if child.type in PARAMETER_TYPES
    ]
    # f(void) declares no parameters
    if len(parameters) == 1 and parameters[0].type == "void" and not parameters[0].name:
        return []
    return parameters


def _identifier_child_text(node: Optional[Node], source_bytes: bytes) -> Optional[str]:
    if node is None:
        return None
    for child in node.children:
        if child.type in DECLARATOR_NAME_TYPES:
            return node_text(child, source_bytes) or None
    return None


def _resolve_name(raw_name: str, scope: str) -> Tuple[str, str, str]:
    """Split a recovered name into (effective scope, simple name, qualified name).

    A qualified recovered name carries its own scope, which replaces the
    structural one.
    """
    owner, simple = split_qualified_name(raw_name)
    if owner:
        return owner, simple, qualify(owner, simple)
    return scope, raw_name, qualify(scope, raw_name)


def _callable_kind(name: str, scope: str, in_class: bool) -> ConstructKind:
    if name.startswith("~"):
        return ConstructKind.DESTRUCTOR
    if scope and name == innermost_scope(scope):
        return ConstructKind.CONSTRUCTOR
    if in_class:
        return ConstructKind.METHOD
    return ConstructKind.FUNCTION


def _has_specifier(node: Node, source_bytes: bytes, node_types: Tuple[str, ...], text: str) -> bool:
    return any(
        child.type in node_types and node_text(child, source_bytes).strip() == text
        for child in node.children
    )


def is_deleted_function(node: Node, source_bytes: bytes) -> bool:
    """True for ``= delete`` definitions."""
    if any(child.type == "delete_method_clause" for child in node.children):
        return True
    return _DELETED_RE.search(node_text(node, source_bytes)) is not None


def detect_macro_broken_class(node: Node, source_bytes: bytes) -> Optional[Tuple[ConstructKind, str]]:
    """Detect a class/struct misparsed as a function definition.

    ``class EXPORT_MACRO Name { ... }`` can come out of tree-sitter as a
    function_definition whose declarator is the class name.
    """
    stripped = node_text(node, source_bytes).strip()
    if stripped.startswith("class "):
        kind = ConstructKind.CLASS
    elif stripped.startswith("struct "):
        kind = ConstructKind.STRUCT
    else:
        return None

    declarator = node.child_by_field_name("declarator")
    name = normalize_cpp_entity_name(node_text(declarator, source_bytes))
    if not name or "(" in name:
        return None
    return kind, name


def extract_function(
    node: Node,
    state: _TraversalState,
    scope: str,
    in_class: bool = False,
    visibility: str = "",
) -> Construct:
    """Build a Construct from a function_definition node.

    Name recovery runs the strategies of ``extraction.names`` in order:
    qualified identifier, operator text of the whole definition (when the
    declarator text is useless), declarator text, and finally any bare
    identifier. Without a declarator the whole definition text is used.
    """
    source_bytes = state.source_bytes
    definition_text = node_text(node, source_bytes)
    declarator = find_function_declarator(node)

    if declarator is not None:
        name_node = declarator.child_by_field_name("declarator")
        declarator_text = node_text(declarator, source_bytes).strip()
        qualified_text = ""
        if name_node is not None and name_node.type == QUALIFIED_IDENTIFIER:
            qualified_text = node_text(name_node, source_bytes)
        strategies = [
            partial(name_from_qualified_identifier, qualified_text),
            lambda: (
                operator_name_from_definition_text(definition_text)
                if declarator_text in ("", "()")
                else None
            ),
            partial(name_from_declarator_text, declarator_text),
            partial(_identifier_child_text, declarator, source_bytes),
        ]
    else:
        state.log.debug(
            "Function at %s:%d has no declarator; recovering name from text",
            state.file_path,
            node.start_point.row + 1,
        )
        strategies = [
            partial(name_from_construct_text, definition_text),
            partial(_identifier_child_text, node, source_bytes),
        ]

    raw_name = first_recovered(strategies)
    if not raw_name:
        state.log.warning(
            "Could not recover function name at %s:%d",
            state.file_path,
            node.start_point.row + 1,
        )
    effective_scope, name, qualified_name = _resolve_name(raw_name, scope)

    return Construct(
        kind=_callable_kind(name, effective_scope, in_class),
        name=name,
        qualified_name=qualified_name,
        enclosing_scope=effective_scope,
        span=_span(node),
        source_file=state.file_path,
        return_type=extract_return_type(node, source_bytes),
        parameters=extract_parameters(declarator, source_bytes),
        visibility=visibility,
        doc_comment=find_nearby_docstring(get_doc_anchor(node), source_bytes),
        is_const=declarator is not None and _has_specifier(declarator, source_bytes, ("type_qualifier",), "const"),
        is_static=_has_specifier(node, source_bytes, ("storage_class_specifier",), "static"),
        is_virtual=_has_specifier(node, source_bytes, ("virtual", "virtual_function_specifier"), "virtual"),
    )


def _declaration_owner(declarator: Node) -> Node:
    """Declaration node a function declarator belongs to."""
    owner = declarator.parent
    while owner is not None and (owner.type in DECLARATOR_WRAPPERS or owner.type == INIT_DECLARATOR):
        owner = owner.parent
    if owner is None or owner.type not in DECLARATION_TYPES | {"friend_declaration"}:
        return declarator
    return owner


def is_function_pointer(declarator: Node) -> bool:
    """True for ``void (*cb)(int)``: a variable of function pointer type."""
    name_node = declarator.child_by_field_name("declarator")
    return name_node is not None and name_node.type == FUNCTION_POINTER_NAME


def extract_method_declaration(
    declarator: Node,
    state: _TraversalState,
    scope: str,
    in_class: bool = False,
    visibility: str = "",
) -> Construct:
    """Build a Construct from a bare function_declarator (a prototype)."""
    source_bytes = state.source_bytes
    name_node = declarator.child_by_field_name("declarator")
    name_text = ""
    if name_node is not None and name_node.type in DECLARATOR_NAME_TYPES + (QUALIFIED_IDENTIFIER,):
        name_text = node_text(name_node, source_bytes)

    raw_name = first_recovered([
        lambda: normalize_cpp_entity_name(name_text) or None,
        partial(method_name_from_declaration_text, node_text(declarator, source_bytes)),
    ])
    effective_scope, name, qualified_name = _resolve_name(raw_name, scope)

    owner = _declaration_owner(declarator)
    return_type = DEFAULT_RETURN_TYPE if owner is declarator else extract_return_type(owner, source_bytes)

    return Construct(
        kind=_callable_kind(name, effective_scope, in_class),
        name=name,
        qualified_name=qualified_name,
        enclosing_scope=effective_scope,
        span=_span(owner),
        source_file=state.file_path,
        return_type=return_type,
        parameters=extract_parameters(declarator, source_bytes),
        visibility=visibility,
        doc_comment=find_nearby_docstring(get_doc_anchor(owner), source_bytes),
        is_const=_has_specifier(declarator, source_bytes, ("type_qualifier",), "const"),
        is_static=_has_specifier(owner, source_bytes, ("storage_class_specifier",), "static"),
        is_virtual=_has_specifier(owner, source_bytes, ("virtual", "virtual_function_specifier"), "virtual"),
    )


def extract_base_types(node: Node, source_bytes: bytes) -> List[str]:
    """Base classes listed in a class/struct base clause."""
    bases = []
    for child in node.children:
        if child.type != BASE_CLASS_CLAUSE:
            continue
        for base in child.named_children:
            if base.type in BASE_TYPE_TYPES:
                bases.append(normalize_cpp_entity_name(node_text(base, source_bytes)))
    return bases


def extract_type_construct(
    node: Node,
    state: _TraversalState,
    scope: str,
    visibility: str = "",
) -> Optional[Construct]:
    """Build a Construct for a class, struct or enum definition.

    Forward declarations and elaborated type references (no body) are not
    constructs and yield None.
    """
    if node.child_by_field_name("body") is None:
        return None

    source_bytes = state.source_bytes
    name = normalize_cpp_entity_name(node_text(node.child_by_field_name("name"), source_bytes))
    if not name:
        state.log.debug("Anonymous %s at %s:%d", node.type, state.file_path, node.start_point.row + 1)

    return Construct(
        kind=_TYPE_KINDS[node.type],
        name=name,
        qualified_name=qualify(scope, name),
        enclosing_scope=scope,
        span=_span(node),
        source_file=state.file_path,
        base_types=extract_base_types(node, source_bytes) if node.type in CLASS_LIKE_TYPES else [],
        visibility=visibility,
        doc_comment=find_nearby_docstring(get_doc_anchor(node), source_bytes),
    )


def extract_namespace(node: Node, state: _TraversalState, scope: str) -> Construct:
    """Build a Construct for a namespace definition (anonymous: empty name)."""
    name = normalize_cpp_entity_name(node_text(node.child_by_field_name("name"), state.source_bytes))
    return Construct(
        kind=ConstructKind.NAMESPACE,
        name=name,
        qualified_name=qualify(scope, name),
        enclosing_scope=scope,
        span=_span(node),
        source_file=state.file_path,
        doc_comment=find_nearby_docstring(node, state.source_bytes),
    )


def _visit_class_body(body: Node, state: _TraversalState, scope: str, default_visibility: str) -> None:
    visibility = default_visibility
    for child in body.children:
        if child.type == ACCESS_SPECIFIER:
            visibility = node_text(child, state.source_bytes).rstrip(":").strip()
            continue
        _visit(child, state, scope, True, visibility)


def _visit(node: Node, state: _TraversalState, scope: str, in_class: bool, visibility: str) -> None:
    node_type = node.type

    if node_type == FUNCTION_DEFINITION:
        if is_deleted_function(node, state.source_bytes):
            state.log.debug("Skipping deleted function at %s:%d", state.file_path, node.start_point.row + 1)
            return
        macro_broken = detect_macro_broken_class(node, state.source_bytes)
        if macro_broken:
            kind, name = macro_broken
            state.log.info("Detected macro-broken %s '%s' at line %d", kind.value, name, node.start_point.row + 1)
            state.emit(Construct(
                kind=kind,
                name=name,
                qualified_name=qualify(scope, name),
                enclosing_scope=scope,
                span=_span(node),
                source_file=state.file_path,
                visibility=visibility,
                doc_comment=find_nearby_docstring(node, state.source_bytes),
            ))
            return
        state.emit(extract_function(node, state, scope, in_class, visibility))
        return

    if node_type == FUNCTION_DECLARATOR:
        if is_function_pointer(node):
            return
        if not is_deleted_function(_declaration_owner(node), state.source_bytes):
            state.emit(extract_method_declaration(node, state, scope, in_class, visibility))
        return

    if node_type in DECLARATION_TYPES:
        declarator = next((c for c in node.children if c.type == FUNCTION_DECLARATOR), None)
        if declarator is not None:
            if not is_function_pointer(declarator) and not is_deleted_function(node, state.source_bytes):
                state.emit(extract_method_declaration(declarator, state, scope, in_class, visibility))
            return

    if node_type in TYPE_ALIAS_NODES:
        # typedef'd function types are not functions; only nested type bodies count
        for child in node.named_children:
            if child.type in CLASS_LIKE_TYPES or child.type == ENUM_NODE:
                _visit(child, state, scope, in_class, visibility)
        return

    if node_type == NAMESPACE_NODE:
        construct = extract_namespace(node, state, scope)
        state.emit(construct)
        child_scope = construct.qualified_name or scope
        for child in node.children:
            _visit(child, state, child_scope, False, "")
        return

    if node_type in CLASS_LIKE_TYPES or node_type == ENUM_NODE:
        construct = extract_type_construct(node, state, scope, visibility)
        child_scope = scope
        if construct is not None:
            state.emit(construct)
            if node_type in CLASS_LIKE_TYPES and construct.name:
                child_scope = construct.qualified_name
        for child in node.children:
            if child.type == CLASS_BODY:
                _visit_class_body(child, state, child_scope, DEFAULT_VISIBILITY[node_type])
            else:
                _visit(child, state, child_scope, node_type in CLASS_LIKE_TYPES, visibility)
        return

    for child in node.children:
        _visit(child, state, scope, in_class, visibility)


def extract_constructs_from_tree(
    tree: Tree,
    source_bytes: bytes,
    file_path: str,
    log: Optional[logging.Logger] = None,
) -> List[Construct]:
    """Extract every documentable construct from a parsed tree.

    Args:
        tree: The parsed tree.
        source_bytes: The raw source bytes the tree was parsed from.
        file_path: Path recorded as each construct's source file.
        log: Logger to report through; defaults to this module's logger.

    Returns:
        Constructs in pre-order (document) order, unmerged.
    """
    state = _TraversalState(source_bytes=source_bytes, file_path=file_path, log=log or logger)
    _visit(tree.root_node, state, "", False, "")
    state.log.debug("Extracted %d constructs from %s", len(state.constructs), file_path)
    return state.constructs
