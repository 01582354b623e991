"""
Configuration constants for C++ construct extraction.

Defines the tree-sitter node type strings and heuristic limits used by the
extractor, the merger and the doc associator.
"""

from typing import Dict, Set, Tuple

# Node types that open a scope and are emitted as constructs
CLASS_LIKE_TYPES: Set[str] = {
    "class_specifier",
    "struct_specifier",
}

ENUM_NODE: str = "enum_specifier"

NAMESPACE_NODE: str = "namespace_definition"

FUNCTION_DEFINITION: str = "function_definition"

FUNCTION_DECLARATOR: str = "function_declarator"

# Declaration nodes that may carry a bare function declarator (prototypes)
DECLARATION_TYPES: Set[str] = {
    "declaration",
    "field_declaration",
}

# Declarators wrapping a function declarator (T& f(), T* f())
DECLARATOR_WRAPPERS: Set[str] = {
    "pointer_declarator",
    "reference_declarator",
    "parenthesized_declarator",
    "attributed_declarator",
}

# Declarator holding an initializer (`void f() = delete;` at namespace scope)
INIT_DECLARATOR: str = "init_declarator"

# Declarator naming a function pointer (`void (*cb)(int)`)
FUNCTION_POINTER_NAME: str = "parenthesized_declarator"

# Children that can name a function declarator
DECLARATOR_NAME_TYPES: Tuple[str, ...] = (
    "identifier",
    "field_identifier",
    "destructor_name",
    "operator_name",
)

QUALIFIED_IDENTIFIER: str = "qualified_identifier"

# Return-type tags, in the order they are accepted
RETURN_TYPE_TYPES: Set[str] = {
    "primitive_type",
    "type_identifier",
    "qualified_identifier",
    "template_type",
}

DEFAULT_RETURN_TYPE: str = "void"

PARAMETER_LIST: str = "parameter_list"

PARAMETER_TYPES: Set[str] = {
    "parameter_declaration",
    "optional_parameter_declaration",
}

ACCESS_SPECIFIER: str = "access_specifier"

CLASS_BODY: str = "field_declaration_list"

BASE_CLASS_CLAUSE: str = "base_class_clause"

BASE_TYPE_TYPES: Set[str] = {
    "type_identifier",
    "qualified_identifier",
    "template_type",
}

# Default member access per class-like node type
DEFAULT_VISIBILITY: Dict[str, str] = {
    "class_specifier": "private",
    "struct_specifier": "public",
}

# Marker that excludes a function definition from extraction
DELETED_FUNCTION_PATTERN: str = r"=\s*delete\b"

# Nearby-docstring heuristic: bytes scanned before a construct
DOCSTRING_WINDOW_BYTES: int = 100

# Line-proximity fallback for attaching comment blocks to constructs
ASSOCIATION_LINE_WINDOW: int = 10

# Node types matched by the doc association query
ASSOCIATION_QUERY: str = """
[
  (function_definition) @decl
  (class_specifier) @decl
  (namespace_definition) @decl
  (struct_specifier) @decl
  (enum_specifier) @decl
]
"""

# Enclosing node types contributing to an associated node's namespace path
SCOPE_NODE_TYPES: Set[str] = {
    "namespace_definition",
    "class_specifier",
    "struct_specifier",
}

# Comment styles understood by the comment parser
BLOCK_COMMENT_STYLE: str = "/** */"
LINE_COMMENT_STYLES: Tuple[str, ...] = ("///", "//!")
DEFAULT_DOCSTRING_STYLE: str = BLOCK_COMMENT_STYLE

# C++ file extensions
CPP_EXTENSIONS: Set[str] = {
    ".cpp",
    ".cc",
    ".cxx",
    ".c",
    ".h",
    ".hpp",
    ".hxx",
}

# Directories never descended into during discovery
SKIPPED_DIRECTORIES: Set[str] = {
    "build",
    "cmake-build-debug",
    "cmake-build-release",
    "node_modules",
    "venv",
    "__pycache__",
    "dist",
    "out",
}
