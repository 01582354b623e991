"""
Data models for extracted C++ constructs.

Constructs never hold tree-sitter nodes: everything a later stage needs from
the tree (lines, byte offsets) is copied into plain values at extraction time.
"""

from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple


class ConstructKind(str, Enum):
    """Kinds of documentable constructs."""

    FUNCTION = "Function"
    METHOD = "Method"
    CLASS = "Class"
    STRUCT = "Struct"
    ENUM = "Enum"
    VARIABLE = "Variable"
    NAMESPACE = "Namespace"
    CONSTRUCTOR = "Constructor"
    DESTRUCTOR = "Destructor"

    @property
    def is_callable(self) -> bool:
        return self in _CALLABLE_KINDS


_CALLABLE_KINDS = frozenset({
    ConstructKind.FUNCTION,
    ConstructKind.METHOD,
    ConstructKind.CONSTRUCTOR,
    ConstructKind.DESTRUCTOR,
})


@dataclass
class Parameter:
    """A single function parameter.

    Attributes:
        type: Recovered type name, with pointer/reference suffixes.
        name: Parameter name, empty for unnamed parameters.
        default_value: Default value text when the source spells one out.
    """

    type: str
    name: str
    default_value: Optional[str] = None


@dataclass
class SourceSpan:
    """Location of a construct in its file (lines are 1-based, inclusive)."""

    start_line: int
    end_line: int
    start_byte: int = 0
    end_byte: int = 0


@dataclass
class MergeState:
    """Provenance recorded when several occurrences collapse into one record."""

    is_merged: bool = False
    source_locations: List[str] = field(default_factory=list)
    doc_fragments: List[str] = field(default_factory=list)


@dataclass
class Construct:
    """A documentable C++ entity found in one source file.

    Attributes:
        kind: Construct category.
        name: Simple name (``operator=``, ``~JsonDoc`` and similar included).
        qualified_name: ``enclosing_scope::name``, or ``name`` at top level.
            Empty only when name recovery failed.
        enclosing_scope: Namespace/class path the construct was found in.
        return_type: Return type for callables, None otherwise.
        parameters: Parameters for callables.
        base_types: Base classes for classes and structs.
        visibility: public/private/protected inside class bodies, else empty.
        doc_comment: Associated documentation comment, if any.
        span: Line and byte span.
        source_file: Path of the file the construct came from.
        merge_state: Merge provenance.
    """

    kind: ConstructKind
    name: str
    qualified_name: str
    enclosing_scope: str
    span: SourceSpan
    source_file: str
    return_type: Optional[str] = None
    parameters: List[Parameter] = field(default_factory=list)
    base_types: List[str] = field(default_factory=list)
    visibility: str = ""
    doc_comment: Optional[str] = None
    is_const: bool = False
    is_static: bool = False
    is_virtual: bool = False
    merge_state: MergeState = field(default_factory=MergeState)

    @property
    def start_line(self) -> int:
        return self.span.start_line

    @property
    def end_line(self) -> int:
        return self.span.end_line

    @property
    def location(self) -> str:
        """``file:line`` form used in merge provenance."""
        return f"{self.source_file}:{self.span.start_line}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert the construct to a dictionary suitable for JSON serialization.

        Returns:
            Dictionary representation of the construct.
        """
        payload = asdict(self)
        payload["kind"] = self.kind.value
        return payload


@dataclass
class SourceLocation:
    """Start of a comment block (line and column are 1-based)."""

    line: int
    column: int
    byte_offset: int


@dataclass
class DocstringBlock:
    """A parsed documentation comment.

    Attributes:
        raw_content: Comment text exactly as written, delimiters included.
        description: Free text before the first tag (falls back to @brief).
        params: Parameter descriptions keyed by name, in source order.
        return_desc: @return text.
        brief: @brief text.
        tags: Remaining tags rendered as ``"name: value"``.
        location: Where the comment starts.
        end_byte: Byte offset just past the comment.
        override_file/override_class/override_struct/override_enum: Set by
            the matching Doxygen structural commands.
        namespace_path: Scope of the associated node, once associated.
        symbol_name: Name of the associated node, once associated.
        symbol_type: Node type of the associated node, once associated.
        associated_span: (start_byte, end_byte) of the associated node.
    """

    raw_content: str
    location: SourceLocation
    end_byte: int
    description: str = ""
    params: Dict[str, str] = field(default_factory=dict)
    return_desc: str = ""
    brief: str = ""
    tags: List[str] = field(default_factory=list)
    override_file: bool = False
    override_class: bool = False
    override_struct: bool = False
    override_enum: bool = False
    namespace_path: str = ""
    symbol_name: str = ""
    symbol_type: str = ""
    associated_span: Optional[Tuple[int, int]] = None

    @property
    def is_associated(self) -> bool:
        return self.associated_span is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
