"""
Layer 1: Extraction Engine

Tree-sitter-based C++ construct extractor: finds functions, methods,
classes, structs, enums and namespaces, recovers their qualified names,
associates doc comments and merges duplicates.
"""

from extraction.models import (
    Construct,
    ConstructKind,
    DocstringBlock,
    MergeState,
    Parameter,
    SourceLocation,
    SourceSpan,
)
from extraction.parser import (
    LanguageRegistry,
    LoadedLanguage,
    create_parser,
    parse_file,
    parse_bytes,
    count_error_nodes,
)
from extraction.traversal import extract_constructs_from_tree
from extraction.comments import extract_docstring_blocks
from extraction.association import associate_docs_with_nodes, attach_docs_to_constructs
from extraction.merger import MergeConflict, MergeResult, merge_constructs
from extraction.extractor import (
    extract_source,
    extract_file,
    extract_directory,
    extract_to_dict_list,
    discover_source_files,
    ExtractionStats,
    FileExtractionResult,
)

__all__ = [
    # Data models
    "Construct",
    "ConstructKind",
    "DocstringBlock",
    "MergeState",
    "Parameter",
    "SourceLocation",
    "SourceSpan",
    "ExtractionStats",
    "FileExtractionResult",
    # Low-level parsing
    "LanguageRegistry",
    "LoadedLanguage",
    "create_parser",
    "parse_file",
    "parse_bytes",
    "count_error_nodes",
    # Mid-level extraction
    "extract_constructs_from_tree",
    "extract_docstring_blocks",
    "associate_docs_with_nodes",
    "attach_docs_to_constructs",
    "MergeConflict",
    "MergeResult",
    "merge_constructs",
    # High-level orchestration
    "extract_source",
    "extract_file",
    "extract_directory",
    "extract_to_dict_list",
    "discover_source_files",
]
