"""
High-level orchestrator for C++ construct extraction.

This module provides the main entry points for extracting constructs from
single files or entire directory trees: parse, extract, parse comments,
associate comments with constructs and, for directory runs, merge.
"""

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from tree_sitter import Language

from core.structured_logging import source_file_scope
from extraction.association import associate_docs_with_nodes, attach_docs_to_constructs
from extraction.comments import extract_docstring_blocks
from extraction.config import CPP_EXTENSIONS, DEFAULT_DOCSTRING_STYLE, SKIPPED_DIRECTORIES
from extraction.merger import merge_constructs
from extraction.models import Construct, DocstringBlock
from extraction.parser import CPP_LANGUAGE, LanguageRegistry, LoadedLanguage, count_error_nodes, parse_bytes
from extraction.traversal import extract_constructs_from_tree

logger = logging.getLogger(__name__)


@dataclass
class FileExtractionResult:
    """Everything extracted from one source file."""

    file_path: str
    language: str
    constructs: List[Construct]
    doc_blocks: List[DocstringBlock] = field(default_factory=list)
    parse_error_count: int = 0
    docs_attached: int = 0


class ExtractionStats:
    """Statistics for an extraction operation."""

    def __init__(self):
        self.files_processed = 0
        self.files_skipped = 0
        self.files_failed = 0
        self.constructs_extracted = 0
        self.constructs_merged = 0
        self.merge_conflicts = 0
        self.parse_errors = 0
        self.docs_attached = 0

    def record_file(self, result: FileExtractionResult) -> None:
        self.files_processed += 1
        self.constructs_extracted += len(result.constructs)
        self.parse_errors += result.parse_error_count
        self.docs_attached += result.docs_attached

    def to_dict(self) -> Dict[str, int]:
        """Convert stats to dictionary."""
        return {
            "files_processed": self.files_processed,
            "files_skipped": self.files_skipped,
            "files_failed": self.files_failed,
            "constructs_extracted": self.constructs_extracted,
            "constructs_merged": self.constructs_merged,
            "merge_conflicts": self.merge_conflicts,
            "parse_errors": self.parse_errors,
            "docs_attached": self.docs_attached,
        }

    def summary(self) -> str:
        """One-line human summary."""
        return f"{self.constructs_extracted} constructs extracted, {self.merge_conflicts} merge conflicts"

    def __str__(self) -> str:
        """String representation of stats."""
        return (
            f"ExtractionStats(processed={self.files_processed}, "
            f"skipped={self.files_skipped}, failed={self.files_failed}, "
            f"constructs={self.constructs_extracted}, "
            f"conflicts={self.merge_conflicts}, parse_errors={self.parse_errors})"
        )


def extract_source(
    source_bytes: bytes,
    file_path: str,
    language: Language = CPP_LANGUAGE,
    language_name: str = "cpp",
    docstring_style: str = DEFAULT_DOCSTRING_STYLE,
    log: Optional[logging.Logger] = None,
) -> FileExtractionResult:
    """Extract constructs and documentation from in-memory source.

    Args:
        source_bytes: UTF-8 source.
        file_path: Path recorded on every construct.
        language: Grammar to parse with.
        language_name: Name recorded on the result.
        docstring_style: Comment style to look for.
        log: Logger for extraction diagnostics.

    Returns:
        FileExtractionResult with unmerged constructs.
    """
    log = log or logger
    tree = parse_bytes(source_bytes, language)
    parse_error_count = count_error_nodes(tree)
    if parse_error_count:
        log.warning("File %s contains syntax errors (%d error nodes)", file_path, parse_error_count)

    constructs = extract_constructs_from_tree(tree, source_bytes, file_path, log)
    blocks = extract_docstring_blocks(source_bytes, docstring_style)
    associate_docs_with_nodes(blocks, tree, source_bytes)
    docs_attached = attach_docs_to_constructs(constructs, blocks)

    return FileExtractionResult(
        file_path=file_path,
        language=language_name,
        constructs=constructs,
        doc_blocks=blocks,
        parse_error_count=parse_error_count,
        docs_attached=docs_attached,
    )


def _resolve_language(file_path: str, registry: Optional[LanguageRegistry]) -> Optional[LoadedLanguage]:
    if registry is not None:
        return registry.for_path(file_path)
    if os.path.splitext(file_path)[1].lower() in CPP_EXTENSIONS:
        return LoadedLanguage(
            name="cpp",
            language=CPP_LANGUAGE,
            extensions=tuple(sorted(CPP_EXTENSIONS)),
            docstring_style=DEFAULT_DOCSTRING_STYLE,
            module="tree_sitter_cpp",
        )
    return None


def _relative_path(file_path: str, root: Optional[str]) -> str:
    resolved_root = os.path.dirname(file_path) if root is None else os.path.abspath(root)
    try:
        return os.path.relpath(file_path, resolved_root)
    except ValueError:
        logger.warning(
            "Cannot compute relative path for %s from %s. Using absolute path.",
            file_path,
            resolved_root,
        )
        return file_path


def extract_file(
    file_path: str,
    registry: Optional[LanguageRegistry] = None,
    root: Optional[str] = None,
) -> FileExtractionResult:
    """Extract all constructs from a single source file.

    Args:
        file_path: Absolute or relative path to the file.
        registry: Loaded grammars; without one, C++ files are handled with
            the bundled C++ grammar.
        root: Directory the recorded path is made relative to. Defaults to
            the file's own directory.

    Returns:
        FileExtractionResult with unmerged constructs.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If no grammar handles the file's extension.
        OSError: If the file cannot be read.
    """
    file_path = os.path.abspath(file_path)
    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")

    language = _resolve_language(file_path, registry)
    if language is None:
        raise ValueError(f"No grammar registered for {file_path}")

    relative_path = _relative_path(file_path, root)
    with source_file_scope(relative_path):
        with open(file_path, "rb") as f:
            source_bytes = f.read()

        result = extract_source(
            source_bytes,
            relative_path,
            language=language.language,
            language_name=language.name,
            docstring_style=language.docstring_style,
        )
        logger.info("Extracted %d constructs from %s", len(result.constructs), relative_path)
    return result


def is_excluded(relative_path: str, exclude_patterns: Sequence[str]) -> bool:
    """Match a path against fnmatch-style exclude patterns.

    Patterns are tried against the ``/``-separated relative path (with and
    without a leading ``/``) and the bare file name.
    """
    posix_path = relative_path.replace(os.sep, "/")
    candidates = (posix_path, f"/{posix_path}", os.path.basename(posix_path))
    return any(
        fnmatch.fnmatch(candidate, pattern)
        for pattern in exclude_patterns
        for candidate in candidates
    )


def discover_source_files(
    directory: str,
    extensions: Iterable[str] = CPP_EXTENSIONS,
    exclude_patterns: Sequence[str] = (),
) -> List[str]:
    """Recursively discover source files in a directory.

    Args:
        directory: Root directory to search.
        extensions: File extensions to accept.
        exclude_patterns: fnmatch patterns of paths to leave out.

    Returns:
        Sorted list of absolute paths.
    """
    directory = os.path.abspath(directory)
    wanted = {ext.lower() for ext in extensions}
    found = []

    logger.info(f"Discovering source files in {directory}")

    for root, dirs, files in os.walk(directory):
        # Skip hidden directories and common build/cache directories
        dirs[:] = [d for d in dirs if not d.startswith(".") and d not in SKIPPED_DIRECTORIES]

        for file in files:
            if os.path.splitext(file)[1].lower() not in wanted:
                continue
            path = os.path.join(root, file)
            if exclude_patterns and is_excluded(os.path.relpath(path, directory), exclude_patterns):
                logger.debug(f"Excluded {path}")
                continue
            found.append(path)

    logger.info(f"Found {len(found)} source files")
    return sorted(found)


def extract_files(
    file_paths: Iterable[str],
    registry: Optional[LanguageRegistry] = None,
    root: Optional[str] = None,
    continue_on_error: bool = True,
    stats: Optional[ExtractionStats] = None,
) -> Tuple[List[FileExtractionResult], ExtractionStats]:
    """Extract a batch of files, isolating per-file failures.

    A file that cannot be read or parsed contributes nothing and is counted
    in ``stats.files_failed``.
    """
    stats = stats or ExtractionStats()
    results = []
    for file_path in file_paths:
        try:
            result = extract_file(file_path, registry=registry, root=root)
        except FileNotFoundError as e:
            logger.error(f"File not found: {e}")
            stats.files_failed += 1
            if not continue_on_error:
                raise
            continue
        except ValueError as e:
            logger.error(f"Invalid file: {e}")
            stats.files_failed += 1
            if not continue_on_error:
                raise
            continue
        except Exception as e:
            logger.error(f"Unexpected error processing {file_path}: {e}", exc_info=True)
            stats.files_failed += 1
            if not continue_on_error:
                raise
            continue
        results.append(result)
        stats.record_file(result)
    return results, stats


def extract_directory(
    directory: str,
    registry: Optional[LanguageRegistry] = None,
    exclude_patterns: Sequence[str] = (),
    continue_on_error: bool = True,
) -> Tuple[List[Construct], ExtractionStats]:
    """Extract and merge constructs from all source files under a directory.

    Args:
        directory: Root directory to process; recorded paths are relative to it.
        registry: Loaded grammars (defaults to the bundled C++ grammar).
        exclude_patterns: fnmatch patterns of paths to leave out.
        continue_on_error: If False, raise on the first failing file.

    Returns:
        A tuple of (merged constructs, stats).

    Raises:
        FileNotFoundError: If directory does not exist.

    Example:
        >>> constructs, stats = extract_directory("/path/to/repo/src")
        >>> print(stats.summary())
    """
    directory = os.path.abspath(directory)
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"Directory not found: {directory}")

    extensions = registry.extensions() if registry is not None else CPP_EXTENSIONS
    files = discover_source_files(directory, extensions, exclude_patterns)
    if not files:
        logger.warning(f"No source files found in {directory}")
        return [], ExtractionStats()

    logger.info(f"Processing {len(files)} source files from {directory}")
    results, stats = extract_files(files, registry=registry, root=directory, continue_on_error=continue_on_error)

    raw = [construct for result in results for construct in result.constructs]
    merged = merge_constructs(raw)
    stats.constructs_merged = len(merged.constructs)
    stats.merge_conflicts = merged.conflict_count

    logger.info(f"Extraction complete: {stats}")
    return merged.constructs, stats


def extract_to_dict_list(
    source: str,
    registry: Optional[LanguageRegistry] = None,
) -> List[Dict[str, Any]]:
    """Extract constructs and return them as a list of dictionaries.

    Detects whether the source is a file or directory and returns results
    ready for JSON serialization. Single files are merged too.

    Example:
        >>> records = extract_to_dict_list("src/")
        >>> import json
        >>> json.dump(records, open("constructs.json", "w"), indent=2)
    """
    source = os.path.abspath(source)

    if os.path.isfile(source):
        constructs = merge_constructs(extract_file(source, registry=registry).constructs).constructs
    elif os.path.isdir(source):
        constructs, stats = extract_directory(source, registry=registry)
        logger.info(f"Extraction stats: {stats}")
    else:
        raise FileNotFoundError(f"Source not found: {source}")

    return [construct.to_dict() for construct in constructs]
