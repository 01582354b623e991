"""
Tree-sitter parser initialization, grammar registry and file parsing utilities.

Grammars are Python packages (``tree_sitter_cpp`` and friends) exposing a
function that returns the language pointer. The registry imports them by name
from configuration, so the extractor only ever sees ``Language`` objects.
"""

import importlib
import logging
import os
import pkgutil
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import tree_sitter_cpp as tscpp
from tree_sitter import Language, Parser, Tree

from core.doc_config import LanguageSpec

logger = logging.getLogger(__name__)

# Module-level language constant
CPP_LANGUAGE = Language(tscpp.language())

GRAMMAR_MODULE_PREFIX = "tree_sitter_"


def create_parser(language: Language = CPP_LANGUAGE) -> Parser:
    """Create a tree-sitter parser for a language.

    Args:
        language: Grammar to parse with. Defaults to C++.

    Returns:
        A configured Parser instance.

    Example:
        >>> parser = create_parser()
        >>> tree = parser.parse(b"int main() { return 0; }")
    """
    parser = Parser(language)
    logger.debug("Created tree-sitter parser")
    return parser


def parse_bytes(source: bytes, language: Language = CPP_LANGUAGE) -> Tree:
    """Parse raw bytes of source code.

    Args:
        source: UTF-8 encoded source bytes.
        language: Grammar to parse with. Defaults to C++.

    Returns:
        A Tree object representing the parsed AST.

    Raises:
        TypeError: If source is not bytes.

    Example:
        >>> tree = parse_bytes(b"void foo() {}")
        >>> tree.root_node.type
        'translation_unit'
    """
    if not isinstance(source, bytes):
        raise TypeError(f"Source must be bytes, got {type(source).__name__}")

    tree = create_parser(language).parse(source)

    if tree.root_node.has_error:
        logger.warning("Parsed tree contains syntax errors")

    logger.debug(f"Parsed {len(source)} bytes of source code")
    return tree


def parse_file(file_path: str, language: Language = CPP_LANGUAGE) -> Tuple[Tree, bytes]:
    """Parse a source file from disk.

    Args:
        file_path: Path to the source file.
        language: Grammar to parse with. Defaults to C++.

    Returns:
        A tuple of (Tree, source_bytes).

    Raises:
        FileNotFoundError: If the file does not exist.
        OSError: If the file cannot be read.
    """
    try:
        with open(file_path, "rb") as f:
            source_bytes = f.read()
    except FileNotFoundError:
        logger.error(f"File not found: {file_path}")
        raise
    except OSError as e:
        logger.error(f"Error reading file {file_path}: {e}")
        raise

    tree = parse_bytes(source_bytes, language)
    logger.debug(f"Parsed file: {file_path}")
    return tree, source_bytes


def count_error_nodes(tree: Tree) -> int:
    """Count ERROR and MISSING nodes in a parsed tree.

    Args:
        tree: Parsed tree.

    Returns:
        Number of nodes the parser had to invent or could not match.
    """
    if not tree.root_node.has_error:
        return 0

    count = 0
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            count += 1
        if node.has_error:
            stack.extend(node.children)
    return count


@dataclass
class LoadedLanguage:
    """A grammar loaded from its plugin module, ready to parse."""

    name: str
    language: Language
    extensions: Tuple[str, ...]
    docstring_style: str
    module: str

    def parse(self, source: bytes) -> Tree:
        return parse_bytes(source, self.language)


def load_language(spec: LanguageSpec) -> LoadedLanguage:
    """Import a grammar module and build its Language.

    Args:
        spec: Grammar description from configuration.

    Returns:
        The loaded language.

    Raises:
        ImportError: If the grammar module is not installed.
        AttributeError: If the module lacks the configured entry function.
    """
    module = importlib.import_module(spec.module)
    entry = getattr(module, spec.function)
    language = Language(entry())
    logger.info("Loaded grammar '%s' from %s.%s", spec.name, spec.module, spec.function)
    return LoadedLanguage(
        name=spec.name,
        language=language,
        extensions=tuple(ext.lower() for ext in spec.extensions),
        docstring_style=spec.docstring_style,
        module=spec.module,
    )


class LanguageRegistry:
    """Maps language names to loaded grammars for the lifetime of a run."""

    def __init__(self) -> None:
        self._languages: Dict[str, LoadedLanguage] = {}

    def register(self, loaded: LoadedLanguage) -> None:
        if loaded.name in self._languages:
            logger.warning("Replacing previously registered language '%s'", loaded.name)
        self._languages[loaded.name] = loaded

    def load_from_specs(self, specs: Iterable[LanguageSpec]) -> List[str]:
        """Load every configured grammar, skipping those that fail.

        Returns:
            Names of the languages that loaded.
        """
        loaded_names = []
        for spec in specs:
            try:
                self.register(load_language(spec))
            except (ImportError, AttributeError, TypeError, ValueError) as e:
                logger.error("Failed to load grammar '%s' from %s: %s", spec.name, spec.module, e)
                continue
            loaded_names.append(spec.name)
        return loaded_names

    def get(self, name: str) -> LoadedLanguage:
        try:
            return self._languages[name]
        except KeyError:
            raise KeyError(f"Language not registered: {name}") from None

    def names(self) -> List[str]:
        return list(self._languages)

    def for_path(self, file_path: str) -> Optional[LoadedLanguage]:
        """Find the grammar responsible for a file by its extension."""
        ext = os.path.splitext(file_path)[1].lower()
        for loaded in self._languages.values():
            if ext in loaded.extensions:
                return loaded
        return None

    def extensions(self) -> List[str]:
        seen = []
        for loaded in self._languages.values():
            for ext in loaded.extensions:
                if ext not in seen:
                    seen.append(ext)
        return seen

    def parse(self, name: str, source: bytes) -> Tree:
        return self.get(name).parse(source)

    def __contains__(self, name: object) -> bool:
        return name in self._languages

    def __len__(self) -> int:
        return len(self._languages)


def discover_installed_grammars() -> List[str]:
    """List importable ``tree_sitter_<lang>`` grammar modules."""
    found = set()
    for module_info in pkgutil.iter_modules():
        if module_info.name.startswith(GRAMMAR_MODULE_PREFIX):
            found.add(module_info.name)
    return sorted(found)
