"""Documentation generator configuration loading and validation.

Configuration lives in a YAML or JSON file (picked by suffix). Strict mode
raises ``ConfigValidationError`` on any problem; non-strict mode logs a
warning and falls back to defaults so a broken config never blocks a run.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILES = (
    "cxxdoc-config.yaml",
    "cxxdoc-config.yml",
    "cxxdoc-config.json",
)
DEFAULT_EXTRACT_DIRECTORY = ".cxxdoc/"
DEFAULT_OUTPUT_DIRECTORY = "docs/api/"
DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVEL_ENV = "CXXDOC_LOG_LEVEL"


class ConfigValidationError(RuntimeError):
    """Raised when strict configuration validation fails."""


@dataclass(frozen=True)
class LanguageSpec:
    """How to obtain one tree-sitter grammar."""

    name: str
    module: str
    function: str = "language"
    extensions: tuple[str, ...] = ()
    docstring_style: str = "/** */"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = DEFAULT_LOG_LEVEL
    file: str | None = None


@dataclass(frozen=True)
class DocConfig:
    """Resolved generator configuration."""

    languages: tuple[LanguageSpec, ...]
    source_directories: tuple[str, ...] = (".",)
    extract_directory: str = DEFAULT_EXTRACT_DIRECTORY
    output_directory: str = DEFAULT_OUTPUT_DIRECTORY
    exclude_patterns: tuple[str, ...] = ()
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    config_path: str | None = None


def _default_languages() -> tuple[LanguageSpec, ...]:
    return (
        LanguageSpec(
            name="cpp",
            module="tree_sitter_cpp",
            function="language",
            extensions=(".cpp", ".cc", ".cxx", ".c", ".h", ".hpp", ".hxx"),
            docstring_style="/** */",
        ),
    )


def default_config() -> DocConfig:
    return DocConfig(languages=_default_languages())


def default_config_payload() -> dict[str, Any]:
    """Serializable form of the default configuration (for ``init-config``)."""
    config = default_config()
    return {
        "languages": {
            spec.name: {
                "module": spec.module,
                "function": spec.function,
                "extensions": list(spec.extensions),
                "docstring_style": spec.docstring_style,
            }
            for spec in config.languages
        },
        "source_directories": ["src/", "include/"],
        "extract_directory": config.extract_directory,
        "output_directory": config.output_directory,
        "exclude_patterns": ["*/third_party/*", "*/test/*"],
        "logging": {"level": config.logging.level, "file": None},
    }


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def resolve_strict_config_validation(default: bool = False) -> bool:
    """Resolve strict validation mode from ``STRICT_CONFIG_VALIDATION`` env."""
    return _env_flag("STRICT_CONFIG_VALIDATION", default=default)


def _fail(msg: str, strict: bool) -> None:
    if strict:
        raise ConfigValidationError(msg)
    logger.warning("%s; using defaults", msg)


def _string_list(value: Any, key: str, strict: bool) -> tuple[str, ...] | None:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return tuple(value)
    _fail(f"'{key}' must be a string or a list of strings", strict)
    return None


def _parse_languages(raw: Any, strict: bool) -> tuple[LanguageSpec, ...] | None:
    if not isinstance(raw, dict) or not raw:
        _fail("'languages' must be a non-empty mapping", strict)
        return None

    specs: list[LanguageSpec] = []
    for name, entry in raw.items():
        if not isinstance(entry, dict):
            _fail(f"languages.{name} must be a mapping", strict)
            continue
        module = entry.get("module") or f"tree_sitter_{name}"
        extensions = _string_list(entry.get("extensions", []), f"languages.{name}.extensions", strict)
        if extensions is None:
            continue
        specs.append(
            LanguageSpec(
                name=str(name),
                module=str(module),
                function=str(entry.get("function", "language")),
                extensions=tuple(
                    ext if ext.startswith(".") else f".{ext}" for ext in extensions
                ),
                docstring_style=str(entry.get("docstring_style", "/** */")),
            )
        )
    return tuple(specs) or None


def parse_config_payload(
    payload: dict[str, Any],
    strict: bool = False,
    config_path: str | None = None,
) -> DocConfig:
    """Build a ``DocConfig`` from a decoded payload, defaulting missing keys."""
    defaults = default_config()

    languages = defaults.languages
    if "languages" in payload:
        languages = _parse_languages(payload["languages"], strict) or defaults.languages

    source_directories = defaults.source_directories
    if "source_directories" in payload:
        source_directories = (
            _string_list(payload["source_directories"], "source_directories", strict)
            or defaults.source_directories
        )

    exclude_patterns = defaults.exclude_patterns
    if "exclude_patterns" in payload:
        exclude_patterns = (
            _string_list(payload["exclude_patterns"], "exclude_patterns", strict)
            or defaults.exclude_patterns
        )

    extract_directory = payload.get("extract_directory", defaults.extract_directory)
    if not isinstance(extract_directory, str) or not extract_directory:
        _fail("'extract_directory' must be a non-empty string", strict)
        extract_directory = defaults.extract_directory

    output_directory = payload.get("output_directory", defaults.output_directory)
    if not isinstance(output_directory, str) or not output_directory:
        _fail("'output_directory' must be a non-empty string", strict)
        output_directory = defaults.output_directory

    logging_config = defaults.logging
    raw_logging = payload.get("logging")
    if raw_logging is not None:
        if isinstance(raw_logging, dict):
            logging_config = LoggingConfig(
                level=str(raw_logging.get("level", DEFAULT_LOG_LEVEL)).upper(),
                file=raw_logging.get("file") or None,
            )
        else:
            _fail("'logging' must be a mapping", strict)

    env_level = os.getenv(LOG_LEVEL_ENV)
    if env_level:
        logging_config = LoggingConfig(level=env_level.strip().upper(), file=logging_config.file)

    return DocConfig(
        languages=languages,
        source_directories=source_directories,
        extract_directory=extract_directory,
        output_directory=output_directory,
        exclude_patterns=exclude_patterns,
        logging=logging_config,
        config_path=config_path,
    )


def _read_payload(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def find_default_config(directory: str = ".") -> str | None:
    """Return the first default config file present in ``directory``."""
    found = [
        os.path.join(directory, name)
        for name in DEFAULT_CONFIG_FILES
        if os.path.isfile(os.path.join(directory, name))
    ]
    if len(found) > 1:
        logger.warning("Multiple config files found (%s); using %s", ", ".join(found), found[0])
    return found[0] if found else None


def load_doc_config(
    config_path: str | None = None,
    strict: bool | None = None,
) -> DocConfig:
    """Load generator configuration.

    ``config_path`` defaults to the first of ``DEFAULT_CONFIG_FILES`` found in
    the working directory. Without any config file the defaults are used.
    """
    load_dotenv()
    if strict is None:
        strict = resolve_strict_config_validation()

    if config_path is None:
        config_path = find_default_config()
        if config_path is None:
            logger.info("No configuration file found; using defaults")
            return parse_config_payload({}, strict=strict)

    path = Path(config_path)
    try:
        payload = _read_payload(path)
    except FileNotFoundError as exc:
        msg = f"Configuration file not found: {config_path}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return parse_config_payload({}, strict=strict)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        msg = f"Failed to parse configuration at {config_path}: {exc}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return parse_config_payload({}, strict=strict)

    if payload is None:
        _fail(f"Configuration file is empty: {config_path}", strict)
        payload = {}
    elif not isinstance(payload, dict):
        _fail(f"Unexpected configuration payload type: {type(payload).__name__}", strict)
        payload = {}

    logger.info("Loaded configuration from %s", config_path)
    return parse_config_payload(payload, strict=strict, config_path=str(path))


def write_default_config(path: str = DEFAULT_CONFIG_FILES[0], overwrite: bool = False) -> str:
    """Write the default configuration to ``path`` and return it.

    Raises:
        FileExistsError: If the file exists and ``overwrite`` is False.
    """
    target = Path(path)
    if target.exists() and not overwrite:
        raise FileExistsError(f"Configuration file already exists: {path}")

    payload = default_config_payload()
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.suffix.lower() == ".json":
        target.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    else:
        target.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    logger.info("Wrote default configuration to %s", path)
    return str(target)
