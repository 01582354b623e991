"""Core shared configuration, logging and naming utilities."""

from core.naming import (
    SCOPE_SEPARATOR,
    innermost_scope,
    normalize_cpp_entity_name,
    qualify,
    split_qualified_name,
)
from core.structured_logging import (
    configure_structured_logging,
    get_run_id,
    phase_scope,
    set_run_id,
    source_file_scope,
)
from core.doc_config import (
    ConfigValidationError,
    DocConfig,
    LanguageSpec,
    LoggingConfig,
    load_doc_config,
    resolve_strict_config_validation,
    write_default_config,
)
from core.run_artifacts import write_run_report

__all__ = [
    "SCOPE_SEPARATOR",
    "innermost_scope",
    "normalize_cpp_entity_name",
    "qualify",
    "split_qualified_name",
    "configure_structured_logging",
    "get_run_id",
    "phase_scope",
    "set_run_id",
    "source_file_scope",
    "ConfigValidationError",
    "DocConfig",
    "LanguageSpec",
    "LoggingConfig",
    "load_doc_config",
    "resolve_strict_config_validation",
    "write_default_config",
    "write_run_report",
]
