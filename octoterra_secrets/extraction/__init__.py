"""Sensitive value extraction from the Octopus database."""

from .coordinator import ExtractionCoordinator, extract_variables
from .database import create_source_engine, ping_database, validate_database
from .decrypt import decrypt_sensitive_value
from .extractors import EXTRACTORS, ExtractionContext, extract, extract_records
from .models import (
    EXTRACTION_ORDER,
    DatabaseConnectionConfig,
    EntityKind,
    ExtractionOptions,
    ExtractionResult,
)
from .serialize import SecretRecord, render_variable_file, write_variable_line

__all__ = [
    "ExtractionCoordinator",
    "extract_variables",
    "create_source_engine",
    "ping_database",
    "validate_database",
    "decrypt_sensitive_value",
    "EXTRACTORS",
    "ExtractionContext",
    "extract",
    "extract_records",
    "EXTRACTION_ORDER",
    "DatabaseConnectionConfig",
    "EntityKind",
    "ExtractionOptions",
    "ExtractionResult",
    "SecretRecord",
    "render_variable_file",
    "write_variable_line",
]
