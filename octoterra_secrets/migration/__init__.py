"""Command line orchestration of the secrets migration."""

from .migrate import (
    MigrationConfig,
    MigrationOrchestrator,
    MigrationPhase,
    MigrationResult,
    main,
)

__all__ = [
    "MigrationConfig",
    "MigrationOrchestrator",
    "MigrationPhase",
    "MigrationResult",
    "main",
]
