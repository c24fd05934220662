"""Destination Octopus server: API client, secrets publishing and scope spreading."""

from .client import OctopusClient
from .models import (
    SCOPE_DIMENSIONS,
    LibraryVariableSet,
    OctopusConnectionConfig,
    Variable,
    VariableSet,
)
from .publisher import SecretsPublisher
from .spreading import ScopeSpreader, SpreadResult, build_unique_name, find_colliding_variables

__all__ = [
    "OctopusClient",
    "SCOPE_DIMENSIONS",
    "LibraryVariableSet",
    "OctopusConnectionConfig",
    "Variable",
    "VariableSet",
    "SecretsPublisher",
    "ScopeSpreader",
    "SpreadResult",
    "build_unique_name",
    "find_colliding_variables",
]
