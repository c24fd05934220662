"""Pydantic models and enums for sensitive value extraction."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from octoterra_secrets import config


class EntityKind(str, Enum):
    """Closed set of secret bearing entity kinds, one extractor each."""

    VARIABLE_SET = "variable_set"
    ACCOUNT = "account"
    TENANT_VARIABLE = "tenant_variable"
    FEED = "feed"
    CERTIFICATE = "certificate"
    GIT_CREDENTIAL = "git_credential"
    STEP_TEMPLATE = "step_template"
    DEPLOYMENT_PROCESS = "deployment_process"
    TARGET = "target"


# Fixed order in which extractors run and their output is concatenated
EXTRACTION_ORDER: tuple[EntityKind, ...] = (
    EntityKind.VARIABLE_SET,
    EntityKind.ACCOUNT,
    EntityKind.TENANT_VARIABLE,
    EntityKind.FEED,
    EntityKind.CERTIFICATE,
    EntityKind.GIT_CREDENTIAL,
    EntityKind.STEP_TEMPLATE,
    EntityKind.DEPLOYMENT_PROCESS,
    EntityKind.TARGET,
)


class DatabaseConnectionConfig(BaseModel):
    """Connection settings for the source Octopus SQL Server database."""

    server: str = Field(
        ...,
        description="Database server host name or address",
        examples=["192.168.1.1"],
    )
    port: int = Field(
        default=1433,
        description="Database server port",
        ge=1,
        le=65535,
    )
    database: str = Field(
        default="Octopus",
        description="Database name",
    )
    user: str = Field(
        ...,
        description="Database user",
        examples=["SA"],
    )
    password: str = Field(
        ...,
        description="Database password",
        repr=False,
    )
    login_timeout: int = Field(
        default=config.DB_LOGIN_TIMEOUT,
        description="Connection validation timeout in seconds",
        ge=1,
        le=300,
    )
    query_timeout: int = Field(
        default=config.DB_QUERY_TIMEOUT,
        description="Timeout for each table query in seconds",
        ge=1,
        le=3600,
    )
    pool_size: int = Field(
        default=3,
        description="Maximum open (and idle) pooled connections",
        ge=1,
        le=20,
    )

    @field_validator("server", "database", "user")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject blank connection settings."""
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()


@dataclass
class ExtractionOptions:
    """Settings threaded into every extractor.

    Attributes:
        reserved_variable_name: Name of the variable this tool publishes its
            own output under; never extracted as a source secret
        owner_types: Variable set owner types whose variables are extracted
    """

    reserved_variable_name: str = config.SECRETS_VARIABLE_NAME
    owner_types: frozenset = field(
        default_factory=lambda: frozenset({"Project", "LibraryVariableSet"})
    )


@dataclass
class ExtractionResult:
    """Outcome of one extraction run, safe to log."""

    variable_file: str = field(default="", repr=False)
    counts: dict = field(default_factory=dict)
    names: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def summary(self) -> str:
        parts = ", ".join(f"{kind}: {count}" for kind, count in self.counts.items())
        return f"{self.total} sensitive values ({parts})"
