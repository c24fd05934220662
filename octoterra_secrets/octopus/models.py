"""Pydantic models for the destination Octopus Deploy REST API.

Field names follow Python conventions and map to the API's PascalCase keys
through aliases. Unknown keys are kept (``extra="allow"``) so a variable set
read from the server is written back without dropping anything.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from octoterra_secrets import config

# Scope dimensions in the order their first values are appended to unique names
SCOPE_DIMENSIONS = (
    "Environment",
    "Machine",
    "Role",
    "Action",
    "TenantTag",
    "Channel",
    "ProcessOwner",
)


class OctopusResource(BaseModel):
    """Base for API resources: aliased PascalCase keys, extras preserved."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_api(self) -> dict:
        """Return the resource as the JSON body the API expects."""
        return self.model_dump(by_alias=True, mode="json")


class Variable(OctopusResource):
    """A variable inside a variable set.

    The server never returns the value of a sensitive variable, so ``value``
    is None for every sensitive variable that has been read back. Writing a
    sensitive variable back with a None value leaves its stored value alone.
    """

    id: Optional[str] = Field(default=None, alias="Id")
    name: str = Field(..., alias="Name")
    value: Optional[str] = Field(default=None, alias="Value", repr=False)
    description: Optional[str] = Field(default=None, alias="Description")
    type: str = Field(default="String", alias="Type")
    is_sensitive: bool = Field(default=False, alias="IsSensitive")
    scope: dict[str, list[str]] = Field(default_factory=dict, alias="Scope")

    @property
    def is_scoped(self) -> bool:
        """True when any scope dimension holds at least one value."""
        return any(values for values in self.scope.values())

    @property
    def is_secret(self) -> bool:
        return self.is_sensitive and self.type == "Sensitive"


class VariableSet(OctopusResource):
    """The variables owned by a project or library variable set."""

    id: str = Field(..., alias="Id")
    owner_id: Optional[str] = Field(default=None, alias="OwnerId")
    version: Optional[int] = Field(default=None, alias="Version")
    variables: list[Variable] = Field(default_factory=list, alias="Variables")

    def find_by_name(self, name: str) -> list[Variable]:
        return [variable for variable in self.variables if variable.name == name]


class LibraryVariableSet(OctopusResource):
    """A named, space level container for a shared variable set."""

    id: Optional[str] = Field(default=None, alias="Id")
    name: str = Field(..., alias="Name")
    description: Optional[str] = Field(default=None, alias="Description")
    variable_set_id: Optional[str] = Field(default=None, alias="VariableSetId")
    content_type: str = Field(default="Variables", alias="ContentType")


class OctopusConnectionConfig(BaseModel):
    """Connection settings for the destination Octopus server."""

    server: str = Field(
        ...,
        description="Octopus server URL",
        examples=["https://octopus.example.com"],
    )
    api_key: str = Field(
        ...,
        description="API key sent in the X-Octopus-ApiKey header",
        repr=False,
    )
    space_id: str = Field(
        default=config.OCTOPUS_DESTINATION_SPACE,
        description="Space holding the variables",
        examples=["Spaces-1"],
    )
    timeout: int = Field(
        default=config.API_TIMEOUT,
        description="Request timeout in seconds",
        ge=1,
        le=300,
    )
    retries: int = Field(
        default=3,
        description="Attempts per request, the first one included",
        ge=1,
        le=10,
    )
    retry_base_delay: float = Field(
        default=0.5,
        description="Base delay in seconds between attempts",
        gt=0,
    )
    verify: bool = Field(
        default=True,
        description="Verify TLS certificates",
    )

    @field_validator("server")
    @classmethod
    def validate_server(cls, v: str) -> str:
        """Validate server URL format and drop any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Octopus server must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("api_key", "space_id")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()
