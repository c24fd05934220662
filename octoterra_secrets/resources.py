from typing import Optional
import threading

from dagster import ConfigurableResource
from pydantic import Field

from .config import SECRETS_LIBRARY_VARIABLE_SET_NAME, SECRETS_VARIABLE_NAME
from .extraction import (
    DatabaseConnectionConfig,
    ExtractionOptions,
    ExtractionResult,
    extract_variables,
)
from .octopus import (
    OctopusClient,
    OctopusConnectionConfig,
    ScopeSpreader,
    SecretsPublisher,
)


class SourceDatabaseResource(ConfigurableResource):
    """Source Octopus SQL Server database plus the master key to decrypt it"""
    server: str = Field(description="Database server host name or address.")
    port: int = Field(default=1433, description="Database server port.")
    database: str = Field(default="Octopus", description="Database name.")
    user: str = Field(description="Database user.")
    password: str = Field(description="Database password.")
    master_key: str = Field(description="Base64 master key of the source Octopus server.")
    reserved_variable_name: str = Field(
        default=SECRETS_VARIABLE_NAME,
        description="Variable holding this tool's own output; never extracted."
    )

    def get_connection_config(self) -> DatabaseConnectionConfig:
        return DatabaseConnectionConfig(
            server=self.server,
            port=self.port,
            database=self.database,
            user=self.user,
            password=self.password,
        )

    def extract(self, cancel_event: Optional[threading.Event] = None) -> ExtractionResult:
        return extract_variables(
            self.get_connection_config(),
            self.master_key,
            options=ExtractionOptions(reserved_variable_name=self.reserved_variable_name),
            cancel_event=cancel_event,
        )


class OctopusServerResource(ConfigurableResource):
    """Destination Octopus server"""
    server: str = Field(description="Octopus server URL (e.g., 'https://octopus.example.com').")
    api_key: str = Field(description="Octopus API key.")
    space_id: str = Field(default="Spaces-1", description="Destination space ID.")
    verify: bool = Field(default=True, description="Verify TLS certificates.")
    container_name: str = Field(
        default=SECRETS_LIBRARY_VARIABLE_SET_NAME,
        description="Library variable set receiving the extracted values."
    )
    variable_name: str = Field(
        default=SECRETS_VARIABLE_NAME,
        description="Sensitive variable holding the Terraform variable file."
    )

    def get_client(self) -> OctopusClient:
        return OctopusClient(
            OctopusConnectionConfig(
                server=self.server,
                api_key=self.api_key,
                space_id=self.space_id,
                verify=self.verify,
            )
        )

    def get_publisher(self) -> SecretsPublisher:
        return SecretsPublisher(
            self.get_client(),
            container_name=self.container_name,
            variable_name=self.variable_name,
        )

    def get_spreader(self) -> ScopeSpreader:
        return ScopeSpreader(self.get_client())
