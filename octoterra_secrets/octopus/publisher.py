"""Publishes the extracted variable file as one sensitive Octopus variable."""

import logging

from octoterra_secrets import config
from octoterra_secrets.exceptions import OctopusApiError, PublishConflictError
from octoterra_secrets.octopus.client import OctopusClient
from octoterra_secrets.octopus.models import LibraryVariableSet, Variable, VariableSet

logger = logging.getLogger(__name__)

CONTAINER_DESCRIPTION = (
    "Sensitive values extracted from the source Octopus database, "
    "in Terraform variable file format."
)


class SecretsPublisher:
    """Stores the payload in a well-known library variable set.

    Publishing is idempotent: every earlier copy of the reserved variable is
    deleted before the new one is added, so the container holds at most one.

    Args:
        client: Destination Octopus client
        container_name: Name of the library variable set to publish into
        variable_name: Name of the sensitive variable holding the payload
    """

    def __init__(
        self,
        client: OctopusClient,
        container_name: str = config.SECRETS_LIBRARY_VARIABLE_SET_NAME,
        variable_name: str = config.SECRETS_VARIABLE_NAME,
    ):
        self.client = client
        self.container_name = container_name
        self.variable_name = variable_name

    def find_or_create_container(self) -> LibraryVariableSet:
        container = self.client.find_library_variable_set(self.container_name)
        if container is not None:
            logger.debug(f"Reusing library variable set {container.name} ({container.id})")
            return container
        return self.client.create_library_variable_set(
            self.container_name, description=CONTAINER_DESCRIPTION
        )

    def publish(self, payload: str) -> VariableSet:
        """Replace the reserved variable with one holding ``payload``.

        Returns:
            The container's variable set after the new variable was added

        Raises:
            PublishConflictError: If any container or variable operation fails
        """
        try:
            container = self.find_or_create_container()
            variable_set = self.client.get_variable_set(container.variable_set_id)

            for existing in variable_set.find_by_name(self.variable_name):
                logger.info(f"Deleting previous {self.variable_name} ({existing.id})")
                self.client.delete_variable(container.variable_set_id, existing.id)

            variable = Variable(
                name=self.variable_name,
                value=payload,
                type="Sensitive",
                is_sensitive=True,
            )
            updated = self.client.add_variable(container.variable_set_id, variable)
        except OctopusApiError as e:
            raise PublishConflictError(
                f"Failed to publish {self.variable_name} to {self.container_name}: {e.message}",
                details={
                    "container": self.container_name,
                    "variable": self.variable_name,
                    **e.details,
                },
            ) from e

        logger.info(f"Published {self.variable_name} to library variable set {self.container_name}")
        return updated
