"""OctopusClient wrapper for the destination Octopus Deploy REST API.

This module provides a small client for the library variable set and
variable endpoints used when publishing and spreading sensitive variables.
Every request is retried on throttling, server errors and connection
failures; anything else fails immediately as an OctopusApiError.
"""

import logging
from typing import Any, Optional

import requests
from requests.exceptions import HTTPError

from octoterra_secrets.exceptions import OctopusApiError
from octoterra_secrets.octopus.models import (
    LibraryVariableSet,
    OctopusConnectionConfig,
    Variable,
    VariableSet,
)
from octoterra_secrets.retry import RetryExhaustedException, with_api_retry

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Octopus-ApiKey"


class OctopusClient:
    """High-level client for Octopus variable operations.

    Single variable operations (add, update, delete) read the whole variable
    set, modify it and write it back, because the API only exposes variables
    as part of their set.

    Example:
        >>> config = OctopusConnectionConfig(
        ...     server="https://octopus.example.com",
        ...     api_key="API-XXXXXXXX",
        ...     space_id="Spaces-1",
        ... )
        >>> client = OctopusClient(config)
        >>> lvs = client.find_library_variable_set("SpaceSensitiveVars")
    """

    def __init__(
        self,
        config: OctopusConnectionConfig,
        session: Optional[requests.Session] = None,
    ):
        """Initialize Octopus client.

        Args:
            config: Connection configuration
            session: Optional requests session (a new one is created if omitted)
        """
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({
            API_KEY_HEADER: config.api_key,
            "Accept": "application/json",
        })
        self._send = with_api_retry(
            max_attempts=config.retries,
            base_delay=config.retry_base_delay,
            max_delay=max(10.0, config.retry_base_delay),
            jitter=config.retry_base_delay,
        )(self._send_once)

    def __repr__(self) -> str:
        return f"OctopusClient(server={self.config.server!r}, space_id={self.config.space_id!r})"

    def _url(self, path: str) -> str:
        return f"{self.config.server}/api/{self.config.space_id}/{path}"

    def _send_once(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        response = self.session.request(
            method,
            url,
            timeout=self.config.timeout,
            verify=self.config.verify,
            **kwargs,
        )
        response.raise_for_status()
        return response

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            OctopusApiError: If the request fails after all retries or with
                a non-retryable status
        """
        logger.debug(f"{method} {path}")
        try:
            response = self._send(method, self._url(path), **kwargs)
        except RetryExhaustedException as e:
            cause = e.last_exception
            status_code = None
            if isinstance(cause, HTTPError) and cause.response is not None:
                status_code = cause.response.status_code
            raise OctopusApiError(
                f"{method} {path} failed: {type(cause).__name__}",
                status_code=status_code,
                details={"attempts": e.attempts},
            ) from cause

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise OctopusApiError(
                f"{method} {path} returned a body that is not JSON",
                status_code=response.status_code,
            ) from e

    # Library variable sets

    def find_library_variable_set(self, name: str) -> Optional[LibraryVariableSet]:
        """Find a library variable set by exact name.

        The API filters on partial names, so results are matched exactly here.
        """
        body = self._request(
            "GET",
            "libraryvariablesets",
            params={"partialName": name, "take": 2147483647},
        )
        for item in (body or {}).get("Items", []):
            if item.get("Name") == name:
                return LibraryVariableSet.model_validate(item)
        return None

    def list_library_variable_sets(self) -> list[LibraryVariableSet]:
        """List every library variable set in the space."""
        body = self._request("GET", "libraryvariablesets/all")
        return [LibraryVariableSet.model_validate(item) for item in body or []]

    def create_library_variable_set(
        self, name: str, description: str = ""
    ) -> LibraryVariableSet:
        """Create a library variable set holding variables."""
        new_set = LibraryVariableSet(name=name, description=description)
        body = self._request(
            "POST",
            "libraryvariablesets",
            json=new_set.to_api(),
        )
        created = LibraryVariableSet.model_validate(body)
        logger.info(f"Created library variable set {created.name} ({created.id})")
        return created

    # Variable sets

    def get_variable_set(self, variable_set_id: str) -> VariableSet:
        body = self._request("GET", f"variables/{variable_set_id}")
        return VariableSet.model_validate(body)

    def update_variable_set(self, variable_set: VariableSet) -> VariableSet:
        """Replace a variable set; the Version field guards against lost updates."""
        body = self._request(
            "PUT",
            f"variables/{variable_set.id}",
            json=variable_set.to_api(),
        )
        return VariableSet.model_validate(body)

    def add_variable(self, variable_set_id: str, variable: Variable) -> VariableSet:
        variable_set = self.get_variable_set(variable_set_id)
        variable_set.variables.append(variable)
        return self.update_variable_set(variable_set)

    def update_variable(self, variable_set_id: str, variable: Variable) -> VariableSet:
        """Replace the variable with the same id.

        Raises:
            OctopusApiError: If no variable in the set has that id
        """
        variable_set = self.get_variable_set(variable_set_id)
        for index, existing in enumerate(variable_set.variables):
            if existing.id == variable.id:
                variable_set.variables[index] = variable
                return self.update_variable_set(variable_set)

        raise OctopusApiError(
            f"Variable {variable.id} not found in variable set {variable_set_id}",
            status_code=404,
        )

    def delete_variable(self, variable_set_id: str, variable_id: str) -> VariableSet:
        variable_set = self.get_variable_set(variable_set_id)
        variable_set.variables = [
            variable for variable in variable_set.variables if variable.id != variable_id
        ]
        return self.update_variable_set(variable_set)
