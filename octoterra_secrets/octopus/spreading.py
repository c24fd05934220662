"""Scope spreading for sensitive variables that share a name.

Terraform exports cannot represent several scoped sensitive variables with
the same name, since each needs its own input variable. Spreading splits
every such variable in two:

* the original is renamed to a unique name and unscoped, keeping its secret
  value on the server untouched;
* a new non-sensitive variable takes over the original name and scope, with
  the value ``#{<unique name>}`` so scoped lookups by the old name still
  resolve to the same secret.

The pass is not transactional. It can be run again after a partial failure:
variables already spread are unscoped or no longer sensitive, so they never
match again.
"""

import json
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from octoterra_secrets.exceptions import InvariantViolationError, OperationCancelledError
from octoterra_secrets.octopus.client import OctopusClient
from octoterra_secrets.octopus.models import SCOPE_DIMENSIONS, Variable

logger = logging.getLogger(__name__)


@dataclass
class SpreadResult:
    """Names produced by spreading one variable."""

    variable_set_id: str
    original_id: Optional[str]
    original_name: str
    unique_name: str
    reference_value: str


def find_colliding_variables(variables: list[Variable]) -> "OrderedDict[str, list[Variable]]":
    """Group the scoped sensitive variables whose name is shared.

    A name qualifies when at least one scoped sensitive variable carries it
    and at least one other variable of any kind has the same name. Only the
    scoped sensitive members of a group are returned, in set order.
    """
    counts: dict[str, int] = {}
    for variable in variables:
        counts[variable.name] = counts.get(variable.name, 0) + 1

    groups: "OrderedDict[str, list[Variable]]" = OrderedDict()
    for variable in variables:
        if not (variable.is_secret and variable.is_scoped):
            continue
        if counts[variable.name] < 2:
            continue
        groups.setdefault(variable.name, []).append(variable)
    return groups


def build_unique_name(variable: Variable, used_names: set[str]) -> str:
    """Append the first value of each non-empty scope dimension to the name.

    A numeric suffix ``_1``, ``_2`` ... is added while the result is taken.
    """
    name = variable.name
    for dimension in SCOPE_DIMENSIONS:
        values = variable.scope.get(dimension)
        if values:
            name += f"_{values[0]}"

    candidate = name
    index = 1
    while candidate in used_names:
        candidate = f"{name}_{index}"
        index += 1
    return candidate


def _scope_json(variable: Variable) -> str:
    return json.dumps(variable.scope, sort_keys=True)


class ScopeSpreader:
    """Spreads colliding scoped sensitive variables on the destination server.

    Args:
        client: Destination Octopus client
        cancel_event: Optional event checked before each variable is spread
    """

    def __init__(
        self,
        client: OctopusClient,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.client = client
        self.cancel_event = cancel_event

    def _check_cancelled(self, variable_set_id: str) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise OperationCancelledError(
                "Variable spreading cancelled",
                details={"variable_set_id": variable_set_id},
            )

    def spread_variable_set(self, variable_set_id: str) -> list[SpreadResult]:
        """Spread every colliding scoped sensitive variable in one set.

        Raises:
            InvariantViolationError: If a variable to rename carries a value
            OperationCancelledError: If the cancel event is set
            OctopusApiError: If the server rejects a read or write
        """
        variable_set = self.client.get_variable_set(variable_set_id)
        groups = find_colliding_variables(variable_set.variables)
        if not groups:
            logger.debug(f"No colliding scoped sensitive variables in {variable_set_id}")
            return []

        used_names = {variable.name for variable in variable_set.variables}
        results = []

        for name, variables in groups.items():
            logger.info(f"Spreading {len(variables)} scoped sensitive variables named {name}")
            for variable in variables:
                self._check_cancelled(variable_set_id)
                results.append(self._spread_variable(variable_set_id, variable, used_names))

        return results

    def _spread_variable(
        self,
        variable_set_id: str,
        variable: Variable,
        used_names: set[str],
    ) -> SpreadResult:
        # Secret values are never read back from the server; a value here
        # would be written over the stored secret by the rename below
        if variable.value is not None:
            raise InvariantViolationError(
                f"Sensitive variable {variable.name} ({variable.id}) unexpectedly has a value",
                details={"variable_set_id": variable_set_id, "variable_id": variable.id},
            )

        unique_name = build_unique_name(variable, used_names)
        used_names.add(unique_name)
        original_scope = _scope_json(variable)
        description = variable.description or ""
        reference_value = f"#{{{unique_name}}}"

        reference = variable.model_copy(
            deep=True,
            update={
                "id": None,
                "is_sensitive": False,
                "type": "String",
                "value": reference_value,
                "description": (
                    f"{description}\n\nReplaced variable ID\n\n{variable.id}"
                    f"\n\nOriginal Scope\n\n{original_scope}"
                ),
            },
        )
        logger.info(f"Recreating {variable.name} referencing {reference_value}")
        self.client.add_variable(variable_set_id, reference)

        renamed = variable.model_copy(
            deep=True,
            update={
                "name": unique_name,
                "scope": {},
                "description": (
                    f"{description}\n\nOriginal Name\n\n{variable.name}"
                    f"\n\nOriginal Scope\n\n{original_scope}"
                ),
            },
        )
        logger.info(f"Renaming {variable.name} to {unique_name} and removing scopes")
        self.client.update_variable(variable_set_id, renamed)

        return SpreadResult(
            variable_set_id=variable_set_id,
            original_id=variable.id,
            original_name=variable.name,
            unique_name=unique_name,
            reference_value=reference_value,
        )

    def spread_all(self) -> list[SpreadResult]:
        """Spread the variable set of every library variable set in the space."""
        results = []
        for library_variable_set in self.client.list_library_variable_sets():
            if not library_variable_set.variable_set_id:
                continue
            logger.debug(f"Checking library variable set {library_variable_set.name}")
            results.extend(self.spread_variable_set(library_variable_set.variable_set_id))

        logger.info(f"Spread {len(results)} sensitive variables")
        return results
