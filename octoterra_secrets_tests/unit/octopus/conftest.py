"""In-memory stand-in for the destination Octopus server."""

import re

import pytest

from octoterra_secrets.exceptions import OctopusApiError
from octoterra_secrets.octopus.client import OctopusClient
from octoterra_secrets.octopus.models import LibraryVariableSet, Variable, VariableSet

REFERENCE = re.compile(r"^#\{(?P<name>[^}]+)\}$")


class FakeOctopusClient:
    """Behaves like the Octopus API for the calls OctopusClient makes.

    Sensitive values are stored but never returned, and writing a sensitive
    variable back with no value keeps the stored one, as the server does.
    """

    # Single variable operations share the real read-modify-write logic
    add_variable = OctopusClient.add_variable
    update_variable = OctopusClient.update_variable
    delete_variable = OctopusClient.delete_variable

    def __init__(self):
        self.library_variable_sets: dict[str, LibraryVariableSet] = {}
        self.variable_sets: dict[str, VariableSet] = {}
        self.calls: list[tuple] = []
        self._counter = 0

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def add_library_variable_set(self, name: str, variables=()) -> LibraryVariableSet:
        """Test setup helper: create a set holding the given variables."""
        lvs = self.create_library_variable_set(name)
        stored = self.variable_sets[lvs.variable_set_id]
        for variable in variables:
            stored.variables.append(variable.model_copy(update={"id": variable.id or self._next_id("var")}))
        return lvs

    def find_library_variable_set(self, name):
        self.calls.append(("find_library_variable_set", name))
        for lvs in self.library_variable_sets.values():
            if lvs.name == name:
                return lvs.model_copy(deep=True)
        return None

    def list_library_variable_sets(self):
        self.calls.append(("list_library_variable_sets",))
        return [lvs.model_copy(deep=True) for lvs in self.library_variable_sets.values()]

    def create_library_variable_set(self, name, description=""):
        self.calls.append(("create_library_variable_set", name))
        lvs_id = self._next_id("LibraryVariableSets")
        variable_set_id = f"variableset-{lvs_id}"
        lvs = LibraryVariableSet(id=lvs_id, name=name, description=description, variable_set_id=variable_set_id)
        self.library_variable_sets[lvs_id] = lvs
        self.variable_sets[variable_set_id] = VariableSet(id=variable_set_id, owner_id=lvs_id, version=1)
        return lvs.model_copy(deep=True)

    def get_variable_set(self, variable_set_id):
        self.calls.append(("get_variable_set", variable_set_id))
        if variable_set_id not in self.variable_sets:
            raise OctopusApiError(f"GET variables/{variable_set_id} failed: HTTPError", status_code=404)
        copy = self.variable_sets[variable_set_id].model_copy(deep=True)
        for variable in copy.variables:
            if variable.is_sensitive:
                variable.value = None
        return copy

    def update_variable_set(self, variable_set):
        self.calls.append(("update_variable_set", variable_set.id))
        stored = {v.id: v for v in self.variable_sets[variable_set.id].variables}
        variables = []
        for variable in variable_set.variables:
            variable = variable.model_copy(deep=True)
            if variable.id is None:
                variable.id = self._next_id("var")
            elif variable.is_sensitive and variable.value is None and variable.id in stored:
                variable.value = stored[variable.id].value
            variables.append(variable)
        self.variable_sets[variable_set.id] = variable_set.model_copy(
            update={"variables": variables, "version": (variable_set.version or 0) + 1}
        )
        return self.get_variable_set(variable_set.id)

    # Inspection helpers

    def stored_variables(self, variable_set_id) -> list[Variable]:
        """Variables with their real values, as stored server side."""
        return self.variable_sets[variable_set_id].variables

    def resolve(self, variable_set_id, name, environment):
        """Resolve a variable for an environment, following one reference."""
        variables = self.stored_variables(variable_set_id)

        def pick(variable_name, env):
            candidates = [v for v in variables if v.name == variable_name]
            scoped = [v for v in candidates if env in v.scope.get("Environment", [])]
            unscoped = [v for v in candidates if not v.is_scoped]
            chosen = scoped or unscoped
            return chosen[0] if chosen else None

        variable = pick(name, environment)
        if variable is None:
            return None
        match = REFERENCE.match(variable.value or "")
        if match and not variable.is_sensitive:
            target = pick(match.group("name"), environment)
            return target.value if target is not None else None
        return variable.value


@pytest.fixture
def fake_client():
    return FakeOctopusClient()
