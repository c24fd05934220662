"""Typed field lookups over the schemaless JSON stored in Octopus tables.

A lookup never raises on its own. It reports whether the field was present
with the expected type, absent (missing key or JSON null) or present with
another type, so each extractor decides explicitly which outcome means
"nothing to extract" and which means corrupted source data.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, Type, TypeVar

from octoterra_secrets.exceptions import UnexpectedShapeError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FieldState(str, Enum):
    """Outcome of looking up one JSON field."""

    PRESENT = "present"
    ABSENT = "absent"
    WRONG_TYPE = "wrong_type"


@dataclass(frozen=True)
class FieldLookup(Generic[T]):
    """Result of a typed lookup; ``value`` is only set when PRESENT."""

    key: str
    state: FieldState
    value: Optional[T] = None

    @property
    def present(self) -> bool:
        return self.state is FieldState.PRESENT

    def or_none(self) -> Optional[T]:
        """Return the value, treating absent and mistyped fields alike."""
        return self.value if self.present else None

    def or_skip(self, entity_kind: str, record: Optional[str] = None) -> Optional[T]:
        """Return the value of an optional field, warning when it is mistyped.

        Only the field name and record identity are logged, never the value.
        """
        if self.state is FieldState.WRONG_TYPE:
            logger.warning(
                f"{entity_kind} record {record!r}: ignoring field {self.key!r} "
                "with unexpected type"
            )
        return self.or_none()

    def require(self, entity_kind: str, record: Optional[str] = None) -> T:
        """Return the value or fail for a structurally required field.

        Raises:
            UnexpectedShapeError: If the field is absent or has the wrong type
        """
        if not self.present:
            raise UnexpectedShapeError(
                entity_kind,
                self.key,
                record=record,
                message=(
                    f"{entity_kind} record {record!r}: required field "
                    f"{self.key!r} is {self.state.value.replace('_', ' ')}"
                ),
            )
        return self.value


def lookup(container: Any, key: str, expected_type: Type[T]) -> FieldLookup[T]:
    """Look up ``key`` in a JSON object and check the value's type.

    A container that is not a dict behaves as if the key were absent.
    """
    if not isinstance(container, dict) or container.get(key) is None:
        return FieldLookup(key, FieldState.ABSENT)

    value = container[key]
    # bool is an int subclass; JSON booleans never satisfy other types here
    if not isinstance(value, expected_type) or (
        isinstance(value, bool) and expected_type is not bool
    ):
        return FieldLookup(key, FieldState.WRONG_TYPE)

    return FieldLookup(key, FieldState.PRESENT, value)


def lookup_str(container: Any, key: str) -> FieldLookup[str]:
    return lookup(container, key, str)


def lookup_dict(container: Any, key: str) -> FieldLookup[dict]:
    return lookup(container, key, dict)


def lookup_list(container: Any, key: str) -> FieldLookup[list]:
    return lookup(container, key, list)
