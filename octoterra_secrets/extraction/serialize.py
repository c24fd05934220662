"""Terraform variable file (``terraform.tfvars``) serialization."""

import json
import re
from dataclasses import dataclass, field
from typing import Iterable

# JSON short escapes HCL rejects; a real escape follows an even run of backslashes
_JSON_ONLY_ESCAPES = re.compile(r"(?<!\\)((?:\\\\)*)\\([bf])")
_HCL_ESCAPES = {"b": "\\u0008", "f": "\\u000c"}


@dataclass(frozen=True)
class SecretRecord:
    """One decrypted secret, named for the Terraform variable it populates.

    Attributes:
        name: Terraform variable name
        value: Decrypted plaintext (never included in repr)
        entity_kind: Entity kind the secret was read from
        source: Non-sensitive identity of the source record
    """

    name: str
    value: str = field(repr=False)
    entity_kind: str = ""
    source: str = ""


def write_variable_line(name: str, value: str) -> str:
    """Return ``name = "value"\\n``, or an empty string for an empty value.

    The value is escaped as a JSON string. Backspace and form feed come out
    of JSON as ``\\b`` and ``\\f``, which HCL does not accept, so they are
    rewritten as ``\\u0008`` and ``\\u000c``. HCL template sequences are then
    doubled so Terraform reads ``${`` and ``%{`` literally instead of as
    interpolation.
    """
    if value == "":
        return ""
    escaped = json.dumps(value, ensure_ascii=False)
    escaped = _JSON_ONLY_ESCAPES.sub(lambda m: m.group(1) + _HCL_ESCAPES[m.group(2)], escaped)
    escaped = escaped.replace("${", "$${").replace("%{", "%%{")
    return f"{name} = {escaped}\n"


def render_variable_file(records: Iterable[SecretRecord]) -> str:
    """Render secret records as the text of a Terraform variable file."""
    return "".join(write_variable_line(record.name, record.value) for record in records)
