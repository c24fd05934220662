"""Deterministic Terraform variable names for extracted sensitive values.

Every name must be identical across repeated runs (the exported Terraform
modules reference them directly) and unique across entity kinds and secret
roles. Opaque ids are hashed; human assigned names are sanitized so the
result stays recognizable.
"""

import hashlib
import json
import re

_INVALID_CHARS = re.compile(r"[^a-z0-9]")
_VALID_START = re.compile(r"^[a-z_]")


def hash_name(identity: str) -> str:
    """Return the SHA-256 hex digest of an opaque id."""
    return hashlib.sha256(identity.encode("utf-8")).hexdigest()


def compound_key(*parts: str) -> str:
    """Serialize several id parts into one unambiguous hash input."""
    return json.dumps(list(parts), separators=(",", ":"))


def sanitize(name: str) -> str:
    """Turn a display name into a valid identifier made of ``[a-z0-9_]``."""
    sanitized = _INVALID_CHARS.sub("_", name.lower())
    if not _VALID_START.match(sanitized):
        sanitized = "_" + sanitized
    return sanitized


def variable_secret_name(identity: str) -> str:
    return "variable_" + hash_name(identity) + "_sensitive_value"


def account_secret_name(name: str) -> str:
    return "account_" + sanitize(name) + "_password"


def account_cert_name(name: str) -> str:
    return "account_" + sanitize(name) + "_cert"


def tenant_variable_secret_name(identity: str) -> str:
    return "tenantvariable_" + hash_name(identity) + "_sensitive_value"


def certificate_data_name(name: str) -> str:
    return "certificate_" + sanitize(name) + "_data"


def certificate_password_name(name: str) -> str:
    return "certificate_" + sanitize(name) + "_password"


def feed_secret_name(name: str) -> str:
    return "feed_" + sanitize(name) + "_password"


def feed_secret_key_name(name: str) -> str:
    return "feed_" + sanitize(name) + "_secretkey"


def git_credential_secret_name(identity: str) -> str:
    return "gitcredential_" + hash_name(identity) + "_sensitive_value"


def step_template_parameter_secret_name(template_id: str, parameter_id: str) -> str:
    # The whole key is hashed: parameter ids repeat across templates
    return "steptemplate_" + hash_name(compound_key(template_id, parameter_id)) + "_sensitive_value"


def step_property_secret_name(owner_id: str, action_id: str, property_name: str) -> str:
    return "action_" + hash_name(compound_key(owner_id, action_id, property_name)) + "_sensitive_value"


def machine_secret_name(name: str) -> str:
    return "target_" + sanitize(name) + "_sensitive_value"


def machine_proxy_password_name(name: str) -> str:
    return "proxy_" + sanitize(name) + "_password"
