"""Extractors reading sensitive values out of the Octopus database.

There is exactly one extractor per :class:`EntityKind`, registered in
:data:`EXTRACTORS`. Each reads its table(s), walks the JSON blob stored for
every row, decrypts the sensitive fields it finds and yields them as named
:class:`SecretRecord` objects.

Optional fields that are missing mean "this record holds no secret" and are
skipped; a secret field of the wrong type is skipped with a warning. Fields
every record of a kind is known to carry are required, and their absence
aborts the run with an UnexpectedShapeError.
"""

import json
import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from sqlalchemy.engine import Connection

from octoterra_secrets.exceptions import DecryptError, ExtractionError, UnexpectedShapeError
from octoterra_secrets.extraction import naming
from octoterra_secrets.extraction.database import fetch_rows
from octoterra_secrets.extraction.decrypt import decrypt_sensitive_value
from octoterra_secrets.extraction.lookup import lookup_dict, lookup_list, lookup_str
from octoterra_secrets.extraction.models import EntityKind, ExtractionOptions
from octoterra_secrets.extraction.serialize import SecretRecord, render_variable_file

logger = logging.getLogger(__name__)

VARIABLE_SET_QUERY = "SELECT Id, JSON, IsFrozen, OwnerType FROM VariableSet"
ACCOUNT_QUERY = "SELECT Name, JSON FROM Account"
TENANT_VARIABLE_QUERY = "SELECT Id, JSON FROM TenantVariable"
CERTIFICATE_QUERY = "SELECT Name, JSON FROM Certificate"
FEED_QUERY = "SELECT Name, JSON FROM Feed"
GIT_CREDENTIAL_QUERY = "SELECT Id, JSON FROM GitCredential"
ACTION_TEMPLATE_QUERY = "SELECT JSON FROM ActionTemplate"
DEPLOYMENT_PROCESS_QUERY = "SELECT OwnerId, JSON FROM DeploymentProcess"
MACHINE_QUERY = "SELECT Name, JSON FROM Machine"
PROXY_QUERY = "SELECT Name, JSON FROM Proxy"

# Account fields holding the primary secret, in order of precedence
ACCOUNT_SECRET_FIELDS = ("Password", "SecretKey", "JsonKey")


@dataclass
class ExtractionContext:
    """Everything an extractor needs for one run."""

    connection: Connection
    master_key: str
    options: ExtractionOptions


Extractor = Callable[[ExtractionContext], Iterator[SecretRecord]]


def _load_json(raw: Optional[str], kind: EntityKind, record: Optional[str]) -> dict:
    """Parse a row's JSON column, which must hold an object."""
    try:
        parsed = json.loads(raw) if raw is not None else None
    except (TypeError, ValueError) as e:
        raise UnexpectedShapeError(
            kind.value,
            "JSON",
            record=record,
            message=f"{kind.value} record {record!r} does not contain valid JSON",
        ) from e

    if not isinstance(parsed, dict):
        raise UnexpectedShapeError(
            kind.value,
            "JSON",
            record=record,
            message=f"{kind.value} record {record!r} JSON is not an object",
        )
    return parsed


def _secret(
    context: ExtractionContext,
    kind: EntityKind,
    name: str,
    encrypted: str,
    source: Optional[str],
) -> SecretRecord:
    """Decrypt one value into a named record."""
    try:
        value = decrypt_sensitive_value(context.master_key, encrypted)
    except DecryptError as e:
        raise ExtractionError(
            kind.value,
            message=f"Failed to decrypt {kind.value} value for {source!r}: {e.message}",
            details={"record": source, "variable": name},
        ) from e
    return SecretRecord(name=name, value=value, entity_kind=kind.value, source=source or "")


def extract_variable_set_secrets(context: ExtractionContext) -> Iterator[SecretRecord]:
    """Sensitive variables of project and library variable sets."""
    kind = EntityKind.VARIABLE_SET
    rows = fetch_rows(context.connection, VARIABLE_SET_QUERY, "VariableSet")

    for row_id, raw_json, is_frozen, owner_type in rows:
        # Frozen sets are snapshots taken by releases, not live configuration
        if is_frozen:
            continue

        if owner_type not in context.options.owner_types:
            continue

        result = _load_json(raw_json, kind, row_id)

        for variable in lookup_list(result, "Variables").or_none() or []:
            if not isinstance(variable, dict):
                continue

            # Skip the variable holding this tool's own previous output
            if lookup_str(variable, "Name").or_none() == context.options.reserved_variable_name:
                continue

            if lookup_str(variable, "Type").or_none() != "Sensitive":
                continue

            encrypted = lookup_str(variable, "Value").or_skip(kind.value, row_id)
            if encrypted is None:
                continue

            variable_id = lookup_str(variable, "Id").require(kind.value, record=row_id)

            yield _secret(
                context, kind, naming.variable_secret_name(variable_id), encrypted, variable_id
            )


def extract_account_secrets(context: ExtractionContext) -> Iterator[SecretRecord]:
    """Account passwords, keys and tokens, plus SSH private key files."""
    kind = EntityKind.ACCOUNT
    rows = fetch_rows(context.connection, ACCOUNT_QUERY, "Account")

    for name, raw_json in rows:
        result = _load_json(raw_json, kind, name)

        # Each account type stores different secrets
        primary = None
        for field_name in ACCOUNT_SECRET_FIELDS:
            primary = lookup_str(result, field_name).or_skip(kind.value, name)
            if primary is not None:
                break

        passphrase = lookup_str(result, "PrivateKeyPassphrase").or_skip(kind.value, name)
        key_file = lookup_str(result, "PrivateKeyFile").or_skip(kind.value, name)
        cert = None

        if primary is None and passphrase is not None and key_file is not None:
            primary, cert = passphrase, key_file

        if primary is None:
            primary = lookup_str(result, "Token").or_skip(kind.value, name)

        if primary is None:
            continue

        yield _secret(context, kind, naming.account_secret_name(name), primary, name)

        if cert is not None:
            yield _secret(context, kind, naming.account_cert_name(name), cert, name)


def extract_tenant_variable_secrets(context: ExtractionContext) -> Iterator[SecretRecord]:
    """Sensitive tenant variable values."""
    kind = EntityKind.TENANT_VARIABLE
    rows = fetch_rows(context.connection, TENANT_VARIABLE_QUERY, "TenantVariable")

    for row_id, raw_json in rows:
        result = _load_json(raw_json, kind, row_id)
        value = lookup_dict(result, "Value").require(kind.value, record=row_id)

        encrypted = lookup_str(value, "SensitiveValue").or_skip(kind.value, row_id)
        if encrypted is None:
            continue

        yield _secret(
            context, kind, naming.tenant_variable_secret_name(row_id), encrypted, row_id
        )


def extract_feed_secrets(context: ExtractionContext) -> Iterator[SecretRecord]:
    """Package feed credentials.

    A feed yields at most one secret: its password, or failing that the
    secret key used by AWS ECR and S3 feeds.
    """
    kind = EntityKind.FEED
    rows = fetch_rows(context.connection, FEED_QUERY, "Feed")

    for name, raw_json in rows:
        result = _load_json(raw_json, kind, name)

        password = lookup_str(result, "Password").or_skip(kind.value, name)
        if password is not None:
            yield _secret(context, kind, naming.feed_secret_name(name), password, name)
            continue

        secret_key = lookup_str(result, "SecretKey").or_skip(kind.value, name)
        if secret_key is not None:
            yield _secret(context, kind, naming.feed_secret_key_name(name), secret_key, name)


def extract_certificate_secrets(context: ExtractionContext) -> Iterator[SecretRecord]:
    """Certificate data and optional certificate passwords."""
    kind = EntityKind.CERTIFICATE
    rows = fetch_rows(context.connection, CERTIFICATE_QUERY, "Certificate")

    for name, raw_json in rows:
        result = _load_json(raw_json, kind, name)
        certificate = lookup_str(result, "CertificateData").require(kind.value, record=name)

        yield _secret(context, kind, naming.certificate_data_name(name), certificate, name)

        password = lookup_str(result, "Password").or_skip(kind.value, name)
        if password is not None:
            yield _secret(context, kind, naming.certificate_password_name(name), password, name)


def extract_git_credential_secrets(context: ExtractionContext) -> Iterator[SecretRecord]:
    """Git credential passwords."""
    kind = EntityKind.GIT_CREDENTIAL
    rows = fetch_rows(context.connection, GIT_CREDENTIAL_QUERY, "GitCredential")

    for row_id, raw_json in rows:
        result = _load_json(raw_json, kind, row_id)
        details = lookup_dict(result, "details").require(kind.value, record=row_id)

        password = lookup_str(details, "Password").or_skip(kind.value, row_id)
        if password is None:
            continue

        yield _secret(
            context, kind, naming.git_credential_secret_name(row_id), password, row_id
        )


def extract_step_template_secrets(context: ExtractionContext) -> Iterator[SecretRecord]:
    """Sensitive default values of step template parameters."""
    kind = EntityKind.STEP_TEMPLATE
    rows = fetch_rows(context.connection, ACTION_TEMPLATE_QUERY, "ActionTemplate")

    for (raw_json,) in rows:
        result = _load_json(raw_json, kind, None)
        template_id = lookup_str(result, "ImmutableId").or_none()

        for parameter in lookup_list(result, "Parameters").or_none() or []:
            default_value = lookup_dict(parameter, "DefaultValue").or_none()
            encrypted = lookup_str(default_value, "SensitiveValue").or_skip(
                kind.value, template_id
            )
            if encrypted is None:
                continue

            parameter_id = lookup_str(parameter, "Id").or_none()
            if template_id is None or parameter_id is None:
                continue

            yield _secret(
                context,
                kind,
                naming.step_template_parameter_secret_name(template_id, parameter_id),
                encrypted,
                f"{template_id}/{parameter_id}",
            )


def extract_deployment_process_secrets(context: ExtractionContext) -> Iterator[SecretRecord]:
    """Sensitive properties of deployment process step actions."""
    kind = EntityKind.DEPLOYMENT_PROCESS
    rows = fetch_rows(context.connection, DEPLOYMENT_PROCESS_QUERY, "DeploymentProcess")

    for owner_id, raw_json in rows:
        result = _load_json(raw_json, kind, owner_id)

        for step in lookup_list(result, "Steps").or_none() or []:
            for action in lookup_list(step, "Actions").or_none() or []:
                properties = lookup_dict(action, "Properties").or_none()
                if properties is None:
                    continue

                action_id = lookup_str(action, "Id").or_none()
                if action_id is None:
                    continue

                # Plain properties are strings; sensitive ones are objects
                for property_name, property_value in properties.items():
                    encrypted = lookup_str(property_value, "SensitiveValue").or_skip(
                        kind.value, owner_id
                    )
                    if encrypted is None:
                        continue

                    yield _secret(
                        context,
                        kind,
                        naming.step_property_secret_name(owner_id, action_id, property_name),
                        encrypted,
                        f"{owner_id}/{action_id}/{property_name}",
                    )


def extract_target_secrets(context: ExtractionContext) -> Iterator[SecretRecord]:
    """Deployment target encryption passwords and machine proxy passwords."""
    kind = EntityKind.TARGET
    rows = fetch_rows(context.connection, MACHINE_QUERY, "Machine")

    for name, raw_json in rows:
        result = _load_json(raw_json, kind, name)
        endpoint = lookup_dict(result, "Endpoint").require(kind.value, record=name)

        encrypted = lookup_str(endpoint, "SensitiveVariablesEncryptionPassword").or_skip(
            kind.value, name
        )
        if encrypted is None:
            continue

        yield _secret(context, kind, naming.machine_secret_name(name), encrypted, name)

    rows = fetch_rows(context.connection, PROXY_QUERY, "Proxy")

    for name, raw_json in rows:
        result = _load_json(raw_json, kind, name)

        password = lookup_str(result, "Password").or_skip(kind.value, name)
        if password is None:
            continue

        yield _secret(context, kind, naming.machine_proxy_password_name(name), password, name)


EXTRACTORS: dict[EntityKind, Extractor] = {
    EntityKind.VARIABLE_SET: extract_variable_set_secrets,
    EntityKind.ACCOUNT: extract_account_secrets,
    EntityKind.TENANT_VARIABLE: extract_tenant_variable_secrets,
    EntityKind.FEED: extract_feed_secrets,
    EntityKind.CERTIFICATE: extract_certificate_secrets,
    EntityKind.GIT_CREDENTIAL: extract_git_credential_secrets,
    EntityKind.STEP_TEMPLATE: extract_step_template_secrets,
    EntityKind.DEPLOYMENT_PROCESS: extract_deployment_process_secrets,
    EntityKind.TARGET: extract_target_secrets,
}


def extract_records(kind: EntityKind, context: ExtractionContext) -> list[SecretRecord]:
    """Run the extractor for one entity kind, dropping empty values."""
    records = [record for record in EXTRACTORS[kind](context) if record.value != ""]
    logger.info(f"Extracted {len(records)} {kind.value} sensitive values")
    return records


def extract(kind: EntityKind, context: ExtractionContext) -> str:
    """Run one extractor and return its Terraform variable file text."""
    return render_variable_file(extract_records(kind, context))
