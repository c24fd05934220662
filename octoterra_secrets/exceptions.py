"""Custom exceptions for sensitive value extraction and variable spreading.

This module defines all custom exceptions raised while reading secrets out of
the source Octopus database, publishing them to the destination server and
spreading scoped sensitive variables.

Exception messages and ``details`` carry identities (entity kinds, record ids,
variable names), never decrypted values or keys.
"""

from typing import Optional


class SecretsMigrationError(Exception):
    """Base exception for all secrets migration errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """Initialize migration error.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return error string representation."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigurationError(SecretsMigrationError):
    """Raised when configuration is missing or invalid."""


class DecryptError(SecretsMigrationError):
    """Base exception for failures decrypting a sensitive value."""


class MalformedSecretError(DecryptError):
    """Raised when an encrypted value is not framed as ``ciphertext|iv``."""

    def __init__(
        self,
        message: str = "Expected two base64 encoded strings separated by a pipe",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)


class EncodingError(DecryptError):
    """Raised when the ciphertext, IV or master key is not valid base64."""

    def __init__(
        self,
        part: str,
        message: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        full_message = message or f"The {part} is not valid base64"
        super().__init__(full_message, details)
        self.part = part


class InvalidIVError(DecryptError):
    """Raised when the IV length does not match the cipher block size."""

    def __init__(
        self,
        length: int,
        message: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        full_message = message or f"IV length must be equal to block size, got {length} bytes"
        super().__init__(full_message, details)
        self.length = length


class InvalidKeyError(DecryptError):
    """Raised when the decoded master key is not a valid AES key size."""

    def __init__(
        self,
        length: int,
        message: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        full_message = message or f"Master key must be 16, 24 or 32 bytes, got {length} bytes"
        super().__init__(full_message, details)
        self.length = length


class UnexpectedShapeError(SecretsMigrationError):
    """Raised when a structurally required JSON field is missing or mistyped."""

    def __init__(
        self,
        entity_kind: str,
        field: str,
        record: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        full_message = message or f"{entity_kind} record {record!r} has an unexpected shape at {field!r}"
        merged = {"entity_kind": entity_kind, "field": field, "record": record}
        merged.update(details or {})
        super().__init__(full_message, merged)
        self.entity_kind = entity_kind
        self.field = field
        self.record = record


class ConnectivityError(SecretsMigrationError):
    """Raised when the source database is unreachable or a query times out."""

    def __init__(
        self,
        message: str = "Failed to connect to the Octopus database",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)


class ExtractionError(SecretsMigrationError):
    """Raised when one entity extractor fails; aborts the whole extraction run."""

    def __init__(
        self,
        entity_kind: str,
        message: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        full_message = message or f"Failed to extract {entity_kind} sensitive values"
        merged = {"entity_kind": entity_kind}
        merged.update(details or {})
        super().__init__(full_message, merged)
        self.entity_kind = entity_kind


class OctopusApiError(SecretsMigrationError):
    """Raised when a call to the destination Octopus API fails."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        merged = dict(details or {})
        if status_code is not None:
            merged["status_code"] = status_code
        super().__init__(message, merged)
        self.status_code = status_code


class PublishConflictError(SecretsMigrationError):
    """Raised when the secrets container or variable cannot be written."""


class InvariantViolationError(SecretsMigrationError):
    """Raised when spreading observes state its safety depends on not existing.

    This is fatal: the spreading pass stops immediately and must not be
    retried automatically.
    """


class OperationCancelledError(SecretsMigrationError):
    """Raised when an external cancellation signal stops a run between steps."""

    def __init__(
        self,
        message: str = "Operation was cancelled",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
