from .secrets import (
    extract_secrets_job,
    extract_sensitive_values,
    publish_sensitive_values,
    spread_sensitive_variables,
    spread_variables_job,
)

__all__ = [
    "extract_secrets_job",
    "extract_sensitive_values",
    "publish_sensitive_values",
    "spread_sensitive_variables",
    "spread_variables_job",
]
