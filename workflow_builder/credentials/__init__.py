"""Credential lookup for integration steps."""

from workflow_builder.credentials.resolver import (
    CredentialResolver,
    CredentialSet,
    EnvCredentialResolver,
    HttpCredentialResolver,
    StaticCredentialResolver,
    clean_credentials,
    fetch_credentials,
    get_default_resolver,
    missing_credential_message,
    set_default_resolver,
)

__all__ = [
    "CredentialResolver",
    "CredentialSet",
    "EnvCredentialResolver",
    "HttpCredentialResolver",
    "StaticCredentialResolver",
    "clean_credentials",
    "fetch_credentials",
    "get_default_resolver",
    "missing_credential_message",
    "set_default_resolver",
]
