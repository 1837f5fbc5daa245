"""Credential resolution for integration steps.

A step receives its secrets as a plain ``{KEY: value}`` mapping looked up by
an opaque integration reference (``integrationId`` in the step input).

Contract shared by every resolver:
  - no reference         → {} (never fails)
  - lookup fails / empty → {} and a WARNING log line, never an exception
  - no retries; missing credentials are a configuration error, not a
    transient fault
  - every call returns a fresh dict, so a step can never mutate stored
    credentials and concurrent lookups share nothing mutable

Callers detect missing keys themselves and report them with
missing_credential_message().

Resolvers:
  StaticCredentialResolver: in-memory mapping (tests, CLI)
  EnvCredentialResolver   : WORKFLOW_INTEGRATIONS JSON env var
  HttpCredentialResolver  : workflow backend GET /integrations/{ref}/credentials

Configuration via WORKFLOW_INTEGRATIONS environment variable (JSON object):

    WORKFLOW_INTEGRATIONS='{
        "shop-main": {"SHOPIFY_STORE_DOMAIN": "acme.myshopify.com",
                      "SHOPIFY_ACCESS_TOKEN": "shpat_..."},
        "gateway":   {"AI_GATEWAY_API_KEY": "..."}
    }'
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Mapping
from urllib.parse import quote

import httpx

from workflow_builder.client.config import Settings

logger = logging.getLogger("workflow_builder.credentials")

CredentialSet = dict[str, str]


def missing_credential_message(key: str) -> str:
    """User-facing message for a required secret that is not configured."""
    return f"{key} is not configured. Please add it in Project Integrations."


def clean_credentials(raw: Any) -> CredentialSet:
    """Keep only non-empty string values; absent keys stay absent."""
    if not isinstance(raw, Mapping):
        return {}
    return {
        str(k): v
        for k, v in raw.items()
        if isinstance(v, str) and v.strip()
    }


class CredentialResolver(ABC):
    """Look up the secrets for an integration reference."""

    async def resolve(self, ref: str | None = None) -> CredentialSet:
        """Return the credential set for ``ref``; {} when absent or on any failure."""
        if not ref:
            return {}
        try:
            raw = await self._lookup(ref)
        except Exception as e:
            logger.warning("Credential lookup for %r failed: %s", ref, e)
            return {}
        creds = clean_credentials(raw)
        if not creds:
            logger.warning("No credentials stored for integration %r", ref)
        return creds

    @abstractmethod
    async def _lookup(self, ref: str) -> Any:
        """Fetch the raw stored secrets for ``ref``. May raise."""


class StaticCredentialResolver(CredentialResolver):
    """Resolver over an in-memory ``{ref: {KEY: value}}`` mapping."""

    def __init__(self, integrations: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self._integrations: dict[str, CredentialSet] = {
            ref: clean_credentials(creds) for ref, creds in (integrations or {}).items()
        }

    async def _lookup(self, ref: str) -> Any:
        return dict(self._integrations.get(ref, {}))

    @property
    def integration_refs(self) -> list[str]:
        return list(self._integrations)


class EnvCredentialResolver(StaticCredentialResolver):
    """Resolver backed by the WORKFLOW_INTEGRATIONS environment variable."""

    ENV_VAR = "WORKFLOW_INTEGRATIONS"

    @classmethod
    def from_env(cls) -> "EnvCredentialResolver":
        """Build the resolver from WORKFLOW_INTEGRATIONS.

        Raises ValueError if the variable is set but is not a JSON object of
        objects. An unset variable yields an empty resolver.
        """
        raw = os.getenv(cls.ENV_VAR, "").strip()
        if not raw:
            return cls({})
        try:
            specs = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"{cls.ENV_VAR} must be a valid JSON object: {e}") from e
        if not isinstance(specs, dict):
            raise ValueError(f"{cls.ENV_VAR} must be a JSON object keyed by integration id")
        for ref, creds in specs.items():
            if not isinstance(creds, dict):
                raise ValueError(f"{cls.ENV_VAR} entry {ref!r} must be an object of secrets")
        logger.info("EnvCredentialResolver: %d integration(s) configured", len(specs))
        return cls(specs)


class HttpCredentialResolver(CredentialResolver):
    """Resolver that asks the workflow backend for an integration's secrets."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            headers=settings.headers,
            timeout=httpx.Timeout(settings.timeout, connect=10.0),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _lookup(self, ref: str) -> Any:
        # Encode dots too so a ref of "." or ".." is never a path segment
        segment = quote(ref, safe="").replace(".", "%2E")
        r = await self._client.get(f"/integrations/{segment}/credentials")
        r.raise_for_status()
        data = r.json()
        # Backend wraps secrets as {"credentials": {...}} or returns them bare
        if isinstance(data, dict) and isinstance(data.get("credentials"), dict):
            return data["credentials"]
        return data


# ---------------------------------------------------------------------------
# Process-wide default
# ---------------------------------------------------------------------------

_default_resolver: CredentialResolver | None = None


def get_default_resolver() -> CredentialResolver:
    """Resolver used by steps when none is passed; built from env on first use."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = EnvCredentialResolver.from_env()
    return _default_resolver


def set_default_resolver(resolver: CredentialResolver | None) -> None:
    """Install (or with None, reset) the process-wide resolver."""
    global _default_resolver
    _default_resolver = resolver


async def fetch_credentials(
    ref: str | None,
    resolver: CredentialResolver | None = None,
) -> CredentialSet:
    """Resolve ``ref`` through ``resolver`` or the process default."""
    if not ref:
        return {}
    return await (resolver or get_default_resolver()).resolve(ref)
