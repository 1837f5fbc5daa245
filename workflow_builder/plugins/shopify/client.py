"""Shopify Admin REST API access shared by all Shopify steps."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from workflow_builder.settings import IntegrationSettings, get_settings
from workflow_builder.steps.handler import StepResult
from workflow_builder.util.errors import error_body_message
from workflow_builder.util.http import normalize_store_domain

logger = logging.getLogger("workflow_builder.plugins.shopify")

STORE_DOMAIN_KEY = "SHOPIFY_STORE_DOMAIN"
ACCESS_TOKEN_KEY = "SHOPIFY_ACCESS_TOKEN"


@dataclass(frozen=True)
class ShopifyCredentials:
    """Secrets for one Shopify store connection."""

    store_domain: str
    access_token: str = field(repr=False)

    @classmethod
    def from_credentials(cls, credentials: dict[str, str]) -> "ShopifyCredentials | StepResult":
        """Return the credentials, or a MissingCredential failure naming the absent key."""
        store_domain = credentials.get(STORE_DOMAIN_KEY)
        if not store_domain:
            return StepResult.missing_credential(STORE_DOMAIN_KEY)
        access_token = credentials.get(ACCESS_TOKEN_KEY)
        if not access_token:
            return StepResult.missing_credential(ACCESS_TOKEN_KEY)
        return cls(store_domain=store_domain, access_token=access_token)

    @property
    def domain(self) -> str:
        return normalize_store_domain(self.store_domain)


class ShopifyClient:
    """Thin async wrapper around one store's Admin REST API.

    Use as an async context manager; the underlying httpx client is closed on exit.
    Responses are returned as-is (no raise_for_status) so each step decides how
    to report non-success statuses.
    """

    def __init__(
        self,
        credentials: ShopifyCredentials,
        settings: IntegrationSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.base_url = f"https://{credentials.domain}/admin/api/{settings.shopify_api_version}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "X-Shopify-Access-Token": credentials.access_token,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(settings.http_timeout, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> "ShopifyClient":
        return self

    async def __aexit__(self, *_args: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        r = await self._client.get(path, params=params)
        logger.debug("GET %s -> %s", path, r.status_code)
        return r

    async def post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        r = await self._client.post(path, json=payload)
        logger.debug("POST %s -> %s", path, r.status_code)
        return r


def error_result(response: httpx.Response, fallback_prefix: str | None = None) -> StepResult:
    """UpstreamHTTPError failure for a non-success response.

    Uses the body's ``errors`` (string as-is, structures JSON-encoded) when
    present, else "HTTP <status>" optionally prefixed.
    """
    message = error_body_message(response)
    if not message:
        status = f"HTTP {response.status_code}"
        message = f"{fallback_prefix}: {status}" if fallback_prefix else status
    logger.warning("Shopify %s %s -> %s: %s",
                   response.request.method, response.request.url.path,
                   response.status_code, message)
    return StepResult.upstream_error(message)


def unexpected_response(response: httpx.Response, what: str) -> StepResult:
    """UpstreamHTTPError failure for a 2xx body that is not the documented shape."""
    logger.warning("Shopify %s %s returned an unexpected body for %s: %.200s",
                   response.request.method, response.request.url.path, what, response.text)
    return StepResult.upstream_error(f"Unexpected response from Shopify: {what} missing or malformed")


def json_object(response: httpx.Response) -> dict[str, Any] | None:
    """The response body when it is a JSON object, else None."""
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
