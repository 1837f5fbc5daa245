"""Async client for the workflow backend (persistence + AI graph source) using httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from workflow_builder.client.config import Settings
from workflow_builder.graph.model import WorkflowGraph
from workflow_builder.util.errors import error_body_message

logger = logging.getLogger("workflow_builder.client")


class WorkflowClientError(Exception):
    """The workflow backend could not be reached or rejected the request.

    status: HTTP status code, None for transport failures.
    detail: upstream error text when available.
    """

    def __init__(self, message: str, status: int | None = None, detail: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.detail = detail


def _graph_payload(graph: WorkflowGraph | dict[str, Any]) -> dict[str, Any]:
    return graph.to_dict() if isinstance(graph, WorkflowGraph) else dict(graph)


class WorkflowClient:
    """Thin async wrapper around the workflow backend REST API."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            headers=settings.headers,
            timeout=httpx.Timeout(settings.timeout, connect=10.0),
            transport=transport,
        )

    @classmethod
    def from_env(cls) -> "WorkflowClient":
        return cls(Settings.from_env())

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "WorkflowClient":
        return self

    async def __aexit__(self, *_args: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, payload: dict | None = None) -> Any:
        try:
            r = await self._client.request(method, path, json=payload)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = error_body_message(e.response) or e.response.text[:300]
            logger.error("%s %s -> %s", method, path, status)
            raise WorkflowClientError(f"HTTP {status}", status=status, detail=detail) from e
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise WorkflowClientError(str(e) or type(e).__name__) from e

        if not r.text.strip():
            return {"success": True}
        try:
            return r.json()
        except ValueError as e:
            logger.error("%s %s -> %s with a non-JSON body", method, path, r.status_code)
            raise WorkflowClientError(
                "Invalid JSON from workflow backend", status=r.status_code, detail=r.text[:300],
            ) from e

    # ==================================================================
    # WORKFLOWS
    # ==================================================================

    async def create(self, graph: WorkflowGraph | dict[str, Any]) -> dict[str, Any]:
        """Persist a new workflow. Returns at least {"id": ...}."""
        data = await self._request("POST", "/workflows", _graph_payload(graph))
        if not isinstance(data, dict) or not data.get("id"):
            raise WorkflowClientError("Workflow backend did not return an id", detail=str(data)[:300])
        return data

    async def update(self, workflow_id: str, graph: WorkflowGraph | dict[str, Any]) -> None:
        """Replace the stored graph of ``workflow_id``."""
        await self._request("PATCH", f"/workflows/{workflow_id}", _graph_payload(graph))

    async def get(self, workflow_id: str) -> WorkflowGraph:
        data = await self._request("GET", f"/workflows/{workflow_id}")
        return WorkflowGraph.from_dict(data)

    # ==================================================================
    # AI GRAPH SOURCE
    # ==================================================================

    async def generate(
        self,
        prompt: str,
        existing: WorkflowGraph | dict[str, Any] | None = None,
    ) -> Any:
        """Ask the AI endpoint for a graph. Output is untrusted; validate before use."""
        payload: dict[str, Any] = {"prompt": prompt}
        if existing is not None:
            payload["existingWorkflow"] = _graph_payload(existing)
        return await self._request("POST", "/ai/generate", payload)
