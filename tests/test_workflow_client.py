"""WorkflowClient and its Settings against a mocked workflow backend."""

from __future__ import annotations

import json
import os
from unittest.mock import patch

import httpx
import pytest

from workflow_builder.client import Settings, WorkflowClient, WorkflowClientError
from workflow_builder.graph import WorkflowGraph

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            s = Settings.from_env()
        assert s.api_key == ""
        assert s.api_endpoint == "http://localhost:3000"
        assert s.timeout == 120
        assert s.log_level == "WARNING"

    def test_env_override(self):
        env = {
            "WORKFLOW_API_KEY": "k-123",
            "WORKFLOW_API_ENDPOINT": "https://workflows.example.com/",
            "WORKFLOW_TIMEOUT": "15",
            "WORKFLOW_BUILDER_LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=True):
            s = Settings.from_env()
        assert s.api_key == "k-123"
        assert s.api_endpoint == "https://workflows.example.com"
        assert s.timeout == 15
        assert s.log_level == "DEBUG"

    def test_base_url_and_headers(self):
        s = Settings(api_key="key", api_endpoint="http://backend")
        assert s.base_url == "http://backend/api"
        assert s.headers["Authorization"] == "Bearer key"
        assert "Authorization" not in Settings(api_key="").headers

    def test_api_key_not_in_repr(self):
        assert "secret" not in repr(Settings(api_key="secret"))


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


def _client(handler) -> WorkflowClient:
    return WorkflowClient(
        Settings(api_key="k", api_endpoint="http://backend"),
        transport=httpx.MockTransport(handler),
    )


class TestWorkflowClient:
    @pytest.mark.asyncio
    async def test_create_posts_graph(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, json={"id": "wf-1", "name": "X"})

        graph = WorkflowGraph.from_dict({"name": "X", "nodes": [{"id": "t1", "type": "trigger"}], "edges": []})
        async with _client(handler) as client:
            created = await client.create(graph)

        assert created["id"] == "wf-1"
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/workflows"
        assert json.loads(seen[0].content)["nodes"][0]["id"] == "t1"

    @pytest.mark.asyncio
    async def test_create_without_id_raises(self):
        async with _client(lambda request: httpx.Response(200, json={})) as client:
            with pytest.raises(WorkflowClientError, match="did not return an id"):
                await client.create({"nodes": [], "edges": []})

    @pytest.mark.asyncio
    async def test_update_uses_patch(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(204)

        async with _client(handler) as client:
            await client.update("wf-9", {"nodes": [], "edges": []})
        assert seen[0].method == "PATCH"
        assert seen[0].url.path == "/api/workflows/wf-9"

    @pytest.mark.asyncio
    async def test_get_parses_graph(self):
        body = {"name": "Stored", "nodes": [{"id": "n1", "type": "action"}], "edges": []}
        async with _client(lambda request: httpx.Response(200, json=body)) as client:
            graph = await client.get("wf-1")
        assert graph.name == "Stored"
        assert [n.id for n in graph.nodes] == ["n1"]

    @pytest.mark.asyncio
    async def test_generate_sends_existing_workflow(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"nodes": [], "edges": []})

        async with _client(handler) as client:
            await client.generate("do things", {"nodes": [], "edges": []})
            await client.generate("fresh")

        assert seen[0] == {"prompt": "do things", "existingWorkflow": {"nodes": [], "edges": []}}
        assert seen[1] == {"prompt": "fresh"}

    @pytest.mark.asyncio
    async def test_http_error_raises_with_detail(self):
        async with _client(lambda request: httpx.Response(500, json={"error": "db down"})) as client:
            with pytest.raises(WorkflowClientError) as exc_info:
                await client.get("wf-1")
        assert exc_info.value.status == 500
        assert exc_info.value.detail == "db down"

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(WorkflowClientError) as exc_info:
                await client.get("wf-1")
        assert exc_info.value.status is None

    @pytest.mark.asyncio
    async def test_non_json_success_body_raises_client_error(self):
        def html(request):
            return httpx.Response(200, text="<html>gateway</html>")

        async with _client(html) as client:
            with pytest.raises(WorkflowClientError) as exc_info:
                await client.generate("x")
        assert str(exc_info.value) == "Invalid JSON from workflow backend"
        assert exc_info.value.status == 200
        assert exc_info.value.detail == "<html>gateway</html>"

    @pytest.mark.asyncio
    async def test_empty_success_body(self):
        async with _client(lambda request: httpx.Response(200, text="")) as client:
            assert await client.generate("x") == {"success": True}


class TestSettingsValidation:
    @pytest.mark.parametrize("raw", ["abc", "0", "-5", "1.5"])
    def test_bad_timeout_rejected(self, raw):
        with patch.dict(os.environ, {"WORKFLOW_TIMEOUT": raw}, clear=True):
            with pytest.raises(ValueError, match="WORKFLOW_TIMEOUT"):
                Settings.from_env()

    def test_unknown_log_level_falls_back(self):
        with patch.dict(os.environ, {"WORKFLOW_BUILDER_LOG_LEVEL": "chatty"}, clear=True):
            assert Settings.from_env().log_level == "WARNING"
