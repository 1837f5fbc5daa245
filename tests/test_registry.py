"""StepRegistry: registration, dispatch, built-in steps."""

from __future__ import annotations

import pytest

from workflow_builder.steps import MemoryStepRecorder, StepRegistry, StepResult, default_registry, run_action, step

BUILTIN = {
    "ai-gateway/generate-image",
    "shopify/create-product",
    "shopify/get-order",
    "shopify/list-orders",
    "shopify/update-inventory",
}


@step("demo/ping", integration="demo")
async def _ping(core, credentials):
    return StepResult.ok(pong=core.get("n", 0) + 1)


class TestStepRegistry:
    def test_add_reads_step_attributes(self):
        reg = StepRegistry()
        entry = reg.add(_ping, label="Ping")
        assert entry.action_type == "demo/ping"
        assert entry.integration == "demo"
        assert entry.to_dict() == {"actionType": "demo/ping", "integration": "demo", "label": "Ping"}
        assert "demo/ping" in reg
        assert len(reg) == 1

    def test_add_without_name_raises(self):
        async def anonymous(raw_input=None, **_):
            return StepResult.ok()

        with pytest.raises(ValueError):
            StepRegistry().add(anonymous)

    def test_register_decorator_and_by_integration(self):
        reg = StepRegistry()
        reg.register(label="Ping")(_ping)
        assert [e.label for e in reg.by_integration("demo")] == ["Ping"]
        assert reg.by_integration("shopify") == []

    @pytest.mark.asyncio
    async def test_run_dispatches(self):
        reg = StepRegistry()
        reg.add(_ping)
        r = await reg.run("demo/ping", {"n": 1}, recorder=MemoryStepRecorder())
        assert r.to_dict() == {"success": True, "pong": 2}

    @pytest.mark.asyncio
    async def test_unknown_action_type_is_failure(self):
        reg = StepRegistry()
        reg.add(_ping)
        r = await reg.run("nope/nothing", {})
        assert r.success is False
        assert "Unknown action type" in r.error
        assert "demo/ping" in r.error


class TestDefaultRegistry:
    def test_builtin_steps_registered(self):
        assert BUILTIN <= set(default_registry().action_types())

    def test_labels(self):
        reg = default_registry()
        assert reg.get("shopify/update-inventory").label == "Update Inventory"
        assert reg.get("ai-gateway/generate-image").integration == "ai-gateway"

    @pytest.mark.asyncio
    async def test_run_action_without_credentials(self):
        r = await run_action("shopify/get-order", {"orderId": "1"}, recorder=MemoryStepRecorder())
        assert r.error == "SHOPIFY_STORE_DOMAIN is not configured. Please add it in Project Integrations."


class TestBuiltinLoading:
    def test_failed_plugin_import_is_retried(self, monkeypatch):
        from workflow_builder.steps import registry as registry_module

        monkeypatch.setattr(registry_module, "_builtins_loaded", False)
        monkeypatch.setattr(registry_module, "_BUILTIN_STEP_MODULES", ("workflow_builder.plugins.missing_plugin",))
        with pytest.raises(ModuleNotFoundError):
            default_registry()
        assert registry_module._builtins_loaded is False

        monkeypatch.setattr(registry_module, "_BUILTIN_STEP_MODULES", ("workflow_builder.plugins.shopify",))
        assert "shopify/get-order" in default_registry()
        assert registry_module._builtins_loaded is True
