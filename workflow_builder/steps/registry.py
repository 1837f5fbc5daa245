"""StepRegistry: action type → executable step.

Naming convention: "<integration>/<action>"
  shopify/get-order
  shopify/update-inventory
  ai-gateway/generate-image

A workflow node of type "action" carries ``config.actionType``; the runner
looks that string up here and calls the step with the node's input. Unknown
action types produce a Failure result rather than an exception, so a bad node
never crashes a workflow run.

Usage, registration (on top of @step):

    @register_step(label="Get Order")
    @step("shopify/get-order", integration="shopify")
    async def get_order_step(core, credentials): ...

Usage, dispatch:

    result = await default_registry().run("shopify/get-order", raw_input)
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from workflow_builder.credentials import CredentialResolver
from workflow_builder.steps.handler import StepRecorder, StepResult

logger = logging.getLogger("workflow_builder.steps.registry")

StepFn = Callable[..., Awaitable[StepResult]]

# Modules whose import registers the built-in steps
_BUILTIN_STEP_MODULES: tuple[str, ...] = (
    "workflow_builder.steps.generate_image",
    "workflow_builder.plugins.shopify",
)


@dataclass
class RegisteredStep:
    """A single registered step.

    Fields:
        action_type: Full name, e.g. "shopify/get-order".
        integration: Integration type the credentials belong to ("shopify").
        label:       Display label for pickers and diagnostics.
        fn:          The contract-wrapped step coroutine function.
    """

    action_type: str
    integration: str | None
    label: str
    fn: StepFn

    def to_dict(self) -> dict[str, Any]:
        return {
            "actionType": self.action_type,
            "integration": self.integration,
            "label": self.label,
        }


class StepRegistry:
    """Registry of step functions keyed by action type."""

    def __init__(self) -> None:
        self._steps: dict[str, RegisteredStep] = {}

    def add(
        self,
        fn: StepFn,
        *,
        action_type: str | None = None,
        integration: str | None = None,
        label: str | None = None,
    ) -> RegisteredStep:
        """Register ``fn``. Re-registering an action type replaces the entry."""
        name = action_type or getattr(fn, "step_name", None)
        if not name:
            raise ValueError(f"Cannot register {fn!r}: no action type given")
        entry = RegisteredStep(
            action_type=name,
            integration=integration or getattr(fn, "integration", None),
            label=label or name,
            fn=fn,
        )
        if name in self._steps:
            logger.debug("Replacing registered step %r", name)
        self._steps[name] = entry
        return entry

    def register(
        self,
        *,
        label: str | None = None,
        action_type: str | None = None,
    ) -> Callable[[StepFn], StepFn]:
        """Decorator form of add(); returns the step unchanged."""

        def decorator(fn: StepFn) -> StepFn:
            self.add(fn, action_type=action_type, label=label)
            return fn

        return decorator

    def get(self, action_type: str) -> RegisteredStep | None:
        return self._steps.get(action_type)

    def __contains__(self, action_type: object) -> bool:
        return action_type in self._steps

    def __len__(self) -> int:
        return len(self._steps)

    def action_types(self) -> list[str]:
        return sorted(self._steps)

    def entries(self) -> list[RegisteredStep]:
        return [self._steps[name] for name in self.action_types()]

    def by_integration(self, integration: str) -> list[RegisteredStep]:
        return [e for e in self.entries() if e.integration == integration]

    async def run(
        self,
        action_type: str,
        raw_input: Mapping[str, Any] | None = None,
        *,
        resolver: CredentialResolver | None = None,
        recorder: StepRecorder | None = None,
    ) -> StepResult:
        """Dispatch to the registered step; Failure for unknown action types."""
        entry = self._steps.get(action_type)
        if entry is None:
            logger.warning("Unknown action type requested: %r", action_type)
            return StepResult.invalid_input(
                f"Unknown action type: {action_type!r}. "
                f"Registered: {', '.join(self.action_types()) or '(none)'}"
            )
        return await entry.fn(raw_input, resolver=resolver, recorder=recorder)


# ---------------------------------------------------------------------------
# Process-wide registry
# ---------------------------------------------------------------------------

_registry = StepRegistry()
_builtins_loaded = False


def register_step(
    *,
    label: str | None = None,
    action_type: str | None = None,
) -> Callable[[StepFn], StepFn]:
    """Register a step in the process-wide registry."""
    return _registry.register(label=label, action_type=action_type)


def default_registry() -> StepRegistry:
    """Process-wide registry with all built-in steps imported."""
    global _builtins_loaded
    if not _builtins_loaded:
        # An import error propagates and the next call retries
        for module in _BUILTIN_STEP_MODULES:
            importlib.import_module(module)
        _builtins_loaded = True
    return _registry


async def run_action(
    action_type: str,
    raw_input: Mapping[str, Any] | None = None,
    *,
    resolver: CredentialResolver | None = None,
    recorder: StepRecorder | None = None,
) -> StepResult:
    """Shorthand for default_registry().run(...)."""
    return await default_registry().run(
        action_type, raw_input, resolver=resolver, recorder=recorder,
    )
