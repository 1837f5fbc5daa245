"""Step execution contract.

Every integration step has the same externally observable behaviour:

  1. Credentials are resolved from the optional ``integrationId`` in the raw
     input (see workflow_builder.credentials).
  2. The business function is called with ``(core_input, credentials)`` where
     core_input is the raw input minus the reserved keys.
  3. The outcome is always a StepResult. Nothing the business function raises
     crosses this boundary: exceptions become Failure results whose message is
     "<failure_prefix>: <extracted text>".
  4. Each invocation is recorded twice (start with redacted input, completion
     with outcome and duration). A recorder that raises is logged and ignored;
     it can never change or suppress the step's result.

The contract itself performs no network I/O besides credential resolution.

Usage::

    @step("shopify/get-order", integration="shopify", failure_prefix="Failed to get order")
    async def get_order(core: dict, credentials: dict) -> StepResult:
        ...

    result = await get_order({"orderId": "42", "integrationId": "shop-main"})
    result.to_dict()   # {"success": True, ...} | {"success": False, "error": "..."}
"""

from __future__ import annotations

import enum
import functools
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from workflow_builder.credentials import (
    CredentialResolver,
    CredentialSet,
    fetch_credentials,
    missing_credential_message,
)
from workflow_builder.steps.metrics import StepTimer
from workflow_builder.util.errors import UNKNOWN_ERROR, extract_error_message
from workflow_builder.util.redaction import redact_dict

logger = logging.getLogger("workflow_builder.steps")

# Keys of the raw step input that are consumed by the contract itself
INTEGRATION_KEY = "integrationId"
CONTEXT_KEY = "_context"
RESERVED_KEYS: frozenset[str] = frozenset({INTEGRATION_KEY, CONTEXT_KEY})


# ---------------------------------------------------------------------------
# Result envelope
# ---------------------------------------------------------------------------


class FailureKind(str, enum.Enum):
    """Failure categories a step can surface. Only used for logging."""

    MISSING_CREDENTIAL = "MissingCredential"
    INVALID_INPUT = "InvalidInput"
    UPSTREAM_HTTP_ERROR = "UpstreamHTTPError"
    UPSTREAM_UNREACHABLE = "UpstreamUnreachable"
    UNEXPECTED_FAULT = "UnexpectedFault"


@dataclass
class StepResult:
    """Outcome of one step invocation: Success{data} or Failure{error}.

    success: True for the Success variant.
    data:    Result payload (Success only; always {} on Failure).
    error:   Human-readable message, safe for direct display (Failure only).
    kind:    FailureKind of a Failure, None on Success.
    """

    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    kind: FailureKind | None = None

    @classmethod
    def ok(cls, data: Mapping[str, Any] | None = None, **payload: Any) -> "StepResult":
        merged = dict(data or {})
        merged.update(payload)
        return cls(success=True, data=merged)

    @classmethod
    def fail(cls, message: Any, kind: FailureKind = FailureKind.UNEXPECTED_FAULT) -> "StepResult":
        text = message.strip() if isinstance(message, str) else extract_error_message(message)
        return cls(success=False, error=text or UNKNOWN_ERROR, kind=kind)

    @classmethod
    def missing_credential(cls, key: str) -> "StepResult":
        return cls.fail(missing_credential_message(key), FailureKind.MISSING_CREDENTIAL)

    @classmethod
    def invalid_input(cls, message: str) -> "StepResult":
        return cls.fail(message, FailureKind.INVALID_INPUT)

    @classmethod
    def upstream_error(cls, message: str) -> "StepResult":
        return cls.fail(message, FailureKind.UPSTREAM_HTTP_ERROR)

    def to_dict(self) -> dict[str, Any]:
        """Wire shape: {"success": True, **data} or {"success": False, "error": msg}."""
        if self.success:
            return {"success": True, **self.data}
        return {"success": False, "error": self.error or UNKNOWN_ERROR}


def coerce_result(raw: Any) -> StepResult:
    """Accept a StepResult or a legacy ``{"success": bool, ...}`` dict."""
    if isinstance(raw, StepResult):
        return raw
    if isinstance(raw, Mapping) and isinstance(raw.get("success"), bool):
        if raw["success"]:
            return StepResult.ok({k: v for k, v in raw.items() if k != "success"})
        return StepResult.fail(raw.get("error") or UNKNOWN_ERROR)
    return StepResult.fail(
        f"Step returned an unexpected value of type {type(raw).__name__}"
    )


def classify_exception(error: BaseException) -> FailureKind:
    if isinstance(error, httpx.HTTPStatusError):
        return FailureKind.UPSTREAM_HTTP_ERROR
    if isinstance(error, httpx.TransportError):
        return FailureKind.UPSTREAM_UNREACHABLE
    return FailureKind.UNEXPECTED_FAULT


# ---------------------------------------------------------------------------
# Invocation records
# ---------------------------------------------------------------------------


@dataclass
class StepContext:
    """Correlation data the workflow runner attaches as ``_context``."""

    execution_id: str | None = None
    node_id: str | None = None
    node_name: str | None = None
    node_type: str | None = None

    @classmethod
    def from_input(cls, raw_input: Mapping[str, Any]) -> "StepContext":
        ctx = raw_input.get(CONTEXT_KEY)
        if not isinstance(ctx, Mapping):
            return cls()

        def _s(key: str) -> str | None:
            value = ctx.get(key)
            return str(value) if value is not None else None

        return cls(
            execution_id=_s("executionId"),
            node_id=_s("nodeId"),
            node_name=_s("nodeName"),
            node_type=_s("nodeType"),
        )


@dataclass
class StepLogEntry:
    """One recorded step invocation. ``input`` is already redacted."""

    step: str
    context: StepContext
    input: dict[str, Any]
    success: bool | None = None
    error: str | None = None
    kind: str | None = None
    duration_ms: float | None = None


class StepRecorder:
    """Sink for step invocation records. Subclasses override either hook."""

    def record_start(self, entry: StepLogEntry) -> None:
        pass

    def record_complete(self, entry: StepLogEntry) -> None:
        pass


class LoggingStepRecorder(StepRecorder):
    """Writes invocation records to the ``workflow_builder.steps`` logger."""

    def record_start(self, entry: StepLogEntry) -> None:
        logger.info(
            "[step] %s start node=%s execution=%s input=%s",
            entry.step, entry.context.node_id, entry.context.execution_id, entry.input,
        )

    def record_complete(self, entry: StepLogEntry) -> None:
        if entry.success:
            logger.info("[step] %s ok (%.0f ms)", entry.step, entry.duration_ms or 0.0)
        else:
            logger.warning(
                "[step] %s failed (%s, %.0f ms): %s",
                entry.step, entry.kind, entry.duration_ms or 0.0, entry.error,
            )


class MemoryStepRecorder(StepRecorder):
    """Keeps completed records in memory (tests, CLI --verbose)."""

    def __init__(self) -> None:
        self.started: list[StepLogEntry] = []
        self.completed: list[StepLogEntry] = []

    def record_start(self, entry: StepLogEntry) -> None:
        self.started.append(entry)

    def record_complete(self, entry: StepLogEntry) -> None:
        self.completed.append(entry)


_default_recorder: StepRecorder = LoggingStepRecorder()


def get_default_recorder() -> StepRecorder:
    return _default_recorder


def set_default_recorder(recorder: StepRecorder | None) -> None:
    """Install a process-wide recorder; None restores the logging recorder."""
    global _default_recorder
    _default_recorder = recorder or LoggingStepRecorder()


def _safe_record(hook: Callable[[StepLogEntry], None], entry: StepLogEntry) -> None:
    try:
        hook(entry)
    except Exception as e:
        logger.warning("Step recorder failed for %s: %s", entry.step, e)


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


async def with_step_logging(
    step_name: str,
    raw_input: Mapping[str, Any],
    fn: Callable[[], Awaitable[Any]],
    *,
    failure_prefix: str | None = None,
    recorder: StepRecorder | None = None,
) -> StepResult:
    """Run ``fn`` and record its input and outcome; never raises for step faults."""
    recorder = recorder or _default_recorder
    entry = StepLogEntry(
        step=step_name,
        context=StepContext.from_input(raw_input),
        input=redact_dict({k: v for k, v in raw_input.items() if k != CONTEXT_KEY}),
    )
    _safe_record(recorder.record_start, entry)

    async with StepTimer(step_name) as timer:
        try:
            result = coerce_result(await fn())
        except Exception as e:
            message = extract_error_message(e)
            if failure_prefix:
                message = f"{failure_prefix}: {message}"
            logger.debug("Step %s raised %s", step_name, type(e).__name__, exc_info=True)
            result = StepResult.fail(message, classify_exception(e))
        timer.success = result.success

    entry.success = result.success
    entry.error = result.error
    entry.kind = result.kind.value if result.kind else None
    entry.duration_ms = timer.elapsed_ms
    _safe_record(recorder.record_complete, entry)
    return result


StepHandler = Callable[[dict[str, Any], CredentialSet], Awaitable[Any]]


async def invoke_step(
    handler: StepHandler,
    raw_input: Mapping[str, Any] | None,
    *,
    step_name: str,
    failure_prefix: str | None = None,
    resolver: CredentialResolver | None = None,
    recorder: StepRecorder | None = None,
) -> StepResult:
    """Resolve credentials, call ``handler`` and return its StepResult."""
    if not isinstance(raw_input, Mapping):
        raw_input = {}
    core_input = {k: v for k, v in raw_input.items() if k not in RESERVED_KEYS}
    ref = raw_input.get(INTEGRATION_KEY)

    async def _run() -> Any:
        credentials = await fetch_credentials(str(ref) if ref else None, resolver)
        return await handler(core_input, credentials)

    return await with_step_logging(
        step_name,
        raw_input,
        _run,
        failure_prefix=failure_prefix,
        recorder=recorder,
    )


def step(
    name: str,
    *,
    integration: str | None = None,
    failure_prefix: str | None = None,
) -> Callable[[StepHandler], Callable[..., Awaitable[StepResult]]]:
    """Decorator turning a business function into a contract-obeying step.

    The returned coroutine function takes the raw input and optional
    ``resolver`` / ``recorder`` keyword arguments. The undecorated business
    function stays reachable as ``.handler``.
    """

    def decorator(handler: StepHandler) -> Callable[..., Awaitable[StepResult]]:
        @functools.wraps(handler)
        async def step_fn(
            raw_input: Mapping[str, Any] | None = None,
            *,
            resolver: CredentialResolver | None = None,
            recorder: StepRecorder | None = None,
        ) -> StepResult:
            return await invoke_step(
                handler,
                raw_input,
                step_name=name,
                failure_prefix=failure_prefix,
                resolver=resolver,
                recorder=recorder,
            )

        step_fn.step_name = name  # type: ignore[attr-defined]
        step_fn.integration = integration  # type: ignore[attr-defined]
        step_fn.handler = handler  # type: ignore[attr-defined]
        return step_fn

    return decorator
