"""Per-invocation timing for steps.

StepMetrics: frozen snapshot of one step invocation's timing and outcome.
StepTimer  : async context manager; read .result / .to_dict() after exit.

Usage::

    async with StepTimer("shopify/get-order") as t:
        result = await handler(core_input, credentials)
        t.success = result.success
    entry.duration_ms = t.to_dict()["duration_ms"]

The timer never suppresses exceptions raised inside the block.
"""

from __future__ import annotations

import dataclasses
import time
from typing import Any


@dataclasses.dataclass(frozen=True)
class StepMetrics:
    """Timing snapshot for one step invocation.

    Fields
    ------
    step:        Step name, e.g. "shopify/update-inventory".
    start_ts:    Unix timestamp at invocation start (time.time()).
    end_ts:      Unix timestamp at invocation end.
    duration_ms: Elapsed wall time, measured with a monotonic clock.
    success:     Outcome of the step, None when the block raised.
    """

    step: str
    start_ts: float
    end_ts: float
    duration_ms: float
    success: bool | None = None


class StepTimer:
    """Async context manager that records the duration of one step invocation."""

    def __init__(self, step: str) -> None:
        self.step = step
        self.success: bool | None = None
        self._start_ts: float = 0.0
        self._start_mono: float = 0.0
        self._result: StepMetrics | None = None

    async def __aenter__(self) -> "StepTimer":
        self._start_ts = time.time()
        self._start_mono = time.monotonic()
        return self

    async def __aexit__(self, *_args: object) -> None:
        self._result = StepMetrics(
            step=self.step,
            start_ts=self._start_ts,
            end_ts=time.time(),
            duration_ms=(time.monotonic() - self._start_mono) * 1000,
            success=self.success,
        )

    @property
    def result(self) -> StepMetrics | None:
        """Finalized StepMetrics after the context manager exits, else None."""
        return self._result

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since entry; usable inside the block."""
        if self._result is not None:
            return self._result.duration_ms
        if not self._start_mono:
            return 0.0
        return (time.monotonic() - self._start_mono) * 1000

    def to_dict(self) -> dict[str, Any]:
        """Finalized StepMetrics as a dict, or {} before the context manager exits."""
        return dataclasses.asdict(self._result) if self._result is not None else {}
