"""Step execution contract, registry and built-in steps."""

from workflow_builder.steps.handler import (
    FailureKind,
    LoggingStepRecorder,
    MemoryStepRecorder,
    StepContext,
    StepLogEntry,
    StepRecorder,
    StepResult,
    invoke_step,
    set_default_recorder,
    step,
    with_step_logging,
)
from workflow_builder.steps.registry import (
    RegisteredStep,
    StepRegistry,
    default_registry,
    register_step,
    run_action,
)

__all__ = [
    "FailureKind",
    "LoggingStepRecorder",
    "MemoryStepRecorder",
    "RegisteredStep",
    "StepContext",
    "StepLogEntry",
    "StepRecorder",
    "StepRegistry",
    "StepResult",
    "default_registry",
    "invoke_step",
    "register_step",
    "run_action",
    "set_default_recorder",
    "step",
    "with_step_logging",
]
