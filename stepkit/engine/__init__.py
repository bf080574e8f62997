"""Engine primitives for building and running ordered step lists."""

from stepkit.engine.pipeline import (
    ActionStep,
    DefaultStepRecorder,
    FlowContext,
    NullStepRecorder,
    StepHalted,
    StepRecorder,
    StepRunner,
    utc_now_iso8601,
)

__all__ = [
    "ActionStep",
    "DefaultStepRecorder",
    "FlowContext",
    "NullStepRecorder",
    "StepHalted",
    "StepRecorder",
    "StepRunner",
    "utc_now_iso8601",
]
