"""Reusable step-execution kernel.

This package is intentionally independent of `appdist.*`. Build-specific
conventions (which steps exist, which failures are fatal, exit codes) must live
in the consuming application.
"""

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
