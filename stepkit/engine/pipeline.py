"""Execution engine for ordered step lists.

This module is intentionally app-agnostic and must not import `appdist.*`.
"""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Protocol


def utc_now_iso8601() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class FlowContext(Protocol):
    logger: logging.Logger
    outputs: dict[str, Any]
    steps: list[dict[str, Any]]


class StepHalted(Exception):
    """Raised after a step's error handler ran and the step asked to stop the run."""

    def __init__(self, step_name: str, cause: BaseException) -> None:
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"Step {step_name} halted the pipeline: {cause}")


@dataclass(frozen=True)
class ActionStep:
    """One fallible unit of work; `fn` may be synchronous or return an awaitable.

    Without `on_error` a failure propagates out of the runner. With `on_error`
    the handler runs first; it may raise to abort at once. If it returns, the
    run either continues (`halt_after_error=False`) or stops with `StepHalted`.
    """

    name: str
    fn: Callable[[FlowContext], Any]
    on_error: Callable[[FlowContext, Exception], None] | None = None
    halt_after_error: bool = False
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise TypeError(f"Action name must be a string (type={type(self.name).__name__})")
        name = self.name.strip()
        if not name:
            raise ValueError("Action name cannot be empty")
        object.__setattr__(self, "name", name)

        if not callable(self.fn):
            raise TypeError(f"Action fn must be callable (type={type(self.fn).__name__})")
        if self.on_error is not None and not callable(self.on_error):
            raise TypeError(
                f"Action on_error must be callable or None (type={type(self.on_error).__name__})"
            )
        if self.halt_after_error and self.on_error is None:
            raise ValueError(f"Action {name} sets halt_after_error without an on_error handler")
        if not isinstance(self.meta, dict):
            raise TypeError(f"Action meta must be a dict (type={type(self.meta).__name__})")


class StepRecorder(Protocol):
    def on_step_start(self, ctx: FlowContext, path: str, **metrics: Any) -> None:
        ...

    def on_step_end(self, ctx: FlowContext, record: dict[str, Any]) -> None:
        ...

    def on_step_error(
        self, ctx: FlowContext, path: str, step_name: str, exc: Exception
    ) -> None:
        ...


class DefaultStepRecorder:
    def on_step_start(self, ctx: FlowContext, path: str, **metrics: Any) -> None:
        tokens: list[str] = []
        source = metrics.get("source")
        if isinstance(source, str) and source.strip():
            tokens.append(f"source={source.strip()}")

        doc = metrics.get("doc")
        if isinstance(doc, str) and doc.strip():
            tokens.append(f"doc={json.dumps(doc.strip(), ensure_ascii=False)}")

        if tokens:
            ctx.logger.debug("Step: %s (%s)", path, ", ".join(tokens))
        else:
            ctx.logger.debug("Step: %s", path)

    def on_step_end(self, ctx: FlowContext, record: dict[str, Any]) -> None:
        ctx.steps.append(record)
        path = record.get("path", "<unknown>")
        if record.get("status") == "recovered":
            ctx.logger.warning("Continuing after failed action %s", path)
            return
        ctx.logger.debug("Completed action %s", path)

    def on_step_error(self, ctx: FlowContext, path: str, step_name: str, exc: Exception) -> None:
        ctx.logger.error("Step failed: %s (%s)", path, exc)


class NullStepRecorder:
    def on_step_start(self, ctx: FlowContext, path: str, **metrics: Any) -> None:
        return

    def on_step_end(self, ctx: FlowContext, record: dict[str, Any]) -> None:
        return

    def on_step_error(self, ctx: FlowContext, path: str, step_name: str, exc: Exception) -> None:
        return


class StepRunner:
    def __init__(self, *, recorder: StepRecorder | None = None, root_name: str = "pipeline"):
        self._recorder = recorder or DefaultStepRecorder()
        self._root_name = root_name
        self._validate_recorder(self._recorder)

    async def run(self, ctx: FlowContext, steps: list[ActionStep]) -> None:
        self._validate_step_names(steps)
        for step in steps:
            await self._execute_action(ctx, step, path=f"{self._root_name}/{step.name}")

    def _validate_recorder(self, recorder: StepRecorder) -> None:
        required = ("on_step_start", "on_step_end", "on_step_error")
        for name in required:
            method = getattr(recorder, name, None)
            if method is None or not callable(method):
                raise TypeError(f"Step recorder missing required method: {name}")

    def _validate_step_names(self, steps: list[ActionStep]) -> None:
        seen: set[str] = set()
        duplicates: set[str] = set()
        for step in steps:
            if not isinstance(step, ActionStep):
                raise TypeError(f"Pipeline steps must be ActionStep (type={type(step).__name__})")
            if step.name in seen:
                duplicates.add(step.name)
            seen.add(step.name)
        if duplicates:
            raise ValueError(
                f"Duplicate step name(s) in {self._root_name}: {', '.join(sorted(duplicates))}"
            )

    def _callable_source(self, fn: Any) -> str | None:
        if not callable(fn):
            return None
        module = getattr(fn, "__module__", None) or "<unknown_module>"
        qualname = (
            getattr(fn, "__qualname__", None)
            or getattr(fn, "__name__", None)
            or "<callable>"
        )
        return f"{module}.{qualname}"

    def _json_safe(self, value: Any, *, max_depth: int = 4, max_items: int = 25) -> Any:
        if max_depth <= 0:
            return "<max_depth>"
        if value is None or isinstance(value, (bool, int, float, str)):
            return value
        if isinstance(value, (list, tuple)):
            items = list(value)
            out = [
                self._json_safe(item, max_depth=max_depth - 1, max_items=max_items)
                for item in items[:max_items]
            ]
            if len(items) > max_items:
                out.append(f"<{len(items) - max_items} more>")
            return out
        if isinstance(value, dict):
            mapped: dict[str, Any] = {}
            for idx, (k, v) in enumerate(value.items()):
                if idx >= max_items:
                    mapped["<more>"] = f"<{len(value) - max_items} more>"
                    break
                mapped[str(k)] = self._json_safe(v, max_depth=max_depth - 1, max_items=max_items)
            return mapped
        return repr(value)

    def _attach_pipeline_error(self, exc: BaseException, *, pipeline_path: str, step_name: str) -> None:
        for attr, value in (("pipeline_path", pipeline_path), ("pipeline_step", step_name)):
            if hasattr(exc, attr):
                continue
            try:
                setattr(exc, attr, value)
            except Exception:
                pass

    async def _execute_action(self, ctx: FlowContext, action: ActionStep, *, path: str) -> None:
        record_meta = dict(action.meta)
        if "source" not in record_meta:
            source = self._callable_source(action.fn)
            if source:
                record_meta["source"] = source

        self._recorder.on_step_start(
            ctx, path, source=record_meta.get("source"), doc=record_meta.get("doc")
        )

        try:
            result = action.fn(ctx)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            self._handle_failure(ctx, action, path=path, exc=exc)
            record: dict[str, Any] = {
                "type": "action",
                "name": action.name,
                "path": path,
                "status": "recovered",
                "error": str(exc),
                "created_at": utc_now_iso8601(),
            }
            if record_meta:
                record["meta"] = self._json_safe(record_meta)
            self._recorder.on_step_end(ctx, record)
            return

        ctx.outputs[action.name] = result
        record = {
            "type": "action",
            "name": action.name,
            "path": path,
            "status": "ok",
            "created_at": utc_now_iso8601(),
        }
        if record_meta:
            record["meta"] = self._json_safe(record_meta)
        if result is not None:
            record["result"] = self._json_safe(result)
        self._recorder.on_step_end(ctx, record)

    def _handle_failure(
        self, ctx: FlowContext, action: ActionStep, *, path: str, exc: Exception
    ) -> None:
        try:
            self._recorder.on_step_error(ctx, path, action.name, exc)
        except Exception:
            ctx.logger.exception("Step recorder failed during error handling for %s", path)
        self._attach_pipeline_error(exc, pipeline_path=path, step_name=action.name)

        if action.on_error is None:
            raise exc

        try:
            action.on_error(ctx, exc)
        except BaseException as handler_exc:
            self._attach_pipeline_error(handler_exc, pipeline_path=path, step_name=action.name)
            raise

        if action.halt_after_error:
            halted = StepHalted(action.name, exc)
            self._attach_pipeline_error(halted, pipeline_path=path, step_name=action.name)
            raise halted from exc
