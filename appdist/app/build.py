"""Release build orchestration: one ordered step list, one top-level catch."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeAlias

from stepkit import ActionStep, StepHalted, StepRecorder, StepRunner, utc_now_iso8601

from appdist.foundation.fs import remove_path
from appdist.framework.config import BuildConfig
from appdist.framework.dependencies import Installer, NpmInstaller, copy_dependencies
from appdist.framework.errors import BuildTerminated
from appdist.framework.externals import ExternalsPolicy
from appdist.framework.license_dump import update_license_dump
from appdist.framework.licenses import generate_license_metadata
from appdist.framework.packaging import (
    ElectronPackagerNode,
    PackagerBackend,
    build_packaging_options,
    package_app,
)
from appdist.framework.resources import copy_emoji, copy_static_resources, move_analysis_files
from appdist.framework.runtime import BuildContext
from appdist.framework.trust import setup_macos_keychain, should_setup_trust
from appdist.framework.validation import verify_injected_sass_variables

Validator = Callable[[str], Awaitable[Any]]
LicenseAggregator = Callable[[BuildConfig], Awaitable[Any]]
TrustSetup = Callable[[BuildConfig], None]


@dataclass(frozen=True)
class BuildSucceeded:
    bundle_paths: tuple[str, ...]
    exit_code: int = 0


@dataclass(frozen=True)
class BuildFailed:
    exit_code: int
    cause: BaseException
    failed_step: str | None = None


BuildResult: TypeAlias = BuildSucceeded | BuildFailed


async def _default_license_aggregator(cfg: BuildConfig) -> str:
    overrides_path = cfg.license_overrides or os.path.join(
        cfg.project_root, "script", "license-overrides.yaml"
    )
    return await update_license_dump(cfg.project_root, cfg.out_root, overrides_path=overrides_path)


@dataclass
class Collaborators:
    installer: Installer = field(default_factory=NpmInstaller)
    validator: Validator = verify_injected_sass_variables
    license_aggregator: LicenseAggregator = _default_license_aggregator
    packager: PackagerBackend | None = None
    trust_setup: TrustSetup = setup_macos_keychain
    externals: ExternalsPolicy | None = None


class BuildPipeline:
    def __init__(
        self,
        cfg: BuildConfig,
        *,
        collaborators: Collaborators | None = None,
        recorder: StepRecorder | None = None,
    ):
        self.cfg = cfg
        self.collaborators = collaborators or Collaborators()
        self._runner = StepRunner(recorder=recorder, root_name="build")

    def steps(self) -> list[ActionStep]:
        return [
            ActionStep(name="remove_old_distribution", fn=self._remove_old_distribution),
            ActionStep(name="copy_dependencies", fn=self._copy_dependencies),
            ActionStep(name="copy_emoji", fn=self._copy_emoji),
            ActionStep(name="copy_static_resources", fn=self._copy_static_resources),
            ActionStep(name="generate_license_metadata", fn=self._generate_license_metadata),
            ActionStep(name="move_analysis_files", fn=self._move_analysis_files),
            ActionStep(name="setup_trust", fn=self._setup_trust),
            ActionStep(
                name="verify_sass_variables",
                fn=self._verify_sass_variables,
                on_error=self._on_validation_error,
            ),
            ActionStep(
                name="update_license_dump",
                fn=self._update_license_dump,
                on_error=self._on_license_dump_error,
                halt_after_error=self.cfg.is_publishable,
            ),
            ActionStep(name="package_app", fn=self._package_app),
            ActionStep(name="report", fn=self._report),
        ]

    async def run(self, ctx: BuildContext) -> list[str]:
        await self._runner.run(ctx, self.steps())
        return list(ctx.bundle_paths)

    def _remove_old_distribution(self, ctx: BuildContext) -> None:
        ctx.logger.info("Removing old distribution…")
        remove_path(self.cfg.dist_root)

    def _copy_dependencies(self, ctx: BuildContext) -> dict[str, Any]:
        ctx.logger.info("Copying dependencies…")
        return copy_dependencies(
            self.cfg,
            installer=self.collaborators.installer,
            logger=ctx.logger,
            externals=self.collaborators.externals,
        )

    def _copy_emoji(self, ctx: BuildContext) -> list[str]:
        ctx.logger.info("Packaging emoji…")
        return copy_emoji(self.cfg)

    def _copy_static_resources(self, ctx: BuildContext) -> str:
        ctx.logger.info("Copying static resources…")
        return copy_static_resources(self.cfg)

    def _generate_license_metadata(self, ctx: BuildContext) -> int:
        ctx.logger.info("Parsing license metadata…")
        header = self.cfg.license_header.replace("{product_name}", self.cfg.product_name)
        return len(generate_license_metadata(self.cfg.out_root, header=header))

    def _move_analysis_files(self, ctx: BuildContext) -> str | None:
        moved = move_analysis_files(self.cfg)
        if moved:
            ctx.logger.info("Moved analysis report to %s", moved)
        return moved

    def _setup_trust(self, ctx: BuildContext) -> bool:
        if not should_setup_trust(self.cfg):
            return False
        ctx.logger.info("Setting up keychain…")
        self.collaborators.trust_setup(self.cfg)
        return True

    async def _verify_sass_variables(self, ctx: BuildContext) -> Any:
        return await self.collaborators.validator(self.cfg.out_root)

    def _on_validation_error(self, ctx: BuildContext, exc: Exception) -> None:
        ctx.logger.error(
            "Error verifying the Sass variables in the rendered app. "
            "This is fatal for a published build."
        )
        if self.cfg.is_publishable:
            raise BuildTerminated(1, exc)

    async def _update_license_dump(self, ctx: BuildContext) -> Any:
        ctx.logger.info("Updating our licenses dump…")
        return await self.collaborators.license_aggregator(self.cfg)

    def _on_license_dump_error(self, ctx: BuildContext, exc: Exception) -> None:
        ctx.logger.error("Error updating the license dump. This is fatal for a published build.")
        ctx.logger.error("%s", exc)

    async def _package_app(self, ctx: BuildContext) -> list[str]:
        ctx.logger.info("Packaging…")
        options = build_packaging_options(self.cfg)
        packager = self.collaborators.packager or ElectronPackagerNode(cwd=self.cfg.project_root)
        ctx.bundle_paths = await package_app(options, packager)
        return ctx.bundle_paths

    def _report(self, ctx: BuildContext) -> None:
        ctx.logger.info("Built to %s", ", ".join(ctx.bundle_paths))


async def run_build(
    cfg: BuildConfig,
    *,
    logger: logging.Logger,
    build_id: str = "build",
    collaborators: Collaborators | None = None,
    recorder: StepRecorder | None = None,
) -> BuildResult:
    """Run the whole release build and report the outcome instead of exiting."""
    ctx = BuildContext(
        build_id=build_id,
        cfg=cfg,
        logger=logger,
        created_at=utc_now_iso8601(),
    )
    pipeline = BuildPipeline(cfg, collaborators=collaborators, recorder=recorder)

    logger.info("Building for %s…", cfg.release_channel)
    try:
        bundle_paths = await pipeline.run(ctx)
    except BuildTerminated as exc:
        logger.error("Build terminated with status %s", exc.exit_code)
        return BuildFailed(
            exit_code=exc.exit_code,
            cause=exc.cause or exc,
            failed_step=getattr(exc, "pipeline_step", None),
        )
    except StepHalted as exc:
        logger.error("Build stopped after %s failed", exc.step_name)
        return BuildFailed(exit_code=1, cause=exc.cause, failed_step=exc.step_name)
    except Exception as exc:
        logger.exception("Build failed: %s", exc)
        return BuildFailed(exit_code=1, cause=exc, failed_step=getattr(exc, "pipeline_step", None))

    return BuildSucceeded(bundle_paths=tuple(bundle_paths))
