"""Project the app manifest down to the dependencies the shipped bundle needs."""

from __future__ import annotations

import json
import logging
import os
import subprocess
from collections.abc import Mapping
from typing import Any, Callable

from appdist.foundation.fs import copy_path, remove_path, write_text
from appdist.framework.config import BuildConfig, BuildMode
from appdist.framework.errors import InstallError, ManifestError
from appdist.framework.externals import ExternalsList, ExternalsPolicy

Installer = Callable[[str], None]


def filter_dependencies(
    dependencies: Mapping[str, str] | None, externals: ExternalsPolicy
) -> dict[str, str]:
    if not dependencies:
        return {}
    return {name: spec for name, spec in dependencies.items() if externals.is_external(name)}


def _dependency_map(manifest: Mapping[str, Any], key: str) -> Mapping[str, str]:
    value = manifest.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ManifestError(f"Manifest field {key} must be an object (type={type(value).__name__})")
    return value


def build_manifest(
    source: Mapping[str, Any],
    externals: ExternalsPolicy,
    *,
    mode: BuildMode,
    product_name: str,
) -> dict[str, Any]:
    """Return a copy of `source` with filtered dependency maps and the mode's product name."""
    updated: dict[str, Any] = dict(source)
    updated["productName"] = product_name
    updated["dependencies"] = filter_dependencies(_dependency_map(source, "dependencies"), externals)

    if mode == "publishable":
        updated.pop("devDependencies", None)
    else:
        updated["devDependencies"] = filter_dependencies(
            _dependency_map(source, "devDependencies"), externals
        )
    return updated


def read_manifest(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError:
        raise
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ManifestError(f"Manifest must contain a JSON object: {path}")
    return payload


def write_manifest(path: str, manifest: Mapping[str, Any]) -> None:
    write_text(path, json.dumps(manifest))


def has_dependencies(manifest: Mapping[str, Any]) -> bool:
    return bool(manifest.get("dependencies")) or bool(manifest.get("devDependencies"))


class NpmInstaller:
    """Runs `npm install` against the manifest already written into the output tree."""

    def __init__(self, command: tuple[str, ...] = ("npm", "install"), env: Mapping[str, str] | None = None):
        self.command = command
        self.env = dict(env) if env is not None else None

    def __call__(self, cwd: str) -> None:
        try:
            subprocess.run(list(self.command), cwd=cwd, env=self.env, check=True)
        except FileNotFoundError as exc:
            raise InstallError(f"Dependency installer not found: {self.command[0]}") from exc
        except subprocess.CalledProcessError as exc:
            raise InstallError(
                f"Dependency installation failed (exit={exc.returncode})",
                returncode=exc.returncode,
            ) from exc


def _replace_from_app_modules(
    cfg: BuildConfig, relative_source: str, destination: str, logger: logging.Logger
) -> bool:
    source = os.path.join(cfg.app_root, "node_modules", relative_source)
    remove_path(destination)
    if not os.path.exists(source):
        logger.warning("  Skipping %s: not found at %s", relative_source, source)
        return False
    copy_path(source, destination)
    return True


def copy_dependencies(
    cfg: BuildConfig,
    *,
    installer: Installer,
    logger: logging.Logger,
    externals: ExternalsPolicy | None = None,
) -> dict[str, Any]:
    """
    Write the filtered manifest into the output tree and rebuild its dependency tree.

    The install pass runs only when the filtered manifest lists any dependency;
    it always sees the freshly written manifest and an empty `node_modules`.
    """
    externals = externals or ExternalsList(cfg.externals)
    original = read_manifest(os.path.join(cfg.app_root, "package.json"))
    updated = build_manifest(
        original, externals, mode=cfg.build_mode, product_name=cfg.mode_product_name
    )

    write_manifest(os.path.join(cfg.out_root, "package.json"), updated)
    remove_path(os.path.join(cfg.out_root, "node_modules"))

    if has_dependencies(updated):
        logger.info("  Installing dependencies via npm…")
        installer(cfg.out_root)

    if not cfg.is_publishable:
        logger.info("  Installing 7zip (dependency for electron-devtools-installer)")
        _replace_from_app_modules(
            cfg, "7zip", os.path.join(cfg.out_root, "node_modules", "7zip"), logger
        )

    logger.info("  Copying git environment…")
    _replace_from_app_modules(
        cfg, os.path.join("dugite", "git"), os.path.join(cfg.out_root, "git"), logger
    )

    logger.info("  Copying app-path binary…")
    _replace_from_app_modules(
        cfg, os.path.join("app-path", "main"), os.path.join(cfg.out_root, "main"), logger
    )

    return updated
