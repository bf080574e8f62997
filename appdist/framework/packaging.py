"""Adapter around the native bundling backend (electron-packager)."""

from __future__ import annotations

import asyncio
import json
import os
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

from appdist.framework.config import BuildConfig
from appdist.framework.errors import PackagingError

DEFAULT_IGNORE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/node_modules/electron($|/)"),
    re.compile(r"/node_modules/electron-packager($|/)"),
    re.compile(r"/\.git($|/)"),
    re.compile(r"/node_modules/\.bin($|/)"),
)


@dataclass(frozen=True)
class ProtocolRegistration:
    name: str
    schemes: tuple[str, ...]


@dataclass(frozen=True)
class PackagingOptions:
    name: str
    platform: str
    arch: str
    out: str
    dir: str
    app_bundle_id: str
    app_category_type: str
    icon: str | None = None
    asar: bool = False
    overwrite: bool = True
    tmpdir: bool = False
    deref_symlinks: bool = False
    prune: bool = False
    ignore: tuple[re.Pattern[str], ...] = DEFAULT_IGNORE_PATTERNS
    app_copyright: str = ""
    osx_sign: bool = True
    protocols: tuple[ProtocolRegistration, ...] = field(default_factory=tuple)
    extend_info: str | None = None


def build_packaging_options(cfg: BuildConfig) -> PackagingOptions:
    auth_scheme = cfg.auth_scheme if cfg.is_publishable else cfg.dev_auth_scheme
    icon = cfg.icon or os.path.join(cfg.app_root, "static", "logos", "icon-logo")
    extend_info = cfg.extend_info or os.path.join(cfg.project_root, "script", "info.plist")
    return PackagingOptions(
        name=cfg.mode_executable_name,
        platform=cfg.target_platform,
        arch=cfg.arch,
        out=cfg.dist_root,
        dir=cfg.out_root,
        icon=icon,
        app_bundle_id=cfg.mode_bundle_id,
        app_category_type=cfg.app_category_type,
        app_copyright=cfg.app_copyright,
        protocols=(
            ProtocolRegistration(
                name=cfg.mode_bundle_id,
                schemes=(auth_scheme, *cfg.client_schemes),
            ),
        ),
        extend_info=extend_info,
    )


class PackagerBackend(Protocol):
    async def package(self, options: PackagingOptions) -> list[str]: ...


def electron_packager_payload(options: PackagingOptions) -> dict[str, Any]:
    """Options object for electron-packager's JavaScript API (ignore rules as regex sources)."""
    payload: dict[str, Any] = {
        "name": options.name,
        "platform": options.platform,
        "arch": options.arch,
        "out": options.out,
        "dir": options.dir,
        "asar": options.asar,
        "overwrite": options.overwrite,
        "tmpdir": options.tmpdir,
        "derefSymlinks": options.deref_symlinks,
        "prune": options.prune,
        "ignore": [pattern.pattern for pattern in options.ignore],
        "appCopyright": options.app_copyright,
        "appBundleId": options.app_bundle_id,
        "appCategoryType": options.app_category_type,
        "osxSign": options.osx_sign,
        "protocols": [
            {"name": registration.name, "schemes": list(registration.schemes)}
            for registration in options.protocols
        ],
    }
    if options.icon:
        payload["icon"] = options.icon
    if options.extend_info:
        payload["extendInfo"] = options.extend_info
    return payload


# The CLI pairs each --protocol with its own --protocol-name, so one
# registration with several schemes is only expressible through the API.
_PACKAGER_SCRIPT = """
const packager = require('electron-packager');
const options = JSON.parse(process.argv[1]);
options.ignore = options.ignore.map((source) => new RegExp(source));
packager(options).then(
  (appPaths) => { process.stdout.write(JSON.stringify(appPaths) + '\\n'); },
  (error) => { console.error((error && error.stack) || String(error)); process.exit(1); }
);
"""


def parse_bundle_paths(stdout: str) -> list[str]:
    """Read the JSON list of bundle paths printed on the last non-empty stdout line."""
    lines = [line for line in stdout.splitlines() if line.strip()]
    if not lines:
        return []
    try:
        paths = json.loads(lines[-1])
    except json.JSONDecodeError as exc:
        raise PackagingError(f"Unexpected packaging backend output: {lines[-1]!r}") from exc
    if not isinstance(paths, list) or not all(isinstance(path, str) for path in paths):
        raise PackagingError(f"Unexpected packaging backend output: {lines[-1]!r}")
    return paths


class ElectronPackagerNode:
    """Runs electron-packager's JavaScript API in a node subprocess from the project root."""

    def __init__(self, node: str = "node", *, cwd: str | None = None):
        self.node = node
        self.cwd = cwd

    async def package(self, options: PackagingOptions) -> list[str]:
        try:
            process = await asyncio.create_subprocess_exec(
                self.node,
                "-e",
                _PACKAGER_SCRIPT,
                json.dumps(electron_packager_payload(options)),
                cwd=self.cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise PackagingError(f"Packaging backend not found: {self.node}") from exc

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise PackagingError(
                f"Packaging backend failed (exit={process.returncode})",
                details={"stderr": stderr.decode("utf-8", errors="replace")},
            )
        paths = parse_bundle_paths(stdout.decode("utf-8", errors="replace"))
        if not paths:
            paths = [os.path.join(options.out, f"{options.name}-{options.platform}-{options.arch}")]
        return paths


async def package_app(options: PackagingOptions, backend: PackagerBackend) -> list[str]:
    return list(await backend.package(options))
