from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Any, Literal, Mapping

BuildMode = Literal["publishable", "development"]

DEVELOPMENT_CHANNEL = "development"
DEFAULT_CLIENT_SCHEMES: tuple[str, ...] = (
    "x-kactus-client",
    "x-github-client",
    "github-mac",
    "kactus",
)
DEFAULT_LICENSE_HEADER = (
    "{product_name} uses licensing information provided by choosealicense.com.\n"
    "\n"
    "The bundle in available-licenses.json has been generated from a source list provided at "
    "https://github.com/github/choosealicense.com, which is made available under the below license:\n"
    "\n"
    "------------\n"
    "\n"
)

_KNOWN_KEYS = frozenset(
    {
        "project_root",
        "out_root",
        "dist_root",
        "log_dir",
        "product_name",
        "executable_name",
        "bundle_id",
        "externals",
        "target_platform",
        "arch",
        "app_copyright",
        "app_category_type",
        "auth_scheme",
        "dev_auth_scheme",
        "client_schemes",
        "extend_info",
        "icon",
        "license_header",
        "license_overrides",
    }
)


def parse_bool(value: Any, path: str) -> bool:
    """
    Strict boolean parsing to avoid bool('false') footguns.

    Accepts True/False, 0/1 and the strings true/false/1/0/yes/no
    (case-insensitive, surrounding whitespace ignored).
    """

    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"Invalid boolean for {path}: {value!r}")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes"}:
            return True
        if normalized in {"false", "0", "no"}:
            return False
        raise ValueError(f"Invalid boolean for {path}: {value!r}")

    raise ValueError(f"Invalid boolean for {path}: {value!r}")


def parse_string_list(value: Any, path: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"Invalid config type for {path}: expected a list of strings")
    items: list[str] = []
    for idx, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"Invalid config value for {path}[{idx}]: must be a non-empty string")
        items.append(item.strip())
    return tuple(items)


def node_platform(platform: str) -> str:
    """Map a `sys.platform` value onto the platform names used by the app's static tree."""
    if platform.startswith("linux"):
        return "linux"
    if platform in ("win32", "cygwin"):
        return "win32"
    return platform


def build_mode_for_channel(channel: str) -> BuildMode:
    return "development" if channel == DEVELOPMENT_CHANNEL else "publishable"


@dataclass(frozen=True)
class BuildConfig:
    project_root: str
    out_root: str
    dist_root: str
    product_name: str
    executable_name: str
    bundle_id: str
    externals: tuple[str, ...]
    release_channel: str
    build_mode: BuildMode
    host_platform: str
    target_platform: str = "darwin"
    arch: str = "x64"
    is_ci: bool = False
    is_fork: bool = False
    log_dir: str | None = None
    app_copyright: str = ""
    app_category_type: str = "public.app-category.developer-tools"
    auth_scheme: str = "x-kactus-auth"
    dev_auth_scheme: str = "x-kactus-dev-auth"
    client_schemes: tuple[str, ...] = DEFAULT_CLIENT_SCHEMES
    extend_info: str | None = None
    icon: str | None = None
    license_header: str = DEFAULT_LICENSE_HEADER
    license_overrides: str | None = None

    @property
    def is_publishable(self) -> bool:
        return self.build_mode == "publishable"

    @property
    def app_root(self) -> str:
        return os.path.join(self.project_root, "app")

    @property
    def mode_product_name(self) -> str:
        # Dev builds get their own product name so both can run side by side.
        if self.is_publishable:
            return self.product_name
        return f"{self.product_name}-dev"

    @property
    def mode_bundle_id(self) -> str:
        if self.is_publishable:
            return self.bundle_id
        return f"{self.bundle_id}Dev"

    @property
    def mode_executable_name(self) -> str:
        if self.is_publishable:
            return self.executable_name
        return f"{self.executable_name}-dev"

    @staticmethod
    def from_dict(
        cfg: Mapping[str, Any],
        *,
        env: Mapping[str, str] | None = None,
        platform: str | None = None,
        base_dir: str | None = None,
    ) -> tuple["BuildConfig", list[str]]:
        """
        Build an immutable config from the YAML mapping plus the environment.

        Returns the config and a list of warnings (unknown keys). The
        environment is read here once; nothing downstream consults it again.
        """

        if not isinstance(cfg, Mapping):
            raise ValueError("Build config must be a mapping")
        env = os.environ if env is None else env
        warnings = [f"Unknown config key: {key}" for key in sorted(set(cfg) - _KNOWN_KEYS)]

        def optional_str(key: str) -> str | None:
            value = cfg.get(key)
            if value is None:
                return None
            if not isinstance(value, str):
                raise ValueError(f"Invalid config type for {key}: expected string")
            return value.strip() or None

        def require_str(key: str) -> str:
            value = optional_str(key)
            if value is None:
                raise ValueError(f"Missing required config value: {key}")
            return value

        root_base = base_dir or os.getcwd()

        def resolve(value: str | None, default: str) -> str:
            raw = value if value is not None else default
            expanded = os.path.expandvars(os.path.expanduser(raw))
            if not os.path.isabs(expanded):
                expanded = os.path.join(project_root, expanded)
            return os.path.abspath(expanded)

        project_root = os.path.abspath(
            os.path.join(root_base, optional_str("project_root") or ".")
        )
        product_name = require_str("product_name")
        release_channel = (env.get("RELEASE_CHANNEL") or "").strip() or DEVELOPMENT_CHANNEL

        is_ci = False
        raw_ci = env.get("CIRCLECI")
        if raw_ci is not None and raw_ci.strip():
            is_ci = parse_bool(raw_ci, "env.CIRCLECI")
        is_fork = bool(
            (env.get("CIRCLE_PR_USERNAME") or "").strip()
            or (env.get("CIRCLE_PR_REPONAME") or "").strip()
        )

        client_schemes = DEFAULT_CLIENT_SCHEMES
        if "client_schemes" in cfg:
            client_schemes = parse_string_list(cfg.get("client_schemes"), "client_schemes")

        log_dir = optional_str("log_dir")
        extend_info = optional_str("extend_info")
        icon = optional_str("icon")
        license_overrides = optional_str("license_overrides")

        config = BuildConfig(
            project_root=project_root,
            out_root=resolve(optional_str("out_root"), "out"),
            dist_root=resolve(optional_str("dist_root"), "dist"),
            product_name=product_name,
            executable_name=optional_str("executable_name") or product_name,
            bundle_id=require_str("bundle_id"),
            externals=parse_string_list(cfg.get("externals"), "externals"),
            release_channel=release_channel,
            build_mode=build_mode_for_channel(release_channel),
            host_platform=node_platform(platform or sys.platform),
            target_platform=optional_str("target_platform") or "darwin",
            arch=optional_str("arch") or "x64",
            is_ci=is_ci,
            is_fork=is_fork,
            log_dir=resolve(log_dir, log_dir) if log_dir else None,
            app_copyright=optional_str("app_copyright") or "",
            app_category_type=optional_str("app_category_type")
            or "public.app-category.developer-tools",
            auth_scheme=optional_str("auth_scheme") or "x-kactus-auth",
            dev_auth_scheme=optional_str("dev_auth_scheme") or "x-kactus-dev-auth",
            client_schemes=client_schemes,
            extend_info=resolve(extend_info, extend_info) if extend_info else None,
            icon=resolve(icon, icon) if icon else None,
            license_header=cfg.get("license_header") or DEFAULT_LICENSE_HEADER,
            license_overrides=resolve(license_overrides, license_overrides)
            if license_overrides
            else None,
        )
        if not isinstance(config.license_header, str):
            raise ValueError("Invalid config type for license_header: expected string")
        return config, warnings
