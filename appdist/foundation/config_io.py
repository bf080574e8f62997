from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

CONFIG_DIR_NAME = "config"
CONFIG_NAME = "appdist"


def find_project_root(
    start: str | os.PathLike[str] | None = None, *, config_name: str = CONFIG_NAME
) -> str:
    """Walk up from `start` to the first directory holding `config/<config_name>.yaml`."""
    here = Path(start or os.getcwd()).resolve()
    if here.is_file():
        here = here.parent

    relative = Path(CONFIG_DIR_NAME) / f"{config_name}.yaml"
    for candidate in (here, *here.parents):
        if (candidate / relative).is_file():
            return str(candidate)
    raise FileNotFoundError(f"No {relative.as_posix()} found in {here} or any parent directory")


def read_yaml_mapping(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        try:
            payload = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"{path} must hold a YAML mapping of build settings")
    return dict(payload)


def overlay_settings(base: Mapping[str, Any], overlay: Mapping[str, Any], *, source: str) -> dict[str, Any]:
    """
    Apply a local overlay on top of the base settings.

    Build settings are flat: a scalar or list in the overlay replaces the base
    value outright and `null` resets a key to its default. Nested mappings
    are rejected.
    """
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, Mapping):
            raise ValueError(f"Invalid overlay value for {key} in {source}: build settings are flat")
        merged[key] = value
    return merged


def load_config(
    *,
    config_path: str | None = None,
    env_var: str = "APPDIST_CONFIG",
    config_dir: str | None = None,
    config_name: str = CONFIG_NAME,
    start_dir: str | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Load the build settings mapping.

    An explicit path (argument or `env_var`) loads that single file.
    Otherwise `<config_dir>/<config_name>.yaml` is loaded, with
    `<config_name>.local.yaml` applied on top when present. Without a
    `config_dir` the project root is discovered from `start_dir`.
    """

    explicit = (config_path or "").strip()
    mode = "explicit"
    if not explicit and env_var:
        explicit = os.environ.get(env_var, "").strip()
        mode = "env"

    if explicit:
        path = os.path.abspath(os.path.expandvars(os.path.expanduser(explicit)))
        return read_yaml_mapping(path), {"mode": mode, "paths": [path], "project_root": None}

    project_root = None
    if config_dir is None:
        project_root = find_project_root(start_dir, config_name=config_name)
        config_dir = os.path.join(project_root, CONFIG_DIR_NAME)

    base_path = os.path.abspath(os.path.join(config_dir, f"{config_name}.yaml"))
    if not os.path.isfile(base_path):
        raise FileNotFoundError(f"Missing base config file: {base_path}")
    cfg = read_yaml_mapping(base_path)
    paths = [base_path]

    local_path = os.path.abspath(os.path.join(config_dir, f"{config_name}.local.yaml"))
    if os.path.isfile(local_path):
        cfg = overlay_settings(cfg, read_yaml_mapping(local_path), source=local_path)
        paths.append(local_path)

    mode = "base+local" if len(paths) > 1 else "base"
    return cfg, {"mode": mode, "paths": paths, "project_root": project_root}
