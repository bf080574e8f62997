from __future__ import annotations

import os

from appdist.foundation.fs import copy_path, remove_path
from appdist.framework.config import BuildConfig

RENDERER_REPORT = "renderer.report.html"


def remove_and_copy(source: str, destination: str) -> None:
    remove_path(destination)
    copy_path(source, destination)


def copy_emoji(cfg: BuildConfig) -> list[str]:
    gemoji = os.path.join(cfg.project_root, "gemoji")

    images_destination = os.path.join(cfg.out_root, "emoji")
    remove_and_copy(os.path.join(gemoji, "images", "emoji"), images_destination)

    json_destination = os.path.join(cfg.out_root, "emoji.json")
    remove_and_copy(os.path.join(gemoji, "db", "emoji.json"), json_destination)

    return [images_destination, json_destination]


def copy_static_resources(cfg: BuildConfig) -> str:
    """Stage `app/static/<platform>` then merge `app/static/common` underneath it.

    Platform files win over common files with the same relative path.
    """
    static_root = os.path.join(cfg.app_root, "static")
    platform_specific = os.path.join(static_root, cfg.host_platform)
    common = os.path.join(static_root, "common")
    destination = os.path.join(cfg.out_root, "static")

    remove_path(destination)
    if os.path.exists(platform_specific):
        copy_path(platform_specific, destination)
    copy_path(common, destination, overwrite=False)
    return destination


def move_analysis_files(cfg: BuildConfig) -> str | None:
    """Move the renderer analysis report to the dist root so it never ships in the app."""
    source = os.path.join(cfg.out_root, RENDERER_REPORT)
    if not os.path.exists(source):
        return None

    os.makedirs(cfg.dist_root, exist_ok=True)
    destination = os.path.join(cfg.dist_root, RENDERER_REPORT)
    copy_path(source, destination, overwrite=True)
    os.unlink(source)
    return destination
