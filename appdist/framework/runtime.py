from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from appdist.framework.config import BuildConfig


@dataclass
class BuildContext:
    build_id: str
    cfg: BuildConfig
    logger: logging.Logger
    created_at: str

    outputs: dict[str, Any] = field(default_factory=dict)
    steps: list[dict[str, Any]] = field(default_factory=list)

    bundle_paths: list[str] = field(default_factory=list)
