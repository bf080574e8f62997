from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence


def build_parser() -> argparse.ArgumentParser:
    return argparse.ArgumentParser(
        prog="appdist",
        description=(
            "Package the built app in ./out into a platform bundle. "
            "All settings come from config/appdist.yaml (or $APPDIST_CONFIG) and the environment."
        ),
        add_help=True,
    )


def main(argv: Sequence[str] | None = None) -> int:
    build_parser().parse_args(list(argv) if argv is not None else None)

    from .app.build import run_build
    from .foundation.config_io import load_config
    from .foundation.logging_utils import (
        configure_stdio_utf8,
        generate_build_id,
        setup_build_logger,
    )
    from .framework.config import BuildConfig

    configure_stdio_utf8()
    raw_cfg, meta = load_config()
    base_dir = meta.get("project_root") or None
    cfg, warnings = BuildConfig.from_dict(raw_cfg, base_dir=base_dir)

    build_id = generate_build_id()
    logger, _log_file = setup_build_logger(cfg.log_dir, build_id)
    logger.debug("Loaded config (%s): %s", meta.get("mode"), ", ".join(meta.get("paths", [])))
    for warning in warnings:
        logger.warning("%s", warning)

    result = asyncio.run(run_build(cfg, logger=logger, build_id=build_id))
    return int(result.exit_code)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
