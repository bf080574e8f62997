from __future__ import annotations

import os
import subprocess

from appdist.framework.config import BuildConfig
from appdist.framework.errors import BuildError


def should_setup_trust(cfg: BuildConfig) -> bool:
    # Forked builds have no access to the signing secrets.
    return cfg.is_ci and not cfg.is_fork


def setup_macos_keychain(cfg: BuildConfig) -> None:
    script = os.path.join(cfg.project_root, "script", "setup-macos-keychain")
    try:
        subprocess.run([script], check=True)
    except FileNotFoundError as exc:
        raise BuildError(f"Keychain setup script not found: {script}") from exc
    except subprocess.CalledProcessError as exc:
        raise BuildError(f"Keychain setup failed (exit={exc.returncode})") from exc
