"""Filesystem primitives with fs-extra style semantics."""

from __future__ import annotations

import os
import shutil


def remove_path(path: str) -> None:
    """Remove a file, symlink or directory tree; missing paths are ignored."""
    if os.path.islink(path) or os.path.isfile(path):
        os.unlink(path)
    elif os.path.isdir(path):
        shutil.rmtree(path)


def copy_path(source: str, destination: str, *, overwrite: bool = True) -> None:
    """
    Copy a file, symlink or directory tree.

    Symlinks are recreated as links, never followed. Directories are merged
    into an existing destination directory. With `overwrite=False`, entries
    that already exist at the destination are kept.
    """
    if not os.path.lexists(source):
        raise FileNotFoundError(f"Copy source does not exist: {source}")

    is_real_dir = os.path.isdir(source) and not os.path.islink(source)
    if is_real_dir and os.path.isdir(destination) and not os.path.islink(destination):
        for entry in sorted(os.listdir(source)):
            copy_path(
                os.path.join(source, entry),
                os.path.join(destination, entry),
                overwrite=overwrite,
            )
        return

    if os.path.lexists(destination):
        if not overwrite:
            return
        remove_path(destination)
    parent = os.path.dirname(destination)
    if parent:
        os.makedirs(parent, exist_ok=True)

    if os.path.islink(source):
        os.symlink(
            os.readlink(source), destination, target_is_directory=os.path.isdir(source)
        )
    elif is_real_dir:
        shutil.copytree(source, destination, symlinks=True)
    else:
        shutil.copy2(source, destination)


def write_text(path: str, text: str) -> None:
    """Write text to a UTF-8 file, creating parent directories."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as file:
        file.write(text)
