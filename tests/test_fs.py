import os

import pytest

from appdist.foundation.fs import copy_path, remove_path


def test_copy_keeps_symlinks_as_links(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "real").write_text("payload", encoding="utf-8")
    os.symlink("real", src / "link")

    dst = tmp_path / "dst"
    copy_path(str(src), str(dst))

    assert os.path.islink(dst / "link")
    assert os.readlink(dst / "link") == "real"
    assert (dst / "link").read_text(encoding="utf-8") == "payload"


def test_copy_does_not_follow_directory_cycles(tmp_path):
    src = tmp_path / "git"
    (src / "bin").mkdir(parents=True)
    (src / "bin" / "git").write_text("#!/bin/sh\n", encoding="utf-8")
    os.symlink("..", src / "bin" / "up", target_is_directory=True)

    dst = tmp_path / "out" / "git"
    copy_path(str(src), str(dst))

    assert os.path.islink(dst / "bin" / "up")
    assert sorted(os.listdir(dst / "bin")) == ["git", "up"]


def test_merge_into_existing_tree_replaces_and_keeps(tmp_path):
    src = tmp_path / "src"
    (src / "nested").mkdir(parents=True)
    (src / "nested" / "a.txt").write_text("new", encoding="utf-8")
    os.symlink("a.txt", src / "nested" / "alias")

    dst = tmp_path / "dst"
    (dst / "nested").mkdir(parents=True)
    (dst / "nested" / "a.txt").write_text("old", encoding="utf-8")
    (dst / "nested" / "alias").write_text("platform", encoding="utf-8")
    (dst / "nested" / "extra.txt").write_text("keep", encoding="utf-8")

    copy_path(str(src), str(dst), overwrite=False)
    assert (dst / "nested" / "a.txt").read_text(encoding="utf-8") == "old"
    assert not os.path.islink(dst / "nested" / "alias")

    copy_path(str(src), str(dst))
    assert (dst / "nested" / "a.txt").read_text(encoding="utf-8") == "new"
    assert os.path.islink(dst / "nested" / "alias")
    assert (dst / "nested" / "extra.txt").read_text(encoding="utf-8") == "keep"


def test_copy_missing_source_raises(tmp_path):
    with pytest.raises(FileNotFoundError, match="Copy source does not exist"):
        copy_path(str(tmp_path / "nope"), str(tmp_path / "dst"))


def test_remove_path_removes_link_not_target(tmp_path):
    target = tmp_path / "target"
    target.mkdir()
    (target / "f").write_text("x", encoding="utf-8")
    os.symlink(target, tmp_path / "link", target_is_directory=True)

    remove_path(str(tmp_path / "link"))
    remove_path(str(tmp_path / "missing"))

    assert not os.path.lexists(tmp_path / "link")
    assert (target / "f").exists()
