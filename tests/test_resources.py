from appdist.framework.config import BuildConfig
from appdist.framework.resources import copy_emoji, copy_static_resources, move_analysis_files


def _make_cfg(tmp_path, *, platform: str = "darwin") -> BuildConfig:
    cfg, _warnings = BuildConfig.from_dict(
        {"product_name": "Kactus", "bundle_id": "io.kactus.KactusClient"},
        env={},
        platform=platform,
        base_dir=str(tmp_path),
    )
    return cfg


def test_platform_file_survives_common_merge(tmp_path):
    static = tmp_path / "app" / "static"
    (static / "darwin").mkdir(parents=True)
    (static / "common" / "nested").mkdir(parents=True)
    (static / "darwin" / "shared.txt").write_text("platform", encoding="utf-8")
    (static / "common" / "shared.txt").write_text("common", encoding="utf-8")
    (static / "common" / "nested" / "only-common.txt").write_text("c", encoding="utf-8")

    stale = tmp_path / "out" / "static"
    stale.mkdir(parents=True)
    (stale / "leftover.txt").write_text("old", encoding="utf-8")

    destination = copy_static_resources(_make_cfg(tmp_path))

    assert destination == str(tmp_path / "out" / "static")
    assert (stale / "shared.txt").read_text(encoding="utf-8") == "platform"
    assert (stale / "nested" / "only-common.txt").read_text(encoding="utf-8") == "c"
    assert not (stale / "leftover.txt").exists()


def test_common_only_when_platform_dir_missing(tmp_path):
    static = tmp_path / "app" / "static"
    (static / "common").mkdir(parents=True)
    (static / "common" / "a.txt").write_text("common", encoding="utf-8")

    copy_static_resources(_make_cfg(tmp_path, platform="linux"))

    assert (tmp_path / "out" / "static" / "a.txt").read_text(encoding="utf-8") == "common"


def test_copy_emoji_always_overwrites(tmp_path):
    gemoji = tmp_path / "gemoji"
    (gemoji / "images" / "emoji").mkdir(parents=True)
    (gemoji / "db").mkdir(parents=True)
    (gemoji / "images" / "emoji" / "smile.png").write_bytes(b"new")
    (gemoji / "db" / "emoji.json").write_text("[1]", encoding="utf-8")

    out = tmp_path / "out"
    (out / "emoji").mkdir(parents=True)
    (out / "emoji" / "smile.png").write_bytes(b"old")
    (out / "emoji" / "removed.png").write_bytes(b"gone")
    (out / "emoji.json").write_text("[0]", encoding="utf-8")

    copy_emoji(_make_cfg(tmp_path))

    assert (out / "emoji" / "smile.png").read_bytes() == b"new"
    assert not (out / "emoji" / "removed.png").exists()
    assert (out / "emoji.json").read_text(encoding="utf-8") == "[1]"


def test_move_analysis_files_moves_report(tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    (out / "renderer.report.html").write_text("<html/>", encoding="utf-8")

    moved = move_analysis_files(_make_cfg(tmp_path))

    assert moved == str(tmp_path / "dist" / "renderer.report.html")
    assert (tmp_path / "dist" / "renderer.report.html").read_text(encoding="utf-8") == "<html/>"
    assert not (out / "renderer.report.html").exists()


def test_move_analysis_files_noop_without_report(tmp_path):
    (tmp_path / "out").mkdir()
    assert move_analysis_files(_make_cfg(tmp_path)) is None
    assert not (tmp_path / "dist").exists()
