import pytest

from appdist import cli
from appdist.app import build as app_build
from appdist.app.build import BuildFailed, BuildSucceeded


def _write_config(tmp_path):
    config_path = tmp_path / "appdist.yaml"
    config_path.write_text(
        "\n".join(
            [
                f"project_root: '{tmp_path.as_posix()}'",
                "product_name: Kactus",
                "bundle_id: io.kactus.KactusClient",
                "externals: [keytar]",
                "",
            ]
        ),
        encoding="utf-8",
    )
    return config_path


def test_cli_help_smoke(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--help"])
    assert excinfo.value.code == 0
    assert "appdist" in capsys.readouterr().out


def test_cli_rejects_arguments():
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["package"])
    assert excinfo.value.code != 0


@pytest.mark.parametrize(
    "result, expected",
    [
        (BuildSucceeded(bundle_paths=("/dist/Kactus-darwin-x64",)), 0),
        (BuildFailed(exit_code=1, cause=RuntimeError("boom")), 1),
    ],
)
def test_cli_maps_build_result_to_exit_code(tmp_path, monkeypatch, result, expected):
    monkeypatch.setenv("APPDIST_CONFIG", str(_write_config(tmp_path)))
    monkeypatch.setenv("RELEASE_CHANNEL", "production")
    seen = {}

    async def fake_run_build(cfg, *, logger, build_id):
        seen["cfg"] = cfg
        return result

    monkeypatch.setattr(app_build, "run_build", fake_run_build)

    assert cli.main([]) == expected
    assert seen["cfg"].is_publishable is True
    assert seen["cfg"].project_root == str(tmp_path)
