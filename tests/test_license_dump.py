import asyncio
import json

import pytest

from appdist.framework.errors import LicenseDumpError
from appdist.framework.license_dump import (
    collect_license_summary,
    find_spdx_from_text,
    iter_package_dirs,
    update_license_dump,
)


def _install(root, name: str, manifest: dict, license_text: str | None = None):
    package_dir = root / "node_modules"
    for part in name.split("/"):
        package_dir = package_dir / part
    package_dir.mkdir(parents=True)
    (package_dir / "package.json").write_text(
        json.dumps({"name": name, **manifest}), encoding="utf-8"
    )
    if license_text is not None:
        (package_dir / "LICENSE").write_text(license_text, encoding="utf-8")
    return package_dir


def test_iter_package_dirs_includes_scoped_and_nested(tmp_path):
    outer = _install(tmp_path, "outer", {"version": "1.0.0"})
    _install(outer, "inner", {"version": "2.0.0"})
    _install(tmp_path, "@scope/pkg", {"version": "3.0.0"})
    (tmp_path / "node_modules" / ".bin").mkdir()

    dirs = [p.replace(str(tmp_path), "") for p in iter_package_dirs(str(tmp_path / "node_modules"))]
    assert [d.replace("\\", "/") for d in dirs] == [
        "/node_modules/@scope/pkg",
        "/node_modules/outer",
        "/node_modules/outer/node_modules/inner",
    ]


def test_declared_license_and_text_are_collected(tmp_path):
    _install(
        tmp_path,
        "left-pad",
        {"version": "1.3.0", "license": "WTFPL", "repository": {"url": "git+https://x/left-pad"}},
        license_text="DO WHAT THE FUCK YOU WANT",
    )
    summary = collect_license_summary([str(tmp_path)])
    assert summary == {
        "left-pad@1.3.0": {
            "license": "WTFPL",
            "repository": "git+https://x/left-pad",
            "source": "LICENSE",
            "sourceText": "DO WHAT THE FUCK YOU WANT",
        }
    }


def test_license_sniffed_from_text_when_undeclared(tmp_path):
    _install(
        tmp_path,
        "sniffed",
        {"version": "0.1.0"},
        license_text="Permission is hereby granted, free of charge, to any person",
    )
    summary = collect_license_summary([str(tmp_path)])
    assert summary["sniffed@0.1.0"]["license"] == "MIT"


def test_legacy_licenses_array(tmp_path):
    _install(
        tmp_path,
        "legacy",
        {"version": "1.0.0", "licenses": [{"type": "MIT"}, {"type": "Apache-2.0"}]},
    )
    summary = collect_license_summary([str(tmp_path)])
    assert summary["legacy@1.0.0"]["license"] == "(MIT OR Apache-2.0)"


def test_unknown_license_fails_unless_overridden(tmp_path):
    _install(tmp_path, "mystery", {"version": "9.9.9"})

    with pytest.raises(LicenseDumpError, match="mystery@9.9.9") as excinfo:
        collect_license_summary([str(tmp_path)])
    assert excinfo.value.details["packages"] == ["mystery@9.9.9"]

    summary = collect_license_summary(
        [str(tmp_path)], {"mystery@9.9.9": {"license": "MIT", "sourceText": "MIT text"}}
    )
    assert summary["mystery@9.9.9"]["license"] == "MIT"
    assert summary["mystery@9.9.9"]["source"] == "license-overrides"


def test_find_spdx_from_text():
    assert find_spdx_from_text("Apache License\nVersion 2.0") == "Apache-2.0"
    assert find_spdx_from_text("Redistribution and use in source and binary forms") == "BSD-3-Clause"
    assert find_spdx_from_text("all rights reserved") is None


def test_update_license_dump_writes_output(tmp_path):
    project = tmp_path / "project"
    _install(project, "root-dep", {"version": "1.0.0", "license": "MIT"})
    _install(project / "app", "app-dep", {"version": "2.0.0", "license": "ISC"})
    overrides = project / "script" / "license-overrides.yaml"
    overrides.parent.mkdir(parents=True)
    overrides.write_text("app-dep:\n  license: BSD-2-Clause\n", encoding="utf-8")
    out = tmp_path / "out"

    destination = asyncio.run(
        update_license_dump(str(project), str(out), overrides_path=str(overrides))
    )

    payload = json.loads((out / "static" / "licenses.json").read_text(encoding="utf-8"))
    assert destination == str(out / "static" / "licenses.json")
    assert sorted(payload) == ["app-dep@2.0.0", "root-dep@1.0.0"]
    assert payload["app-dep@2.0.0"]["license"] == "BSD-2-Clause"
