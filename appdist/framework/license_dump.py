"""Aggregate third-party license information for everything that ships.

Walks the installed `node_modules` trees of the project and of the app,
reads each package's declared license and license file, applies manual
overrides and writes `static/licenses.json` into the output tree.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from appdist.foundation.config_io import read_yaml_mapping
from appdist.foundation.fs import write_text
from appdist.framework.errors import LicenseDumpError

LICENSE_DUMP_FILE = "licenses.json"
_LICENSE_FILE_RE = re.compile(r"^(licen[cs]e|copying)(\.[a-z0-9]+)?$", re.IGNORECASE)


@dataclass(frozen=True)
class PackageLicense:
    name: str
    version: str
    license: str | None
    repository: str | None
    source: str | None
    source_text: str | None

    @property
    def key(self) -> str:
        return f"{self.name}@{self.version}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "license": self.license,
            "repository": self.repository,
            "source": self.source,
            "sourceText": self.source_text,
        }


def find_spdx_from_text(text: str) -> str | None:
    if re.search(r"apache\s*[- ]?\s*2\.0|apache\s+license", text, re.IGNORECASE):
        return "Apache-2.0"
    if re.search(r"\bMIT\b", text):
        return "MIT"
    if re.search(r"Permission is hereby granted,?\s+free of charge", text, re.IGNORECASE):
        return "MIT"
    if "BSD-3" in text or "3-Clause BSD" in text:
        return "BSD-3-Clause"
    if "BSD-2" in text or "2-Clause BSD" in text:
        return "BSD-2-Clause"
    if re.search(r"Redistribution and use in source and binary forms", text, re.IGNORECASE):
        return "BSD-3-Clause"
    if re.search(r"Permission to use, copy, modify, and/or distribute", text, re.IGNORECASE):
        return "ISC"
    return None


def _declared_license(package: Mapping[str, Any]) -> str | None:
    value = package.get("license")
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, Mapping) and isinstance(value.get("type"), str):
        return value["type"].strip() or None

    legacy = package.get("licenses")
    if isinstance(legacy, list):
        types = [
            str(item.get("type")).strip()
            for item in legacy
            if isinstance(item, Mapping) and item.get("type")
        ]
        if types:
            return types[0] if len(types) == 1 else f"({' OR '.join(types)})"
    return None


def _repository_url(package: Mapping[str, Any]) -> str | None:
    repo = package.get("repository")
    if isinstance(repo, str):
        return repo or None
    if isinstance(repo, Mapping) and isinstance(repo.get("url"), str):
        return repo["url"] or None
    return None


def _license_file(package_dir: str) -> str | None:
    try:
        entries = sorted(os.listdir(package_dir))
    except OSError:
        return None
    for entry in entries:
        if _LICENSE_FILE_RE.match(entry) and os.path.isfile(os.path.join(package_dir, entry)):
            return os.path.join(package_dir, entry)
    return None


def read_package_license(package_dir: str) -> PackageLicense | None:
    manifest_path = os.path.join(package_dir, "package.json")
    if not os.path.isfile(manifest_path):
        return None
    try:
        with open(manifest_path, "r", encoding="utf-8") as handle:
            package = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise LicenseDumpError(f"Cannot read package manifest {manifest_path}: {exc}") from exc
    if not isinstance(package, Mapping) or not package.get("name"):
        return None

    license_id = _declared_license(package)
    source = None
    source_text = None
    license_path = _license_file(package_dir)
    if license_path is not None:
        with open(license_path, "r", encoding="utf-8", errors="replace") as handle:
            source_text = handle.read()
        source = os.path.basename(license_path)
        if license_id is None:
            license_id = find_spdx_from_text(source_text)

    return PackageLicense(
        name=str(package["name"]),
        version=str(package.get("version") or "0.0.0"),
        license=license_id,
        repository=_repository_url(package),
        source=source,
        source_text=source_text,
    )


def iter_package_dirs(node_modules: str) -> Iterator[str]:
    """Yield every installed package directory, scoped and nested ones included."""
    if not os.path.isdir(node_modules):
        return
    for entry in sorted(os.listdir(node_modules)):
        if entry.startswith("."):
            continue
        path = os.path.join(node_modules, entry)
        if not os.path.isdir(path):
            continue
        if entry.startswith("@"):
            for scoped in sorted(os.listdir(path)):
                scoped_path = os.path.join(path, scoped)
                if os.path.isdir(scoped_path):
                    yield scoped_path
                    yield from iter_package_dirs(os.path.join(scoped_path, "node_modules"))
            continue
        yield path
        yield from iter_package_dirs(os.path.join(path, "node_modules"))


def load_license_overrides(path: str | None) -> dict[str, dict[str, Any]]:
    if path is None or not os.path.exists(path):
        return {}
    raw = read_yaml_mapping(path)
    overrides: dict[str, dict[str, Any]] = {}
    for key, value in raw.items():
        if not isinstance(value, Mapping):
            raise ValueError(f"License override for {key} must be a mapping: {path}")
        overrides[str(key)] = dict(value)
    return overrides


def _apply_override(entry: PackageLicense, overrides: Mapping[str, Mapping[str, Any]]) -> PackageLicense:
    override = overrides.get(entry.key) or overrides.get(entry.name)
    if not override:
        return entry
    return PackageLicense(
        name=entry.name,
        version=entry.version,
        license=override.get("license", entry.license),
        repository=override.get("repository", entry.repository),
        source=override.get("source", "license-overrides"),
        source_text=override.get("sourceText", entry.source_text),
    )


def collect_license_summary(
    roots: list[str], overrides: Mapping[str, Mapping[str, Any]] | None = None
) -> dict[str, dict[str, Any]]:
    overrides = overrides or {}
    summary: dict[str, dict[str, Any]] = {}
    unknown: list[str] = []

    for root in roots:
        for package_dir in iter_package_dirs(os.path.join(root, "node_modules")):
            entry = read_package_license(package_dir)
            if entry is None or entry.key in summary:
                continue
            entry = _apply_override(entry, overrides)
            if not entry.license:
                unknown.append(entry.key)
                continue
            summary[entry.key] = entry.to_dict()

    if unknown:
        raise LicenseDumpError(
            f"Unable to determine the license for {len(unknown)} package(s): {', '.join(sorted(unknown))}",
            details={"packages": sorted(unknown)},
        )
    return dict(sorted(summary.items()))


async def update_license_dump(
    project_root: str, out_root: str, *, overrides_path: str | None = None
) -> str:
    roots = [project_root, os.path.join(project_root, "app")]
    overrides = await asyncio.to_thread(load_license_overrides, overrides_path)
    summary = await asyncio.to_thread(collect_license_summary, roots, overrides)

    destination = os.path.join(out_root, "static", LICENSE_DUMP_FILE)
    await asyncio.to_thread(write_text, destination, json.dumps(summary))
    return destination
