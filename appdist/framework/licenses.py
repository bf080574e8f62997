"""Turn the choosealicense.com documents into the app's bundled license list."""

from __future__ import annotations

import json
import os
import re
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

import yaml

from appdist.foundation.fs import remove_path, write_text
from appdist.framework.errors import LicenseDocumentError

CHOOSEALICENSE_DIR = "choosealicense.com"
LICENSES_SUBDIR = "_licenses"
AVAILABLE_LICENSES_FILE = "available-licenses.json"
ATTRIBUTION_FILE = "LICENSE.choosealicense.md"

_FRONT_MATTER_RE = re.compile(
    r"\A\ufeff?---[ \t]*\r?\n(?P<yaml>.*?)^(?:---|\.\.\.)[ \t]*(?:\r?\n|\Z)(?P<body>.*)\Z",
    re.DOTALL | re.MULTILINE,
)


@dataclass(frozen=True)
class FrontMatter:
    attributes: dict[str, Any]
    body: str


@dataclass(frozen=True)
class LicenseRecord:
    name: str
    featured: bool
    body: str
    hidden: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def parse_front_matter(text: str, *, source: str = "<document>") -> FrontMatter:
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        raise LicenseDocumentError(f"Missing front matter block in {source}")
    try:
        attributes = yaml.safe_load(match.group("yaml"))
    except yaml.YAMLError as exc:
        raise LicenseDocumentError(f"Invalid front matter YAML in {source}: {exc}") from exc

    if attributes is None:
        attributes = {}
    if not isinstance(attributes, Mapping):
        raise LicenseDocumentError(f"Front matter must be a YAML mapping: {source}")
    return FrontMatter(attributes=dict(attributes), body=match.group("body"))


def _optional_bool(attributes: Mapping[str, Any], key: str, source: str) -> bool | None:
    if key not in attributes:
        return None
    value = attributes[key]
    if value is None or isinstance(value, bool):
        return value
    raise LicenseDocumentError(f"Front matter field {key} must be a boolean in {source}: {value!r}")


def license_from_document(text: str, *, source: str = "<document>") -> LicenseRecord:
    document = parse_front_matter(text, source=source)
    attrs = document.attributes

    title = attrs.get("title")
    if not isinstance(title, str) or not title.strip():
        raise LicenseDocumentError(f"Front matter is missing a title: {source}")
    nickname = attrs.get("nickname")
    name = nickname if isinstance(nickname, str) and nickname else title

    featured = _optional_bool(attrs, "featured", source)
    # Absence of `hidden` means hidden; only an explicit `hidden: false` publishes.
    hidden = _optional_bool(attrs, "hidden", source) is not False

    return LicenseRecord(
        name=name,
        featured=bool(featured),
        body=document.body.strip(),
        hidden=hidden,
    )


def load_licenses(licenses_dir: str) -> list[LicenseRecord]:
    """Parse every document in `licenses_dir`, in sorted listing order."""
    records: list[LicenseRecord] = []
    for file_name in sorted(os.listdir(licenses_dir)):
        full_path = os.path.join(licenses_dir, file_name)
        try:
            with open(full_path, "r", encoding="utf-8") as handle:
                contents = handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise LicenseDocumentError(f"Cannot read license document {full_path}: {exc}") from exc
        records.append(license_from_document(contents, source=full_path))
    return records


def published_licenses(records: list[LicenseRecord]) -> list[LicenseRecord]:
    return [record for record in records if not record.hidden]


def serialize_licenses(records: list[LicenseRecord]) -> str:
    return json.dumps([record.to_dict() for record in records])


def generate_license_metadata(out_root: str, *, header: str) -> list[LicenseRecord]:
    """
    Write `available-licenses.json` and the choosealicense.com attribution into
    `<out_root>/static`, then remove the source documents from the output tree.

    Every document is parsed before anything is written, so a bad document
    leaves no partial collection behind.
    """
    static_root = os.path.join(out_root, "static")
    choose_a_license = os.path.join(static_root, CHOOSEALICENSE_DIR)

    published = published_licenses(load_licenses(os.path.join(choose_a_license, LICENSES_SUBDIR)))
    with open(os.path.join(choose_a_license, "LICENSE.md"), "r", encoding="utf-8") as handle:
        license_text = handle.read()

    write_text(os.path.join(static_root, AVAILABLE_LICENSES_FILE), serialize_licenses(published))
    write_text(os.path.join(static_root, ATTRIBUTION_FILE), f"{header}{license_text}")

    remove_path(choose_a_license)
    return published
