"""Post-build checks on the rendered stylesheets."""

from __future__ import annotations

import asyncio
import os
import re

from appdist.framework.errors import ValidationFailedError

_VAR_REFERENCE_RE = re.compile(r"var\(\s*(--[A-Za-z0-9_-]+)\s*(?P<fallback>,)?")
_VAR_DECLARATION_RE = re.compile(r"(--[A-Za-z0-9_-]+)\s*:")
_SASS_VARIABLE_RE = re.compile(r"(?<![\w$])\$[A-Za-z_][A-Za-z0-9_-]*")
_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_STRING_RE = re.compile(r"'(?:[^'\\\n]|\\.)*'" r'|"(?:[^"\\\n]|\\.)*"')
_INTERPOLATION_RE = re.compile(r"#\{[^}]*\}")


def iter_stylesheets(out_root: str) -> list[str]:
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(out_root):
        dirnames[:] = sorted(d for d in dirnames if d != "node_modules")
        for filename in sorted(filenames):
            if filename.endswith(".css"):
                found.append(os.path.join(dirpath, filename))
    return found


def find_sass_injection_problems(stylesheets: dict[str, str]) -> list[str]:
    declared: set[str] = set()
    referenced: dict[str, set[str]] = {}
    problems: list[str] = []

    for path, raw in stylesheets.items():
        text = _STRING_RE.sub('""', _COMMENT_RE.sub("", raw))
        declared.update(_VAR_DECLARATION_RE.findall(text))
        for match in _VAR_REFERENCE_RE.finditer(text):
            # A reference with a fallback may be supplied by a runtime theme.
            if match.group("fallback"):
                continue
            referenced.setdefault(match.group(1), set()).add(path)
        leftovers = sorted(set(_SASS_VARIABLE_RE.findall(text)))
        if leftovers:
            problems.append(f"{path}: unresolved Sass variable(s) {', '.join(leftovers)}")
        interpolations = sorted(set(_INTERPOLATION_RE.findall(text)))
        if interpolations:
            problems.append(f"{path}: unresolved Sass interpolation(s) {', '.join(interpolations)}")

    for name in sorted(set(referenced) - declared):
        where = ", ".join(sorted(referenced[name]))
        problems.append(f"{name} is referenced but never declared ({where})")
    return problems


def _read_stylesheets(out_root: str) -> dict[str, str]:
    sheets: dict[str, str] = {}
    for path in iter_stylesheets(out_root):
        with open(path, "r", encoding="utf-8") as handle:
            sheets[os.path.relpath(path, out_root)] = handle.read()
    return sheets


async def verify_injected_sass_variables(out_root: str) -> int:
    """Check that every CSS variable the renderer uses was injected from Sass.

    Returns the number of stylesheets checked.
    """
    sheets = await asyncio.to_thread(_read_stylesheets, out_root)
    problems = find_sass_injection_problems(sheets)
    if problems:
        raise ValidationFailedError(
            f"Found {len(problems)} Sass variable problem(s) in the rendered app",
            details={"problems": problems},
        )
    return len(sheets)
