"""NPM descriptor reader.

Reads the top-level `name` and `version` fields of package.json. A file that is
not valid JSON yields no metadata rather than an error.
"""

from __future__ import annotations

import json
from pathlib import Path


def _read_package_json(root: Path) -> dict | None:
    pj = root / "package.json"
    if not pj.exists():
        return None
    try:
        data = json.loads(pj.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _field(root: Path, key: str) -> str | None:
    pkg = _read_package_json(root)
    value = (pkg or {}).get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class NodePackageReader:
    additional_files = (
        "src",
        "public",
        "dist",
        "node_modules",
        "package-lock.json",
        "yarn.lock",
        "webpack.config.js",
        "tsconfig.json",
        ".babelrc",
    )

    def project_name(self, root: Path) -> str | None:
        return _field(root, "name")

    def project_version(self, root: Path) -> str | None:
        return _field(root, "version")


NPM_READER = NodePackageReader()
