"""Artifact checksums.

Every discovered archive carries the SHA-256 of its full contents; `verify`
compares a file on disk against a digest published elsewhere.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

_CHUNK = 1024 * 1024
_PREFIX = "sha256:"
_HEX_DIGEST_RE = re.compile(r"[0-9a-f]{64}")

_ARCHIVE_KINDS = {
    ".jar": "JAR archive",
    ".war": "web archive",
    ".ear": "enterprise archive",
}


def sha256(path: Path) -> str:
    """Lowercase hex SHA-256 of *path*, read in 1 MiB chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


def normalize_digest(expected: str) -> str:
    value = expected.strip()
    if value.lower().startswith(_PREFIX):
        value = value[len(_PREFIX):]
    return value.lower()


def describe_archive(path: Path) -> str:
    kind = _ARCHIVE_KINDS.get(path.suffix.lower(), "file")
    return f"{kind} {path.name}"


def verify_sha256(path: Path, expected: str) -> str:
    """Check the artifact at *path* against *expected* and return its digest.

    *expected* is plain hex or `sha256:<hex>`, in any case. Raises ValueError
    for a malformed digest or a mismatch.
    """
    wanted = normalize_digest(expected)
    if not _HEX_DIGEST_RE.fullmatch(wanted):
        raise ValueError(
            f"Expected digest for {describe_archive(path)} is not a SHA-256 value: {expected!r}"
        )
    actual = sha256(path)
    if actual != wanted:
        raise ValueError(
            f"Checksum mismatch for {describe_archive(path)}: "
            f"computed sha256:{actual}, expected sha256:{wanted}"
        )
    return actual
