"""Schema validation for emitted build results."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from jsonschema import Draft202012Validator

from mcp_server_build.types import BuildResult

# --- Schema loaders ---------------------------------------------------------


# `schema` is a plain data directory next to this module
_SCHEMA_DIR = Path(__file__).resolve().parent / "schema"


def _load_schema(resource_name: str) -> dict:
    with open(_SCHEMA_DIR / resource_name, encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=1)
def _build_result_schema() -> dict:
    return _load_schema("build-result.schema.json")


# --- Public validators ------------------------------------------------------


def validate_build_result(data: dict) -> None:
    """Raise `jsonschema.ValidationError` if *data* is not a valid result document."""
    Draft202012Validator(_build_result_schema()).validate(data)


def build_result_document(result: BuildResult) -> dict:
    """JSON-ready dict of *result*, validated against the result schema."""
    data = result.model_dump(mode="json")
    validate_build_result(data)
    return data
