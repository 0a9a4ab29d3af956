from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict

from jsonschema import Draft7Validator

from ..models.exceptions import ContractViolationException

COMPLIANCE_REPORT = "compliance_report.json"
MULTIMODAL_REPORT = "multimodal_report.json"
GREENLIGHT_BRIEF = "greenlight_brief.json"

_GUARDRAILS_DIR = Path(__file__).resolve().parent.parent / "guardrails"

_SCHEMA_CACHE: Dict[str, Draft7Validator] = {}

# Keywords the Gemini response schema (OpenAPI subset) understands
_RESPONSE_SCHEMA_KEYS = {"type", "description", "enum", "properties", "required", "items", "format", "nullable"}


def load_contract(name: str) -> Draft7Validator:
    if name in _SCHEMA_CACHE:
        return _SCHEMA_CACHE[name]

    schema_path = _GUARDRAILS_DIR / name
    with open(schema_path, "r", encoding="utf-8") as f:
        schema = json.load(f)
    validator = Draft7Validator(schema)
    _SCHEMA_CACHE[name] = validator
    return validator


def validate_contract(name: str, payload: Any) -> None:
    validator = load_contract(name)
    errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        msgs = [f"{list(e.path)}: {e.message}" for e in errors]
        raise ContractViolationException(name, msgs)


def _convert(node: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in node.items():
        if key not in _RESPONSE_SCHEMA_KEYS:
            continue
        if key == "type":
            out["type"] = str(value).upper()
        elif key == "properties":
            out["properties"] = {k: _convert(v) for k, v in value.items()}
        elif key == "items":
            out["items"] = _convert(value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def to_response_schema(name: str) -> Dict[str, Any]:
    """Translate a guardrails contract into Gemini's `responseSchema` form."""
    return _convert(load_contract(name).schema)
