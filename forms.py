"""Parsers for multipart form fields. List and object fields arrive as JSON strings."""

import json
from typing import Optional

from fastapi import HTTPException


def _parse(value: str, field: str, kind: type, label: str):
    try:
        parsed = json.loads(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field} must be a JSON {label}")
    if not isinstance(parsed, kind):
        raise HTTPException(status_code=400, detail=f"{field} must be a JSON {label}")
    return parsed


def json_list(value: Optional[str], field: str) -> list:
    if not value:
        return []
    return _parse(value, field, list, "array")


def json_object(value: Optional[str], field: str) -> Optional[dict]:
    if not value:
        return None
    return _parse(value, field, dict, "object")


def form_bool(value: Optional[str]) -> bool:
    return str(value).lower() == "true"
