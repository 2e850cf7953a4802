"""Shared serialization utilities for results and sinks."""

import json
from dataclasses import asdict, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable


def to_dict(obj: Any) -> dict:
    """Convert a model (or plain dict) to a JSON-ready dictionary."""
    if is_dataclass(obj):
        return {key: serialize_value(value) for key, value in asdict(obj).items()}
    elif isinstance(obj, dict):
        return {key: serialize_value(value) for key, value in obj.items()}
    else:
        return {"value": str(obj)}


def to_records(objs: Iterable[Any]) -> list[dict]:
    return [to_dict(obj) for obj in objs]


def to_json(obj: Any, pretty: bool = False) -> str:
    """Serialize a model or list of models to a JSON string."""
    data = to_records(obj) if isinstance(obj, list) else to_dict(obj)
    return json.dumps(data, indent=2 if pretty else None, ensure_ascii=False)


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output.

    Money stays exact: ``Decimal`` is written as a string.
    """
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    # datetime is a date subclass
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    return value
