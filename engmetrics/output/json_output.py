"""JSON serialization of statistics for OutputFormatter."""

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime


def _default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if is_dataclass(value):
        return asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(records) -> str:
    """Serialize dataclass records (or lists of them) as indented JSON."""
    if isinstance(records, list):
        payload = [asdict(r) if is_dataclass(r) else r for r in records]
    elif is_dataclass(records):
        payload = asdict(records)
    else:
        payload = records
    return json.dumps(payload, indent=2, default=_default)


def print_json(self, records):
    print(to_json(records))
