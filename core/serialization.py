"""Dataclass tree -> JSON-compatible tree with camelCase keys."""
import json
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any, Mapping, Optional


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _truncate_value(value: str, max_length: Optional[int]) -> str:
    """Truncate a string to max_length, adding ellipsis if truncated."""
    if not max_length or len(value) <= max_length:
        return value
    return value[:max_length] + "..."


def to_dict(node: Any, value_max_length: Optional[int] = None) -> Any:
    """Convert a result (or any part of one) to plain dicts, lists and scalars.

    Enum members become their string values; mapping keys are kept as-is;
    tuples become lists. ``value_max_length`` truncates long strings such as
    code snippets (None keeps them whole).
    """
    if isinstance(node, Enum):
        return node.value
    if is_dataclass(node) and not isinstance(node, type):
        return {camel_case(f.name): to_dict(getattr(node, f.name), value_max_length) for f in fields(node)}
    if isinstance(node, Mapping):
        return {str(k): to_dict(v, value_max_length) for k, v in node.items()}
    if isinstance(node, (list, tuple)):
        return [to_dict(item, value_max_length) for item in node]
    if isinstance(node, str):
        return _truncate_value(node, value_max_length)
    return node


def to_json(node: Any, indent: Optional[int] = 2, value_max_length: Optional[int] = None) -> str:
    return json.dumps(to_dict(node, value_max_length), indent=indent, ensure_ascii=False)
