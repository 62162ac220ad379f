"""JSON helpers that keep decimal amounts exact on the wire.

`json.loads(..., parse_float=Decimal)` reads number literals without going
through a binary float; `dumps` writes `Decimal` values back as number
literals with every digit intact.
"""

import json
from decimal import Decimal
from typing import Any


def loads(raw: bytes | str) -> Any:
    return json.loads(raw, parse_float=Decimal)


def dumps(value: Any) -> str:
    """Compact `json.dumps` that renders `Decimal` as an exact JSON number."""

    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"{value} is not a JSON number")
        return str(value)
    if isinstance(value, dict):
        return "{" + ",".join(f"{json.dumps(str(key))}:{dumps(item)}" for key, item in value.items()) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(dumps(item) for item in value) + "]"
    return json.dumps(value)
