"""Tool argument schemas backed by pydantic models."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel


class PydanticSchema:
    """Strict argument schema: unknown argument names are rejected.

    ``to_json_schema`` emits the function-calling form of the model, without
    pydantic's generated titles and closed to additional properties.
    """

    def __init__(self, model: type[BaseModel]) -> None:
        self.model = model

    def parse(self, raw: Any) -> BaseModel:
        data = json.loads(raw) if isinstance(raw, str) else raw
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise TypeError(f"Arguments must be an object, got {type(data).__name__}")
        unknown = sorted(set(data) - set(self.model.model_fields))
        if unknown:
            raise ValueError(f"Unexpected arguments: {', '.join(unknown)}")
        return self.model.model_validate(data)

    def to_json_schema(self) -> dict:
        schema = _strip_titles(self.model.model_json_schema())
        schema["additionalProperties"] = False
        return schema


def _strip_titles(node: Any) -> Any:
    if isinstance(node, dict):
        return {
            k: _strip_titles(v)
            for k, v in node.items()
            if not (k == "title" and isinstance(v, str))
        }
    if isinstance(node, list):
        return [_strip_titles(v) for v in node]
    return node
