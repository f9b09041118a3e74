"""Tool registry and define_tool helper."""

from __future__ import annotations

import inspect
import json
from typing import Any, Awaitable, Callable, Type

from pydantic import BaseModel, ValidationError

from ..errors import ToolNotFoundError, ToolValidationError
from ..infra.logging import get_logger
from ..types import ToolCall, ToolContext, ToolDefinition, ToolResult
from .schema import PydanticSchema

logger = get_logger(__name__)


def define_tool(
    name: str,
    description: str,
    parameters: Type[BaseModel] | PydanticSchema,
    execute: Callable[..., Awaitable[Any]],
) -> ToolDefinition:
    schema = parameters if isinstance(parameters, PydanticSchema) else PydanticSchema(parameters)
    return ToolDefinition(name=name, description=description, parameters=schema, execute=execute)


class ToolRegistry:
    """Named, schema-validated capabilities.

    ``execute`` never raises: unknown tools, arguments that fail validation
    and tool failures all come back as an unsuccessful ``ToolResult`` whose
    content describes the problem.
    """

    def __init__(self, tools: list[ToolDefinition] | None = None) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def list(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def execute(self, call: ToolCall, ctx: ToolContext) -> ToolResult:
        tool = self._tools.get(call.name)
        if not tool:
            return _failure(call, f"Error: {ToolNotFoundError(call.name).message}")

        try:
            parsed = tool.parameters.parse(call.arguments or {})
        except (json.JSONDecodeError, ValidationError, TypeError, ValueError) as e:
            err = ToolValidationError(call.name, f"Validation error for {call.name}: {e}", e)
            logger.info("tool.invalid_arguments", tool=call.name, error=str(e))
            return _failure(call, err.message)

        try:
            result = tool.execute(parsed, ctx)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.warning("tool.failed", tool=call.name, error=str(e))
            return _failure(call, f"Error: {e}")

        content = result if isinstance(result, str) else json.dumps(result)
        return ToolResult(tool_call_id=call.id, tool_name=call.name, success=True, content=content)


def _failure(call: ToolCall, message: str) -> ToolResult:
    return ToolResult(tool_call_id=call.id, tool_name=call.name, success=False, content=message)


__all__ = ["define_tool", "ToolRegistry", "PydanticSchema"]
