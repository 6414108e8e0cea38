"""
Tools System
============

Tools are named, schema-described operations the language model can call.
They come from two places:

1. Local tools: defined in this package and executed in-process
   (e.g. convert_timezone).
2. Remote tools: discovered at request time from the calendar tool server
   over the Model Context Protocol (see tools/gateway.py), e.g.
   users.search or calendar.create_event.

Both kinds share one calling convention:
- name, description and a JSON Schema for the parameters
- async execute(params) -> ToolResult

A failed tool call is never an exception from the caller's point of view:
it comes back as ToolResult(success=False, error=...), which is fed to the
model so it can explain the problem or change its plan.

This module provides:
- ToolResult for standardized responses
- Tool / LocalTool descriptors
- ToolSet, the per-request mapping of exposed name -> tool
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, ClassVar, Iterable

from schedulebot.errors import ToolExecutionError
from schedulebot.utils.logger import Logger

logger = Logger("Tools")

# OpenAI function names must match ^[a-zA-Z0-9_-]{1,64}$
_INVALID_FUNCTION_CHARS = re.compile(r"[^a-zA-Z0-9_-]")
_MAX_FUNCTION_NAME = 64


def to_function_name(name: str) -> str:
    """
    Map a tool name to a valid function-calling name.

    Remote servers use dotted names ("calendar.create_event"), which the
    chat completions API rejects, so invalid characters become underscores.
    """
    return _INVALID_FUNCTION_CHARS.sub("_", name)[:_MAX_FUNCTION_NAME]


@dataclass
class ToolResult:
    """
    Standardized result from tool execution.

    Attributes:
        success: Whether the tool executed successfully
        data: The result data (varies by tool)
        error: Error message if success is False
    """
    success: bool
    data: Any = None
    error: str | None = None

    def to_message(self) -> str:
        """Format as a tool message for the LLM."""
        if self.success:
            return json.dumps(self.data, default=str)
        return json.dumps({"error": self.error})


@dataclass
class Tool:
    """
    Base tool descriptor.

    Attributes:
        name: The tool's own name (unique within a ToolSet once mapped)
        description: What the tool does (shown to the model)
        parameters: JSON Schema for the parameters
    """
    name: str
    description: str
    parameters: dict

    provenance: ClassVar[str] = "unknown"

    @property
    def function_name(self) -> str:
        """The name the model sees and calls."""
        return to_function_name(self.name)

    def to_openai_function(self) -> dict:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.function_name,
                "description": self.description,
                "parameters": self.parameters or {"type": "object", "properties": {}}
            }
        }

    async def execute(self, params: dict) -> ToolResult:
        raise NotImplementedError


@dataclass
class LocalTool(Tool):
    """
    A tool implemented in-process.

    Example:
        async def _echo(params: dict) -> ToolResult:
            return ToolResult(success=True, data={"echo": params.get("text")})

        echo_tool = LocalTool(
            name="echo",
            description="Echo text back",
            parameters={
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"]
            },
            handler=_echo
        )
    """
    handler: Callable[[dict], Awaitable[ToolResult]]

    provenance: ClassVar[str] = "local"

    async def execute(self, params: dict) -> ToolResult:
        return await self.handler(params)


class ToolSet:
    """
    The tools available to the model for one request.

    Tools are keyed by their exposed function name, which is unique within
    the set. Build one per request with ToolSet.merge(); never share a
    ToolSet between requests.

    Example:
        tool_set = ToolSet.merge(get_local_tools(), remote_tools)

        functions = tool_set.get_openai_functions()
        result = await tool_set.execute("convert_timezone", {...})
    """

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    @classmethod
    def merge(cls, local: Iterable[Tool], remote: Iterable[Tool]) -> "ToolSet":
        """
        Merge local and remote tools into one set.

        Local tools take precedence: a remote tool whose exposed name is
        already taken is dropped. The same inputs always produce the same set.
        """
        tool_set = cls(local)
        for tool in remote:
            existing = tool_set.get(tool.function_name)
            if existing is not None:
                logger.warning(
                    f"Dropping {tool.provenance} tool '{tool.name}': "
                    f"name taken by {existing.provenance} tool '{existing.name}'"
                )
                continue
            tool_set.register(tool)
        return tool_set

    def register(self, tool: Tool) -> None:
        """
        Add a tool.

        Raises:
            ValueError: If a tool with the same exposed name exists
        """
        key = tool.function_name
        if key in self._tools:
            raise ValueError(f"Tool '{key}' is already registered")

        self._tools[key] = tool
        logger.debug(f"Registered {tool.provenance} tool: {tool.name}")

    def get(self, name: str) -> Tool | None:
        """Look up a tool by exposed name."""
        return self._tools.get(name)

    def get_openai_functions(self) -> list[dict]:
        return [tool.to_openai_function() for tool in self._tools.values()]

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    async def execute(self, name: str, params: dict) -> ToolResult:
        """
        Execute a tool by exposed name.

        Never raises for tool failures; they come back as a failed ToolResult.
        """
        tool = self.get(name)
        if not tool:
            return ToolResult(success=False, error=f"Tool '{name}' not found")

        try:
            logger.info(f"Executing {tool.provenance} tool: {tool.name}")
            return await tool.execute(params)
        except ToolExecutionError as e:
            logger.warning(f"Tool {tool.name} failed: {e}")
            return ToolResult(success=False, error=str(e))
        except Exception as e:
            logger.error(f"Tool execution failed: {tool.name}", e)
            return ToolResult(success=False, error=f"{type(e).__name__}: {e}")


def get_local_tools() -> list[Tool]:
    """The in-process tools offered on every request."""
    # Imported here; tool modules import ToolResult/LocalTool from this package
    from schedulebot.tools.timezone_tools import convert_timezone_tool

    return [convert_timezone_tool]


__all__ = [
    "Tool",
    "LocalTool",
    "ToolResult",
    "ToolSet",
    "get_local_tools",
    "to_function_name",
]
