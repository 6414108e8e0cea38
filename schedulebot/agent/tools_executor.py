"""
Tool Executor
=============

Runs the tool calls the model asks for against the request's ToolSet.

The executor:
1. Parses tool calls from a chat completion response
2. Executes each one through ToolSet.execute() (failures come back as data)
3. Formats results as "tool" messages for the next model round-trip

Malformed arguments (invalid JSON) do not abort the request: the call is
answered with an error result so the model can correct itself.
"""

import json
from dataclasses import dataclass, field
from typing import Any

from schedulebot.tools import ToolResult, ToolSet
from schedulebot.utils.logger import Logger

logger = Logger("ToolExecutor")


@dataclass
class ToolCall:
    """
    A parsed tool call from the model.

    Attributes:
        id: The tool call ID (for matching results)
        name: The exposed tool name
        arguments: Parsed arguments dict
        parse_error: Set when the arguments were not valid JSON
    """
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    parse_error: str | None = None


@dataclass
class ToolCallResult:
    """Result of executing one tool call."""
    tool_call_id: str
    name: str
    result: ToolResult

    def to_openai_message(self) -> dict:
        return {
            "role": "tool",
            "tool_call_id": self.tool_call_id,
            "content": self.result.to_message()
        }


class ToolExecutor:
    """
    Executes the model's tool calls against one request's ToolSet.

    Example:
        executor = ToolExecutor(tool_set)

        tool_calls = executor.parse_tool_calls(message)
        results = await executor.execute_all(tool_calls)
        messages.extend(r.to_openai_message() for r in results)
    """

    def __init__(self, tool_set: ToolSet):
        self.tool_set = tool_set

    def parse_tool_calls(self, message: Any) -> list[ToolCall]:
        """
        Parse tool calls from a chat completion message.

        Args:
            message: response.choices[0].message

        Returns:
            List of parsed ToolCall objects (empty if none)
        """
        tool_calls = []

        for tc in message.tool_calls or []:
            raw = tc.function.arguments or "{}"
            try:
                arguments = json.loads(raw)
                if not isinstance(arguments, dict):
                    raise ValueError("arguments must be a JSON object")
                tool_calls.append(ToolCall(id=tc.id, name=tc.function.name, arguments=arguments))
            except ValueError as e:
                logger.warning(f"Failed to parse arguments for {tc.function.name}: {e}")
                tool_calls.append(ToolCall(
                    id=tc.id,
                    name=tc.function.name,
                    parse_error=f"Invalid JSON arguments: {e}"
                ))

        logger.debug(f"Parsed {len(tool_calls)} tool calls")
        return tool_calls

    async def execute_one(self, tool_call: ToolCall) -> ToolCallResult:
        if tool_call.parse_error:
            result = ToolResult(success=False, error=tool_call.parse_error)
        else:
            result = await self.tool_set.execute(tool_call.name, tool_call.arguments)

        if result.success:
            logger.debug(f"Tool {tool_call.name} succeeded")
        else:
            logger.warning(f"Tool {tool_call.name} failed: {result.error}")

        return ToolCallResult(
            tool_call_id=tool_call.id,
            name=tool_call.name,
            result=result
        )

    async def execute_all(self, tool_calls: list[ToolCall]) -> list[ToolCallResult]:
        """Execute tool calls one at a time, in the order the model issued them."""
        results = []
        for tool_call in tool_calls:
            results.append(await self.execute_one(tool_call))
        return results
