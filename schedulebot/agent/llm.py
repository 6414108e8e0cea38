"""
Tool-Calling Model
==================

The model-invocation primitive: one call to generate() runs the whole
tool-calling exchange with the chat completions API and returns final text.

    system prompt + instruction
         │
         ▼
    chat.completions.create(tools=...)
         │
    ┌─── tool calls? ───┐
    Yes                 No
    │                   │
    ▼                   ▼
    execute via         return text
    ToolExecutor
    │
    └── append results, call the model again (bounded)

Any OpenAI-compatible endpoint works (OpenAI, Groq, ...): set OPENAI_BASE_URL.
"""

import re
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from schedulebot.agent.tools_executor import ToolExecutor
from schedulebot.errors import ModelInvocationError
from schedulebot.tools import ToolSet
from schedulebot.utils.config import OpenAIConfig
from schedulebot.utils.logger import Logger

logger = Logger("LLM")

# Reasoning models (e.g. qwen3) prefix their answer with a <think> block
_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)

MAX_TOOL_ITERATIONS_MESSAGE = (
    "I stopped after too many tool calls without reaching an answer. "
    "Please try a more specific request."
)


def strip_reasoning(text: str) -> str:
    return _THINK_BLOCK.sub("", text).strip()


class ToolCallingModel:
    """
    Chat model with tool calling.

    Example:
        model = ToolCallingModel.from_config(config.openai)
        text = await model.generate(system_prompt, "schedule ...", tool_set)
    """

    # Maximum tool round-trips per request
    MAX_TOOL_ITERATIONS = 10

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        max_tool_iterations: int = MAX_TOOL_ITERATIONS
    ):
        self.client = client
        self.model = model
        self.max_tool_iterations = max_tool_iterations

    @classmethod
    def from_config(cls, config: OpenAIConfig, max_tool_iterations: int = MAX_TOOL_ITERATIONS) -> "ToolCallingModel":
        client = AsyncOpenAI(api_key=config.api_key, base_url=config.base_url)
        return cls(client, config.model, max_tool_iterations)

    async def _complete(self, messages: list[dict], tools: list[dict]) -> Any:
        """One chat completion round-trip, returning the first choice's message."""
        kwargs: dict[str, Any] = {"model": self.model, "messages": messages}
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            raise ModelInvocationError(f"Model request failed: {e}") from e

        if not getattr(response, "choices", None):
            raise ModelInvocationError("Model returned no choices")
        return response.choices[0].message

    async def generate(self, system_prompt: str, prompt: str, tool_set: ToolSet) -> str:
        """
        Run the model with tools until it produces a final answer.

        Args:
            system_prompt: Instructions for this request
            prompt: The user's instruction
            tool_set: Tools the model may call

        Returns:
            The model's final text (reasoning blocks removed)

        Raises:
            ModelInvocationError: If any model round-trip fails
        """
        executor = ToolExecutor(tool_set)
        tools = tool_set.get_openai_functions()
        messages: list[dict] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]

        logger.info(f"Invoking {self.model} with {len(tools)} tools")
        message = await self._complete(messages, tools)

        iterations = 0
        while message.tool_calls:
            if iterations >= self.max_tool_iterations:
                logger.warning("Reached max tool iterations")
                return MAX_TOOL_ITERATIONS_MESSAGE
            iterations += 1
            logger.debug(f"Tool iteration {iterations}")

            tool_calls = executor.parse_tool_calls(message)
            results = await executor.execute_all(tool_calls)

            messages.append(message.model_dump(exclude_none=True))
            for result in results:
                messages.append(result.to_openai_message())

            message = await self._complete(messages, tools)

        text = strip_reasoning(message.content or "")
        logger.info(f"Generated response ({len(text)} chars, {iterations} tool iterations)")
        return text
