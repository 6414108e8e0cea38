"""
Error Types
===========

Failures the scheduling agent distinguishes, and how each one is handled:

    ConfigurationError      Required secret or endpoint missing. Raised before
                            any network attempt and surfaced to the user.
    GatewayConnectionError  Network, auth or handshake failure reaching the tool
                            server. Recovered: the agent runs with local tools.
    ToolDiscoveryError      Connected, but the tool catalog could not be listed.
                            Recovered the same way.
    ToolExecutionError      A single tool call failed. Converted into a failed
                            ToolResult so the model can read it.
    ModelInvocationError    The LLM call failed. Terminal for the request; turned
                            into a user-facing error message.
    CleanupError            Closing the tool server session failed. Logged only.
"""


class ScheduleBotError(Exception):
    """Base class for all scheduling agent errors."""


class ConfigurationError(ScheduleBotError, ValueError):
    """A required configuration value is missing or invalid."""


class GatewayConnectionError(ScheduleBotError):
    """The remote tool server could not be reached or refused the session."""


class ToolDiscoveryError(ScheduleBotError):
    """The remote tool catalog could not be listed."""


class ToolExecutionError(ScheduleBotError):
    """A tool invocation failed."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"{tool_name}: {message}")
        self.tool_name = tool_name


class ModelInvocationError(ScheduleBotError):
    """The language model call failed or returned something unusable."""


class CleanupError(ScheduleBotError):
    """Tearing down the remote tool session failed."""
