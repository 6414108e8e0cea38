"""
Scheduling Agent
================

Turns a free-text scheduling instruction into a model run with calendar
tools, and always returns a result the host can show to the user.

Request lifecycle:

    INIT           build system prompt (time + user + policy)
         │
    CONNECTING     open a tool server session, list its tools
         │         connection/discovery failure -> continue with local tools
         │         missing secret -> abort with a configuration message
    TOOLS_MERGED   local tools + remote tools (local wins on name clash)
         │
    INVOKING       one ToolCallingModel.generate() call
         │
    FINALIZING     append the system status line
         │
    CLEANUP        close the tool server session (always)

Every request gets a fresh AgentSession; nothing is shared between
requests, so concurrent runs need no locking.
"""

from dataclasses import dataclass, field
from typing import Sequence

from schedulebot.agent.llm import ToolCallingModel
from schedulebot.agent.prompts import build_system_prompt
from schedulebot.agent.temporal import Clock, build_temporal_context, utc_now
from schedulebot.agent.user_context import UserContext
from schedulebot.errors import ConfigurationError, GatewayConnectionError, ToolDiscoveryError
from schedulebot.tools import Tool, ToolSet, get_local_tools
from schedulebot.tools.gateway import GatewayConnection, RemoteToolGateway
from schedulebot.utils.config import Config
from schedulebot.utils.logger import Logger

logger = Logger("Agent")

STATUS_NOT_CONNECTED = "Not connected"
STATUS_TOOLS_UNAVAILABLE = "⚠️ Connected but tools unavailable"

EXAMPLE_REQUEST = "Schedule a team meeting with John and Sarah tomorrow at 2pm EST"


@dataclass(frozen=True)
class AgentResult:
    """
    What the host integration renders.

    Attributes:
        text: Reply text, including the status line or an error explanation
        status_message: Tool server connectivity summary
    """
    text: str
    status_message: str


@dataclass
class AgentSession:
    """State for a single run(); discarded when the run ends."""
    system_prompt: str = ""
    tool_set: ToolSet = field(default_factory=ToolSet)
    gateway_handle: GatewayConnection | None = None
    status_message: str = STATUS_NOT_CONNECTED


def format_status_footer(status: str) -> str:
    return f"\n\n🔧 *System Status:* {status}"


def format_error_text(error: BaseException, status: str) -> str:
    """User-facing explanation for a request that could not be completed."""
    return (
        "❌ *Error Processing Request*\n\n"
        "Sorry, I encountered an issue processing your scheduling request.\n\n"
        f"*Error details:* {error}\n"
        f"*Calendar server status:* {status}\n\n"
        "*Please try:*\n"
        "1. Rephrasing your request\n"
        "2. Being more specific about time and attendees\n"
        "3. Contacting support if the issue persists\n\n"
        f'*Example format:* "{EXAMPLE_REQUEST}"'
    )


def _connected_status(tools: Sequence[Tool]) -> str:
    names = ", ".join(t.name for t in tools)
    return f"✅ Connected with {len(tools)} tools: {names}" if tools else "✅ Connected with 0 tools"


class SchedulingAgent:
    """
    Runs scheduling requests.

    Dependencies are injected so tests can replace the clock, the model and
    the gateway transport.

    Example:
        agent = SchedulingAgent.from_config(get_config())

        result = await agent.run(
            "schedule a meeting with John tomorrow at 10:30 AM EST",
            UserContext(display_name="Jane Doe", email="jane@example.com")
        )
        print(result.text)
    """

    def __init__(
        self,
        model: ToolCallingModel,
        gateway: RemoteToolGateway,
        local_tools: Sequence[Tool] | None = None,
        clock: Clock = utc_now
    ):
        self.model = model
        self.gateway = gateway
        self.local_tools = list(local_tools) if local_tools is not None else get_local_tools()
        self.clock = clock

    @classmethod
    def from_config(cls, config: Config) -> "SchedulingAgent":
        model = ToolCallingModel.from_config(
            config.openai,
            max_tool_iterations=config.agent.max_tool_iterations
        )
        agent = cls(model=model, gateway=RemoteToolGateway(config.gateway))
        logger.info(f"Scheduling agent initialized with model: {model.model}")
        return agent

    async def _connect(self, session: AgentSession) -> list[Tool]:
        """
        Open the tool server session and list its tools.

        Connection and discovery failures are recorded in the session status
        and yield no remote tools. ConfigurationError propagates.
        """
        try:
            session.gateway_handle = await self.gateway.connect()
        except ConfigurationError as e:
            session.status_message = f"❌ Configuration error: {e}"
            raise
        except GatewayConnectionError as e:
            logger.warning(f"Tool server connection failed, continuing with local tools: {e}")
            session.status_message = f"❌ Connection failed: {e}"
            return []

        try:
            remote_tools = await session.gateway_handle.list_tools()
        except ToolDiscoveryError as e:
            logger.warning(f"Tool discovery failed, continuing with local tools: {e}")
            session.status_message = STATUS_TOOLS_UNAVAILABLE
            return []

        session.status_message = _connected_status(remote_tools)
        logger.info(session.status_message)
        return remote_tools

    async def run(self, instruction: str, user_context: UserContext | None = None) -> AgentResult:
        """
        Process one scheduling instruction.

        Never raises for request failures: errors are turned into an
        AgentResult explaining what went wrong.

        Args:
            instruction: The user's free-text request
            user_context: The signed-in user (default organizer)

        Returns:
            AgentResult with the reply text and the connection status
        """
        session = AgentSession()
        logger.info(f"Running scheduling agent: {instruction[:50]}...")

        try:
            session.system_prompt = build_system_prompt(
                build_temporal_context(self.clock),
                user_context
            )

            remote_tools = await self._connect(session)
            session.tool_set = ToolSet.merge(self.local_tools, remote_tools)
            logger.debug(f"Tools available: {', '.join(session.tool_set.list_names())}")

            text = await self.model.generate(session.system_prompt, instruction, session.tool_set)

            return AgentResult(
                text=text + format_status_footer(session.status_message),
                status_message=session.status_message
            )

        except Exception as e:
            logger.error("Error in scheduling agent", e)
            return AgentResult(
                text=format_error_text(e, session.status_message),
                status_message=session.status_message
            )

        finally:
            if session.gateway_handle is not None:
                await session.gateway_handle.close()
