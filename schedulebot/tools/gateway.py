"""
Remote Tool Gateway
===================

Connects to the calendar tool server over the Model Context Protocol
(streamable HTTP transport) and exposes its tools with the same calling
convention as local tools.

Connection lifecycle (one per request, never pooled):

    RemoteToolGateway.connect()
         │  fail fast: ConfigurationError if URL or API key missing
         ▼
    owner task: transport + initialize()     (bounded by connect_timeout)
         │  any failure -> GatewayConnectionError
         ▼
    GatewayConnection.list_tools()           -> list[RemoteTool]
         │  failure -> ToolDiscoveryError
         ▼
    RemoteTool.execute() -> call_tool()      -> ToolResult (never raises)
         │
         ▼
    GatewayConnection.close()                idempotent, logs failures

Authentication is a pre-shared key sent as the X-API-KEY header. Each
connection also sends a unique X-Client-Session-Id so concurrent requests
never collide on the server side.
"""

import asyncio
import json
import time
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, ClassVar

import httpx
from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError
from mcp.types import Implementation

from schedulebot.errors import (
    CleanupError,
    ConfigurationError,
    GatewayConnectionError,
    ToolDiscoveryError,
    ToolExecutionError,
)
from schedulebot.tools import Tool, ToolResult
from schedulebot.utils.config import GatewayConfig
from schedulebot.utils.logger import Logger

logger = Logger("Gateway")

API_KEY_HEADER = "X-API-KEY"
SESSION_HEADER = "X-Client-Session-Id"

# Upper bound on tools/list pages, in case a server keeps returning cursors
MAX_CATALOG_PAGES = 20


def new_session_id() -> str:
    """A per-connection token, unique across concurrent requests."""
    return f"slack_agent_{time.time_ns()}_{uuid.uuid4().hex[:8]}"


def _leaf_exception(error: BaseException) -> BaseException:
    """Unwrap task-group exception groups down to the first real error."""
    while isinstance(error, BaseExceptionGroup) and error.exceptions:
        error = error.exceptions[0]
    return error


def describe_error(error: BaseException) -> str:
    """Turn transport/protocol exceptions into a short readable reason."""
    error = _leaf_exception(error)

    if isinstance(error, TimeoutError):
        return "timed out"
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status in (401, 403):
            return f"authentication rejected (HTTP {status}), check MCP_API_KEY"
        return f"server returned HTTP {status}"
    if isinstance(error, httpx.TimeoutException):
        return f"network timeout: {error}"
    if isinstance(error, httpx.RequestError):
        return f"network error: {error}"
    if isinstance(error, McpError):
        return f"protocol error: {error.error.message}"

    message = str(error)
    return f"{type(error).__name__}: {message}" if message else type(error).__name__


def _content_text(content: list[Any]) -> str:
    """Join the text parts of an MCP tool result."""
    parts = []
    for item in content or []:
        text = getattr(item, "text", None)
        if text is not None:
            parts.append(text)
        else:
            parts.append(f"[{getattr(item, 'type', 'unknown')} content]")
    return "\n".join(parts)


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return text


@dataclass
class RemoteTool(Tool):
    """A tool discovered from the tool server, executed over the session."""
    connection: "GatewayConnection" = field(default=None, repr=False, compare=False)

    provenance: ClassVar[str] = "remote"

    async def execute(self, params: dict) -> ToolResult:
        return await self.connection.call_tool(self.name, params)


class GatewayConnection:
    """
    An open, initialized session with the tool server.

    The transport and the MCP session live in a dedicated owner task
    (see RemoteToolGateway._hold_session). The transport cancels the task
    that entered it when a request fails, so only the owner task ever sees
    that cancellation; close() releases the owner and waits for it to exit.
    """

    def __init__(
        self,
        session: ClientSession,
        session_id: str,
        owner: asyncio.Task,
        release: asyncio.Event
    ):
        self._session = session
        self._owner = owner
        self._release = release
        self.session_id = session_id
        self._closed = False
        self.logger = logger.child(session_id[-8:])

    @property
    def closed(self) -> bool:
        return self._closed or self._owner.done()

    async def list_tools(self) -> list[RemoteTool]:
        """
        Discover the server's tool catalog.

        Raises:
            ToolDiscoveryError: If the catalog cannot be listed
        """
        if self.closed:
            raise ToolDiscoveryError("Session is closed")

        try:
            result = await self._session.list_tools()
            listed = list(result.tools)

            pages = 1
            cursor = getattr(result, "nextCursor", None)
            while cursor and pages < MAX_CATALOG_PAGES:
                result = await self._session.list_tools(cursor=cursor)
                listed.extend(result.tools)
                cursor = getattr(result, "nextCursor", None)
                pages += 1
        except Exception as e:
            raise ToolDiscoveryError(f"Failed to list tools: {describe_error(e)}") from e

        tools = [
            RemoteTool(
                name=t.name,
                description=t.description or "",
                parameters=t.inputSchema or {"type": "object", "properties": {}},
                connection=self,
            )
            for t in listed
        ]
        self.logger.info(f"Discovered {len(tools)} remote tools")
        return tools

    async def call_tool(self, name: str, arguments: dict) -> ToolResult:
        """
        Invoke a remote tool.

        Remote errors come back as a failed ToolResult. Transport failures
        raise ToolExecutionError, which ToolSet.execute() turns into one.
        """
        if self.closed:
            raise ToolExecutionError(name, "tool server session is closed")

        self.logger.debug(f"Calling remote tool {name}", {"arguments": arguments})

        try:
            result = await self._session.call_tool(name, arguments or {})
        except Exception as e:
            raise ToolExecutionError(name, describe_error(e)) from e

        text = _content_text(result.content)
        if result.isError:
            return ToolResult(success=False, error=text or f"{name} reported an error")

        structured = getattr(result, "structuredContent", None)
        return ToolResult(success=True, data=structured if structured is not None else _decode(text))

    async def close(self) -> None:
        """
        Close the session and transport.

        Safe to call more than once; only the first call does anything.
        Failures are logged, never raised.
        """
        if self._closed:
            return
        self._closed = True

        self._release.set()
        try:
            await self._owner
            self.logger.debug("Session closed")
        except asyncio.CancelledError:
            if _caller_cancelled():
                raise
            self.logger.warning("Tool server session was cancelled before close")
        except Exception as e:
            error = CleanupError(f"Failed to close tool server session: {describe_error(e)}")
            self.logger.warning(str(error))


TransportFactory = Callable[..., Any]
SessionFactory = Callable[..., Any]


def _caller_cancelled() -> bool:
    """True when the running task itself has a pending cancellation."""
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class RemoteToolGateway:
    """
    Opens authenticated sessions with the calendar tool server.

    The transport and session factories default to the MCP SDK and can be
    replaced (tests pass in fakes).

    Example:
        gateway = RemoteToolGateway(config.gateway)

        connection = await gateway.connect()
        try:
            tools = await connection.list_tools()
        finally:
            await connection.close()
    """

    def __init__(
        self,
        config: GatewayConfig,
        transport_factory: TransportFactory = streamablehttp_client,
        session_factory: SessionFactory = ClientSession
    ):
        self.config = config
        self._transport_factory = transport_factory
        self._session_factory = session_factory

    def _require_config(self) -> tuple[str, str]:
        if not self.config.url:
            raise ConfigurationError(
                "MCP_SERVER_URL environment variable is not set; "
                "the calendar tool server cannot be reached."
            )
        if not self.config.api_key:
            raise ConfigurationError(
                "MCP_API_KEY environment variable is not set; "
                "refusing to connect to the calendar tool server without it."
            )
        return self.config.url, self.config.api_key

    async def connect(self) -> GatewayConnection:
        """
        Open and initialize a new session.

        Raises:
            ConfigurationError: URL or API key missing (nothing is attempted)
            GatewayConnectionError: Network, auth, handshake or timeout failure
        """
        url, api_key = self._require_config()

        session_id = new_session_id()
        headers = {
            API_KEY_HEADER: api_key,
            SESSION_HEADER: session_id,
        }
        timeout = self.config.connect_timeout

        logger.info(f"Connecting to tool server (session {session_id})")

        ready: asyncio.Future = asyncio.get_running_loop().create_future()
        release = asyncio.Event()
        owner = asyncio.create_task(
            self._hold_session(url, headers, ready, release),
            name=f"mcp-{session_id}",
        )

        try:
            async with asyncio.timeout(timeout):
                await asyncio.wait({ready, owner}, return_when=asyncio.FIRST_COMPLETED)
        except TimeoutError as e:
            await self._abandon(owner)
            raise GatewayConnectionError(
                f"MCP server connection failed: timed out after {timeout:g}s"
            ) from e
        except BaseException:
            await self._abandon(owner)
            raise

        if ready.done():
            logger.info("Tool server session initialized")
            return GatewayConnection(ready.result(), session_id, owner, release)

        # The owner task ended before the handshake completed
        if owner.cancelled():
            raise GatewayConnectionError("MCP server connection failed: connection was cancelled")
        error = owner.exception()
        if error is None:
            raise GatewayConnectionError("MCP server connection failed: session closed during handshake")
        if not isinstance(error, Exception):
            raise error
        raise GatewayConnectionError(f"MCP server connection failed: {describe_error(error)}") from error

    async def _hold_session(
        self,
        url: str,
        headers: dict[str, str],
        ready: asyncio.Future,
        release: asyncio.Event
    ) -> None:
        """
        Owner task body: open the transport and session, publish the
        initialized session through `ready`, then keep both open until
        `release` is set.
        """
        transport = self._transport_factory(
            url,
            headers=headers,
            timeout=timedelta(seconds=self.config.connect_timeout),
        )
        async with transport as (read_stream, write_stream, _):
            client_info = Implementation(
                name=self.config.client_name,
                version=self.config.client_version,
            )
            async with self._session_factory(read_stream, write_stream, client_info=client_info) as session:
                await session.initialize()
                ready.set_result(session)
                await release.wait()

    async def _abandon(self, owner: asyncio.Task) -> None:
        """Cancel a connection attempt that will not be used and wait for it."""
        owner.cancel()
        try:
            await owner
        except asyncio.CancelledError:
            if _caller_cancelled():
                raise
        except Exception as e:
            logger.debug(f"Ignoring error while unwinding failed connection: {describe_error(e)}")
