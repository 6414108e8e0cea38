from __future__ import annotations

import asyncio
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import httpx
import pytest

from fakes import FakeServer, remote_tool, text_result
from schedulebot.errors import (
    ConfigurationError,
    GatewayConnectionError,
    ToolDiscoveryError,
    ToolExecutionError,
)
from schedulebot.tools import ToolSet
from schedulebot.tools.gateway import API_KEY_HEADER, SESSION_HEADER, RemoteToolGateway
from schedulebot.utils.config import GatewayConfig

URL = "https://calendar-tools.example.com/mcp"


def _gateway(server: FakeServer, api_key: str | None = "secret", url: str | None = URL, timeout: float = 5.0):
    return RemoteToolGateway(
        GatewayConfig(url=url, api_key=api_key, connect_timeout=timeout),
        transport_factory=server.transport_factory,
        session_factory=server.session_factory,
    )


@pytest.mark.parametrize("api_key,url", [(None, URL), ("", URL), ("secret", None)])
def test_missing_configuration_fails_before_any_connection(api_key, url):
    server = FakeServer()

    with pytest.raises(ConfigurationError):
        asyncio.run(_gateway(server, api_key=api_key, url=url).connect())

    assert server.transport_calls == []


def test_connect_sends_api_key_and_unique_session_ids():
    server = FakeServer()
    gateway = _gateway(server)

    async def _run():
        first = await gateway.connect()
        second = await gateway.connect()
        await first.close()
        await second.close()
        return first, second

    first, second = asyncio.run(_run())

    headers = [call["headers"] for call in server.transport_calls]
    assert all(h[API_KEY_HEADER] == "secret" for h in headers)
    assert headers[0][SESSION_HEADER] != headers[1][SESSION_HEADER]
    assert first.session_id == headers[0][SESSION_HEADER]
    assert server.transport_calls[0]["url"] == URL
    assert server.initialized == 2
    assert server.closed == 2


def test_network_failure_becomes_gateway_connection_error():
    server = FakeServer(connect_error=httpx.ConnectError("connection refused"))

    with pytest.raises(GatewayConnectionError) as excinfo:
        asyncio.run(_gateway(server).connect())

    assert "network error" in str(excinfo.value)
    assert "connection refused" in str(excinfo.value)


def test_auth_failure_is_described():
    request = httpx.Request("POST", URL)
    response = httpx.Response(401, request=request)
    server = FakeServer(initialize_error=httpx.HTTPStatusError("unauthorized", request=request, response=response))

    with pytest.raises(GatewayConnectionError) as excinfo:
        asyncio.run(_gateway(server).connect())

    assert "authentication rejected" in str(excinfo.value)
    # the transport opened before the handshake failed is unwound
    assert server.closed == 1


def test_connection_attempt_is_bounded():
    server = FakeServer(connect_delay=5)

    with pytest.raises(GatewayConnectionError) as excinfo:
        asyncio.run(_gateway(server, timeout=0.05).connect())

    assert "timed out after 0.05s" in str(excinfo.value)


def test_list_tools_wraps_catalog_as_remote_tools():
    server = FakeServer(tools=[remote_tool("users.search"), remote_tool("calendar.create_event")])

    async def _run():
        connection = await _gateway(server).connect()
        try:
            return await connection.list_tools()
        finally:
            await connection.close()

    tools = asyncio.run(_run())

    assert [t.name for t in tools] == ["users.search", "calendar.create_event"]
    assert all(t.provenance == "remote" for t in tools)
    assert tools[0].parameters["properties"]["query"]["type"] == "string"


def test_list_failure_becomes_tool_discovery_error():
    server = FakeServer(list_error=RuntimeError("method not found"))

    async def _run():
        connection = await _gateway(server).connect()
        try:
            await connection.list_tools()
        finally:
            await connection.close()

    with pytest.raises(ToolDiscoveryError):
        asyncio.run(_run())
    assert server.closed == 1


def test_remote_results_and_errors():
    def handler(name, args):
        if name == "calendar.create_event":
            return text_result("start must be UTC", is_error=True)
        return text_result({"users": [{"name": "John Smith", "email": "john@example.com"}]})

    server = FakeServer(tools=[remote_tool("users.search"), remote_tool("calendar.create_event")], call_handler=handler)

    async def _run():
        connection = await _gateway(server).connect()
        try:
            tool_set = ToolSet.merge([], await connection.list_tools())
            found = await tool_set.execute("users_search", {"query": "John"})
            failed = await tool_set.execute("calendar_create_event", {"start": "10:30"})
            return found, failed
        finally:
            await connection.close()

    found, failed = asyncio.run(_run())

    assert found.success is True
    assert found.data["users"][0]["email"] == "john@example.com"
    assert failed.success is False
    assert failed.error == "start must be UTC"
    assert server.tool_calls[0] == ("users.search", {"query": "John"})


def test_transport_failure_during_call_raises_tool_execution_error():
    def handler(name, args):
        raise httpx.ReadError("stream reset")

    server = FakeServer(tools=[remote_tool("users.search")], call_handler=handler)

    async def _run():
        connection = await _gateway(server).connect()
        try:
            await connection.call_tool("users.search", {})
        finally:
            await connection.close()

    with pytest.raises(ToolExecutionError) as excinfo:
        asyncio.run(_run())
    assert "stream reset" in str(excinfo.value)


def test_close_is_idempotent_and_swallows_teardown_errors():
    server = FakeServer(close_error=RuntimeError("socket already closed"))

    async def _run():
        connection = await _gateway(server).connect()
        await connection.close()
        await connection.close()
        return connection

    connection = asyncio.run(_run())

    assert connection.closed is True
    assert server.closed == 1


def test_calls_after_close_are_rejected():
    server = FakeServer(tools=[remote_tool("users.search")])

    async def _run():
        connection = await _gateway(server).connect()
        await connection.close()
        await connection.call_tool("users.search", {})

    with pytest.raises(ToolExecutionError):
        asyncio.run(_run())
    assert server.tool_calls == []


def _unauthorized(url: str) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", url)
    return httpx.HTTPStatusError("unauthorized", request=request, response=httpx.Response(401, request=request))


@pytest.mark.parametrize(
    "error,reason",
    [
        (httpx.ConnectError("All connection attempts failed"), "network error"),
        (_unauthorized(URL), "authentication rejected (HTTP 401)"),
    ],
)
def test_failed_request_that_cancels_the_transport_is_a_connection_error(error, reason):
    server = FakeServer(request_error=error)

    async def _run():
        try:
            await _gateway(server).connect()
        except GatewayConnectionError as e:
            # the caller is not left with a pending cancellation
            return e, asyncio.current_task().cancelling()

    raised, cancelling = asyncio.run(_run())

    assert reason in str(raised)
    assert cancelling == 0
    assert server.closed == 1


def test_caller_cancellation_during_connect_propagates():
    server = FakeServer(connect_delay=5)

    async def _run():
        task = asyncio.create_task(_gateway(server).connect())
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(_run())


# ------------------------------------------------------------------------------
# Real streamable HTTP transport
# ------------------------------------------------------------------------------

def _closed_port_url() -> str:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}/mcp"


class _RejectingHandler(BaseHTTPRequestHandler):
    def _reject(self):
        body = b'{"error": "invalid api key"}'
        self.send_response(401)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    do_POST = _reject
    do_GET = _reject
    do_DELETE = _reject

    def log_message(self, format, *args):
        pass


@pytest.fixture
def rejecting_server_url():
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), _RejectingHandler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{httpd.server_address[1]}/mcp"
    finally:
        httpd.shutdown()
        httpd.server_close()


def _real_gateway(url: str) -> RemoteToolGateway:
    return RemoteToolGateway(GatewayConfig(url=url, api_key="secret", connect_timeout=5))


def test_real_transport_unreachable_server_is_a_connection_error():
    with pytest.raises(GatewayConnectionError):
        asyncio.run(_real_gateway(_closed_port_url()).connect())


def test_real_transport_rejected_api_key_is_a_connection_error(rejecting_server_url):
    with pytest.raises(GatewayConnectionError):
        asyncio.run(_real_gateway(rejecting_server_url).connect())
