from __future__ import annotations

import pytest

from schedulebot.errors import ConfigurationError
from schedulebot.utils.config import load_config
from schedulebot.utils.logger import Logger, LogLevel, mask_email, set_log_level

REQUIRED = {
    "SLACK_BOT_TOKEN": "xoxb-test",
    "SLACK_APP_TOKEN": "xapp-test",
    "SLACK_SIGNING_SECRET": "signing",
    "OPENAI_API_KEY": "sk-test",
}


@pytest.fixture
def env(monkeypatch):
    for name, value in REQUIRED.items():
        monkeypatch.setenv(name, value)
    for name in ("MCP_SERVER_URL", "MCP_API_KEY", "MCP_CONNECT_TIMEOUT", "AGENT_MAX_TOOL_ITERATIONS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield monkeypatch
    set_log_level("info")


def test_defaults(env):
    config = load_config()

    assert config.openai.model == "gpt-4o-mini"
    assert config.gateway.url is None
    assert config.gateway.connect_timeout == 15.0
    assert config.agent.max_tool_iterations == 10
    assert config.log_level == "info"


def test_missing_required_value_is_a_configuration_error(env):
    env.delenv("OPENAI_API_KEY")

    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        load_config()


def test_unparseable_numbers_fall_back_to_defaults(env):
    env.setenv("MCP_CONNECT_TIMEOUT", "soon")
    env.setenv("AGENT_MAX_TOOL_ITERATIONS", "many")

    config = load_config()

    assert config.gateway.connect_timeout == 15.0
    assert config.agent.max_tool_iterations == 10


def test_configured_level_applies_to_loggers_created_earlier(env, capsys):
    existing = Logger("Gateway")
    env.setenv("LOG_LEVEL", "warning")

    set_log_level(load_config().log_level)
    existing.info("hidden")
    existing.warning("shown")

    captured = capsys.readouterr()
    assert not existing.is_enabled_for(LogLevel.INFO)
    assert "hidden" not in captured.out
    assert "shown" in captured.err


def test_unknown_level_falls_back_to_info(env):
    assert set_log_level("chatty") == LogLevel.INFO


def test_mask_email():
    assert mask_email("jane.doe@example.com") == "jan***@example.com"
    assert mask_email("") == "none"
