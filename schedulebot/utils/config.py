"""
Configuration Management
========================

All environment variables the bot reads are validated and typed here.

Sections:
- slack:   tokens for the Bolt app and Socket Mode
- openai:  API key, model and optional base URL (any OpenAI-compatible
           endpoint works, e.g. Groq)
- gateway: the remote calendar tool server (MCP over streamable HTTP)
- agent:   limits for the tool-calling loop

The gateway secret is deliberately optional at load time: the bot can start
without it, and the gateway refuses to connect (ConfigurationError) when a
request actually needs it.

Usage:
    from schedulebot.utils.config import get_config

    config = get_config()
    print(config.openai.model)
    print(config.gateway.url)
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from schedulebot.errors import ConfigurationError


def _required(name: str) -> str:
    """
    Get a required environment variable.

    Raises:
        ConfigurationError: If the variable is not set
    """
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(
            f"Missing required environment variable: {name}\n"
            f"Please ensure {name} is set in your .env file."
        )
    return value


def _optional(name: str, default: str) -> str:
    return os.getenv(name, default)


def _optional_float(name: str, default: float) -> float:
    """Get an optional float, falling back to the default when unparseable."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        print(f"Warning: {name} is not a valid number, using default: {default}")
        return default


def _optional_int(name: str, default: int) -> int:
    """Get an optional integer, falling back to the default when unparseable."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        print(f"Warning: {name} is not a valid integer, using default: {default}")
        return default


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class SlackConfig:
    """Slack API configuration."""
    bot_token: str      # xoxb-... token for bot operations
    app_token: str      # xapp-... token for Socket Mode
    signing_secret: str # For verifying Slack requests


@dataclass(frozen=True)
class OpenAIConfig:
    """Chat completion endpoint configuration."""
    api_key: str
    model: str
    base_url: str | None = None  # None means api.openai.com


@dataclass(frozen=True)
class GatewayConfig:
    """
    Remote tool server configuration.

    url and api_key may be None here; RemoteToolGateway.connect() raises
    ConfigurationError before opening any connection if either is missing.
    """
    url: str | None
    api_key: str | None
    connect_timeout: float = 15.0  # seconds, covers transport + handshake
    client_name: str = "schedulebot-slack-agent"
    client_version: str = "1.0.0"


@dataclass(frozen=True)
class AgentConfig:
    """Scheduling agent limits."""
    max_tool_iterations: int = 10


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

        config = get_config()
        config.slack.bot_token
        config.gateway.url
    """
    slack: SlackConfig
    openai: OpenAIConfig
    gateway: GatewayConfig
    agent: AgentConfig
    log_level: str


def load_gateway_config() -> GatewayConfig:
    """Read only the gateway section of the environment."""
    return GatewayConfig(
        url=os.getenv("MCP_SERVER_URL") or None,
        api_key=os.getenv("MCP_API_KEY") or None,
        connect_timeout=_optional_float("MCP_CONNECT_TIMEOUT", 15.0),
    )


def load_config() -> Config:
    """
    Load and validate all configuration from the environment.

    Loads the .env file first, then builds the typed Config.

    Raises:
        ConfigurationError: If required configuration is missing
    """
    load_dotenv()

    return Config(
        slack=SlackConfig(
            bot_token=_required("SLACK_BOT_TOKEN"),
            app_token=_required("SLACK_APP_TOKEN"),
            signing_secret=_required("SLACK_SIGNING_SECRET"),
        ),
        openai=OpenAIConfig(
            api_key=_required("OPENAI_API_KEY"),
            model=_optional("OPENAI_MODEL", "gpt-4o-mini"),
            base_url=os.getenv("OPENAI_BASE_URL") or None,
        ),
        gateway=load_gateway_config(),
        agent=AgentConfig(
            max_tool_iterations=_optional_int("AGENT_MAX_TOOL_ITERATIONS", 10),
        ),
        log_level=_optional("LOG_LEVEL", "info"),
    )


# ==============================================================================
# Singleton
# ==============================================================================

_config_instance: Config | None = None


def get_config() -> Config:
    """Get the configuration, loading it on first access."""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def is_gateway_configured() -> bool:
    """Check whether both the tool server URL and its API key are set."""
    gateway = get_config().gateway
    return bool(gateway.url and gateway.api_key)
