"""
Utilities Module
================

Common utilities shared across the application:
- logger: Leveled logging with context prefixes
- config: Centralized configuration management
"""

from schedulebot.utils.logger import Logger, logger, mask_email, set_log_level
from schedulebot.utils.config import get_config, Config, GatewayConfig

__all__ = ["Logger", "logger", "mask_email", "set_log_level", "get_config", "Config", "GatewayConfig"]
