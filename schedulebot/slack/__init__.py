"""
Slack Integration
=================

Thin host glue around the scheduling agent:
- Bolt app and Socket Mode handler creation
- The /schedule slash command
"""

from schedulebot.slack.app import create_slack_app, create_socket_handler
from schedulebot.slack.handlers import register_handlers

__all__ = ["create_slack_app", "create_socket_handler", "register_handlers"]
