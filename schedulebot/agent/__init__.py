"""
Agent System
============

The scheduling agent turns a free-text request into calendar actions:
1. Builds a time- and user-aware system prompt
2. Connects to the calendar tool server and discovers its tools
3. Lets the model call local and remote tools
4. Returns the reply with a connection status line

This module provides:
- SchedulingAgent: runs one request end to end
- AgentResult: what the host integration renders
- UserContext: the signed-in user
- ToolCallingModel: the model-invocation primitive
"""

from schedulebot.agent.core import AgentResult, AgentSession, SchedulingAgent
from schedulebot.agent.llm import ToolCallingModel
from schedulebot.agent.tools_executor import ToolExecutor
from schedulebot.agent.user_context import UserContext, fetch_user_context, user_context_from_identity

__all__ = [
    "AgentResult",
    "AgentSession",
    "SchedulingAgent",
    "ToolCallingModel",
    "ToolExecutor",
    "UserContext",
    "fetch_user_context",
    "user_context_from_identity",
]
