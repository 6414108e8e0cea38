"""
ScheduleBot - Slack Scheduling Assistant
========================================

A Slack bot that schedules meetings from free-text requests. A language
model plans the work and calls tools:

- convert_timezone, a local tool
- directory and calendar tools discovered from a remote tool server over
  the Model Context Protocol, one session per request

The tool server connection degrades gracefully: if it cannot be reached the
agent still answers, using local tools only, and says so in its reply.
"""

__version__ = "1.0.0"
