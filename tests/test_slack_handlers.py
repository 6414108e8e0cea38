from __future__ import annotations

import asyncio

from schedulebot.agent import AgentResult, UserContext
from schedulebot.slack.handlers import USAGE_TEXT, WORKING_TEXT, handle_schedule_command


class _Agent:
    def __init__(self):
        self.runs = []

    async def run(self, instruction, user_context):
        self.runs.append((instruction, user_context))
        return AgentResult(text="Meeting booked.\n\n🔧 *System Status:* ✅ Connected", status_message="✅ Connected")


class _Client:
    async def users_info(self, user):
        return {"ok": True, "user": {"name": "jdoe", "profile": {"real_name": "Jane Doe", "email": "jane@example.com"}}}


class _Recorder:
    def __init__(self):
        self.acked = 0
        self.responses = []

    async def ack(self):
        self.acked += 1

    async def respond(self, **kwargs):
        self.responses.append(kwargs)


def test_schedule_command_runs_agent_with_resolved_user():
    agent, recorder = _Agent(), _Recorder()
    command = {"user_id": "U123", "text": "  meeting with John tomorrow at 2pm EST "}

    asyncio.run(handle_schedule_command(agent, recorder.ack, command, _Client(), recorder.respond))

    assert recorder.acked == 1
    assert agent.runs == [(
        "meeting with John tomorrow at 2pm EST",
        UserContext(display_name="Jane Doe", email="jane@example.com", name_source="real_name"),
    )]
    assert [r["text"] for r in recorder.responses] == [WORKING_TEXT, "Meeting booked.\n\n🔧 *System Status:* ✅ Connected"]
    assert all(r["response_type"] == "ephemeral" for r in recorder.responses)


def test_empty_schedule_command_shows_usage():
    agent, recorder = _Agent(), _Recorder()

    asyncio.run(handle_schedule_command(agent, recorder.ack, {"user_id": "U123", "text": "   "}, _Client(), recorder.respond))

    assert recorder.acked == 1
    assert agent.runs == []
    assert recorder.responses == [{"text": USAGE_TEXT, "response_type": "ephemeral"}]
