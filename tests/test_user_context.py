from __future__ import annotations

import asyncio

import pytest

from schedulebot.agent.user_context import UserContext, fetch_user_context, user_context_from_identity


def _record(profile=None, **top):
    return {"profile": profile or {}, **top}


def test_first_and_last_name_win():
    ctx = user_context_from_identity(_record(
        {"first_name": "Jane", "last_name": "Doe", "real_name": "J. Doe", "display_name": "jd", "email": "jane@example.com"},
        name="jdoe",
    ))

    assert ctx.display_name == "Jane Doe"
    assert ctx.email == "jane@example.com"
    assert ctx.name_source == "first_last"


def test_real_name_used_when_last_name_missing():
    ctx = user_context_from_identity(_record({"first_name": "Jane", "real_name": "Jane  Q.   Doe"}))

    assert ctx.display_name == "Jane Q. Doe"
    assert ctx.name_source == "real_name"


def test_top_level_real_name_is_accepted():
    ctx = user_context_from_identity(_record({}, real_name="Jane Doe"))

    assert ctx.display_name == "Jane Doe"


def test_display_name_then_handle():
    assert user_context_from_identity(_record({"display_name": "janey"}, name="jdoe")).display_name == "janey"
    assert user_context_from_identity(_record({"display_name": "  "}, name="jdoe")).display_name == "jdoe"


@pytest.mark.parametrize("record", [None, {}, {"profile": None}, _record({"real_name": ""})])
def test_placeholder_when_no_name_available(record):
    ctx = user_context_from_identity(record)

    assert ctx.display_name == "User"
    assert ctx.email == ""
    assert ctx.has_email is False


def test_blank_display_name_falls_back_to_placeholder():
    assert UserContext(display_name="   ").display_name == "User"


def test_same_record_always_gives_same_context():
    record = _record({"real_name": "Jane Doe", "display_name": "jd"}, name="jdoe")

    assert user_context_from_identity(record) == user_context_from_identity(record)


class _SlackClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def users_info(self, user):
        self.calls.append(user)
        if self.error:
            raise self.error
        return self.response


def test_fetch_user_context_reads_slack_profile():
    client = _SlackClient({"ok": True, "user": _record({"real_name": "Jane Doe", "email": "jane@example.com"})})

    ctx = asyncio.run(fetch_user_context(client, "U123"))

    assert client.calls == ["U123"]
    assert ctx == UserContext(display_name="Jane Doe", email="jane@example.com", name_source="real_name")


def test_fetch_user_context_falls_back_on_lookup_error():
    client = _SlackClient(error=RuntimeError("user_not_found"))

    ctx = asyncio.run(fetch_user_context(client, "U404"))

    assert ctx.display_name == "User"
    assert ctx.email == ""
