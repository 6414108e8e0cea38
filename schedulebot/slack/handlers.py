"""
Slack Command Handlers
======================

Routes the /schedule slash command to the scheduling agent.

Handler pattern:
    1. Acknowledge within Slack's 3 second window
    2. Reject empty requests with a usage example
    3. Resolve the user's identity (name + email) from their Slack profile
    4. Run the agent and reply ephemerally with its text

The agent never raises for request failures, so the outer except here only
covers Slack API problems (e.g. respond() failing).
"""

from typing import TYPE_CHECKING

from slack_bolt.async_app import AsyncAck, AsyncApp, AsyncRespond
from slack_sdk.web.async_client import AsyncWebClient

from schedulebot.agent.user_context import fetch_user_context
from schedulebot.utils.logger import Logger

if TYPE_CHECKING:
    from schedulebot.agent import SchedulingAgent

logger = Logger("Handlers")

USAGE_TEXT = (
    "❌ Please provide scheduling details. "
    "Example: `/schedule meeting with John tomorrow at 2pm EST`"
)
WORKING_TEXT = "🤔 Working on your scheduling request..."
FAILURE_TEXT = "❌ Sorry, something went wrong processing your scheduling request. Please try again."


def register_handlers(app: AsyncApp, agent: "SchedulingAgent") -> None:
    """
    Register the /schedule command with the Slack app.

    Args:
        app: The Bolt app instance
        agent: The agent that processes requests
    """

    async def handle_schedule(
        ack: AsyncAck,
        command: dict,
        client: AsyncWebClient,
        respond: AsyncRespond
    ) -> None:
        await handle_schedule_command(agent, ack, command, client, respond)

    app.command("/schedule")(handle_schedule)

    logger.info("Registered /schedule command")


async def handle_schedule_command(
    agent: "SchedulingAgent",
    ack: AsyncAck,
    command: dict,
    client: AsyncWebClient,
    respond: AsyncRespond
) -> None:
    """Handle one /schedule invocation."""
    await ack()

    user_id = command.get("user_id", "")
    text = (command.get("text") or "").strip()

    if not text:
        await respond(text=USAGE_TEXT, response_type="ephemeral")
        return

    logger.info(f"/schedule from {user_id}: {text[:50]}...")

    try:
        await respond(text=WORKING_TEXT, response_type="ephemeral")

        user_context = await fetch_user_context(client, user_id)
        result = await agent.run(text, user_context)

        await respond(text=result.text, response_type="ephemeral")
        logger.debug("/schedule completed", {"status": result.status_message})

    except Exception as e:
        logger.error("Error in /schedule command", e)
        await respond(text=FAILURE_TEXT, response_type="ephemeral")
