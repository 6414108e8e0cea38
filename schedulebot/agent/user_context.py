"""
User Context
============

Normalizes the requesting user's identity into the shape the prompt uses.

A Slack user record can carry several name fields, any of which may be
missing. The full name is chosen by a fixed precedence:

    1. profile.first_name + profile.last_name   (both present)
    2. profile.real_name / real_name
    3. profile.display_name
    4. name (the @handle)
    5. "User"

The email is kept as-is; an empty email means the organizer is unknown and
the prompt says so instead of guessing.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from schedulebot.utils.logger import Logger, mask_email

if TYPE_CHECKING:
    from slack_sdk.web.async_client import AsyncWebClient

logger = Logger("UserContext")

DEFAULT_DISPLAY_NAME = "User"


@dataclass(frozen=True)
class UserContext:
    """
    The signed-in user for one request.

    Attributes:
        display_name: Best-effort full name, never empty
        email: Email address, or "" when unknown
        name_source: Which identity field produced display_name (for logs)
    """
    display_name: str
    email: str = ""
    name_source: str = "default"

    def __post_init__(self):
        if not self.display_name.strip():
            object.__setattr__(self, "display_name", DEFAULT_DISPLAY_NAME)
            object.__setattr__(self, "name_source", "default")

    @property
    def has_email(self) -> bool:
        return bool(self.email)


def _clean(value: Any) -> str:
    """Collapse whitespace; non-strings count as missing."""
    if not isinstance(value, str):
        return ""
    return " ".join(value.split())


def user_context_from_identity(record: dict | None) -> UserContext:
    """
    Build a UserContext from a Slack users.info "user" record.

    Args:
        record: The user dict (with an optional "profile" dict)

    Returns:
        UserContext with a non-empty display_name
    """
    record = record or {}
    profile = record.get("profile") or {}

    first = _clean(profile.get("first_name"))
    last = _clean(profile.get("last_name"))
    real_name = _clean(profile.get("real_name")) or _clean(record.get("real_name"))
    display_name = _clean(profile.get("display_name"))
    handle = _clean(record.get("name"))
    email = _clean(profile.get("email"))

    if first and last:
        name, source = f"{first} {last}", "first_last"
    elif real_name:
        name, source = real_name, "real_name"
    elif display_name:
        name, source = display_name, "display_name"
    elif handle:
        name, source = handle, "handle"
    else:
        name, source = DEFAULT_DISPLAY_NAME, "default"

    return UserContext(display_name=name, email=email, name_source=source)


async def fetch_user_context(client: "AsyncWebClient", user_id: str) -> UserContext:
    """
    Look up a Slack user and normalize their identity.

    Falls back to an anonymous context if the lookup fails, so a Slack API
    hiccup never blocks a scheduling request.
    """
    try:
        response = await client.users_info(user=user_id)
        context = user_context_from_identity(response.get("user"))
    except Exception as e:
        logger.error(f"Failed to look up Slack user {user_id}", e)
        return UserContext(display_name=DEFAULT_DISPLAY_NAME, email="", name_source="lookup_failed")

    logger.debug("Resolved user context", {
        "user_id": user_id,
        "name_source": context.name_source,
        "email": mask_email(context.email),
    })
    if not context.has_email:
        logger.warning(f"No email found for user {user_id}; organizer will be unknown")

    return context
