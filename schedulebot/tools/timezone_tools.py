"""
Timezone Tools
==============

Local tool for converting a wall-clock time between timezones.

The calendar tool server only accepts UTC timestamps, while users speak in
their own zone ("tomorrow at 10:30 AM EST"). The model calls
convert_timezone() to turn the user's time into UTC before any calendar
operation, and to turn UTC results back into the user's zone for display.

Timezone names:
    Common abbreviations and region names ("eastern", "est", "pst", "utc")
    are mapped to IANA identifiers. Anything else is passed through as-is
    and treated as an IANA name ("Europe/Berlin").

Input formats:
    - ISO-8601 ("2026-10-19T14:30:00Z", "2026-10-19T10:30:00-04:00"):
      any value containing 'T' or 'Z'. A value without an offset is read
      in the source zone.
    - Naive local time in the source zone: "2026-10-19 10:30:00",
      "2026-10-19 10:30", "2026-10-19 10:30 AM", "2026-10-19".

Errors are returned as {"error": "..."} and never raised.
"""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from schedulebot.tools import LocalTool, ToolResult
from schedulebot.utils.logger import Logger

logger = Logger("TimezoneTools")


TIMEZONE_ALIASES: dict[str, str] = {
    # Eastern
    "eastern": "America/New_York",
    "est": "America/New_York",
    "edt": "America/New_York",
    "et": "America/New_York",
    # Central
    "central": "America/Chicago",
    "cst": "America/Chicago",
    "cdt": "America/Chicago",
    "ct": "America/Chicago",
    # Mountain
    "mountain": "America/Denver",
    "mst": "America/Denver",
    "mdt": "America/Denver",
    "mt": "America/Denver",
    # Pacific
    "pacific": "America/Los_Angeles",
    "pst": "America/Los_Angeles",
    "pdt": "America/Los_Angeles",
    "pt": "America/Los_Angeles",
    # UTC
    "utc": "UTC",
    "gmt": "UTC",
    "z": "UTC",
    "zulu": "UTC",
}

# Tried in order for values that are not ISO-8601
_LOCAL_FORMATS = (
    "%Y-%m-%d %I:%M %p",
    "%Y-%m-%d %I:%M:%S %p",
    "%Y-%m-%d %I%p",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M %p",
)


def resolve_timezone(name: str) -> str:
    """
    Normalize a timezone alias to an IANA identifier.

    Unknown names are returned unchanged (stripped of surrounding spaces).
    """
    cleaned = name.strip()
    return TIMEZONE_ALIASES.get(cleaned.lower(), cleaned)


def _load_zone(name: str) -> ZoneInfo | None:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        # OSError: names like "America" resolve to a tzdata directory
        return None


def _parse_datetime(value: str, source: ZoneInfo) -> datetime | None:
    """Parse the input as described in the module docstring, or return None."""
    text = value.strip()
    if not text:
        return None

    if "T" in text or "Z" in text:
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            parsed = None
            for fmt in _LOCAL_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
            if parsed is None:
                return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=source)
    return parsed


def _iso(dt: datetime) -> str:
    iso = dt.isoformat()
    if dt.utcoffset() == timedelta(0):
        return iso.replace("+00:00", "Z")
    return iso


def convert_timezone(datetime_str: str, from_timezone: str, to_timezone: str) -> dict:
    """
    Convert a datetime from one timezone to another.

    Args:
        datetime_str: The time to convert (see module docstring for formats)
        from_timezone: Source zone alias or IANA name
        to_timezone: Target zone alias or IANA name

    Returns:
        {original, from_timezone, to_timezone, converted, iso_format}
        or {"error": message}

    Example:
        >>> convert_timezone("2026-10-19 10:30:00", "eastern", "utc")["iso_format"]
        '2026-10-19T14:30:00Z'
    """
    source_name = resolve_timezone(from_timezone or "")
    target_name = resolve_timezone(to_timezone or "")

    source_zone = _load_zone(source_name)
    if source_zone is None:
        return {"error": f"Unknown source timezone: '{from_timezone}'"}

    target_zone = _load_zone(target_name)
    if target_zone is None:
        return {"error": f"Unknown target timezone: '{to_timezone}'"}

    parsed = _parse_datetime(datetime_str or "", source_zone)
    if parsed is None:
        return {
            "error": (
                f"Invalid datetime '{datetime_str}'. Use ISO-8601 "
                "(2026-10-19T14:30:00Z) or 'YYYY-MM-DD HH:MM:SS'."
            )
        }

    converted = parsed.astimezone(target_zone)

    return {
        "original": datetime_str,
        "from_timezone": source_name,
        "to_timezone": target_name,
        "converted": converted.strftime("%Y-%m-%d %H:%M:%S %Z"),
        "iso_format": _iso(converted),
    }


# ==============================================================================
# Tool: Convert Timezone
# ==============================================================================

async def _convert_timezone(params: dict) -> ToolResult:
    """Tool handler wrapping convert_timezone()."""
    datetime_str = params.get("datetime_str")
    from_timezone = params.get("from_timezone")
    to_timezone = params.get("to_timezone")

    if not datetime_str or not from_timezone or not to_timezone:
        return ToolResult(
            success=False,
            error="datetime_str, from_timezone and to_timezone are required"
        )

    result = convert_timezone(str(datetime_str), str(from_timezone), str(to_timezone))

    if "error" in result:
        logger.debug(f"Conversion rejected: {result['error']}")
        return ToolResult(success=False, error=result["error"])

    return ToolResult(success=True, data=result)


convert_timezone_tool = LocalTool(
    name="convert_timezone",
    description=(
        "Convert a date/time from one timezone to another. Use it to turn the "
        "user's local time into UTC before calling calendar tools, and to turn "
        "UTC results back into the user's timezone."
    ),
    parameters={
        "type": "object",
        "properties": {
            "datetime_str": {
                "type": "string",
                "description": (
                    "Date/time to convert, e.g. '2026-10-19 10:30:00' (local to "
                    "from_timezone) or ISO-8601 '2026-10-19T14:30:00Z'"
                )
            },
            "from_timezone": {
                "type": "string",
                "description": "Source timezone: eastern, central, mountain, pacific, utc, or an IANA name"
            },
            "to_timezone": {
                "type": "string",
                "description": "Target timezone: eastern, central, mountain, pacific, utc, or an IANA name"
            }
        },
        "required": ["datetime_str", "from_timezone", "to_timezone"]
    },
    handler=_convert_timezone
)
