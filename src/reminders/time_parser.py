# utilbot - Discord and Telegram Utility Bot
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
Time Parser Module

Parses short natural language time expressions for reminders.
Supports relative durations ("5m", "2 hours"), clock times ("5pm", "14:30"),
a few named phrases ("tomorrow", "tonight", "next week") and falls back to
generic date parsing for anything else ("2026-12-24 18:00").
"""

import logging
import re
from datetime import datetime, time, timedelta
from typing import Callable, Optional

import dateparser
import pytz

logger = logging.getLogger("utilbot.reminders.time_parser")

RELATIVE_PATTERN = re.compile(
    r"^(\d+)\s*(m|min|mins|minute|minutes|h|hr|hrs|hour|hours|d|day|days|w|week|weeks)$"
)
CLOCK_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$")

UNIT_DURATIONS = {
    "m": timedelta(minutes=1),
    "min": timedelta(minutes=1),
    "mins": timedelta(minutes=1),
    "minute": timedelta(minutes=1),
    "minutes": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "hr": timedelta(hours=1),
    "hrs": timedelta(hours=1),
    "hour": timedelta(hours=1),
    "hours": timedelta(hours=1),
    "d": timedelta(days=1),
    "day": timedelta(days=1),
    "days": timedelta(days=1),
    "w": timedelta(weeks=1),
    "week": timedelta(weeks=1),
    "weeks": timedelta(weeks=1),
}

# Wall-clock defaults for named phrases
TOMORROW_TIME = time(9, 0)
TONIGHT_TIME = time(20, 0)

VALID_FORMATS_HELP = (
    "**Relative:** `5m`, `2h`, `3d`, `1w`\n"
    "**Specific:** `5pm`, `14:30`, `9am`\n"
    "**Phrases:** `tomorrow`, `tonight`, `next week`"
)


def local_at(now: datetime, at: time, days: int = 0) -> datetime:
    """
    Build an aware datetime on now's calendar date (plus days) at a wall-clock time.

    Args:
        now: Aware reference time, its timezone is used for the result
        at: Wall-clock time
        days: Calendar days to add to now's date

    Returns:
        Aware datetime in now's timezone
    """
    naive = datetime.combine(now.date() + timedelta(days=days), at)
    tz = now.tzinfo
    if hasattr(tz, "localize"):
        # pytz zones need localize() to pick the right UTC offset for the date
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def _normalize(when: datetime) -> datetime:
    """Correct the UTC offset of a pytz datetime after timedelta arithmetic."""
    tz = when.tzinfo
    if hasattr(tz, "normalize"):
        return tz.normalize(when)
    return when


def _parse_relative(expr: str, now: datetime) -> Optional[datetime]:
    match = RELATIVE_PATTERN.match(expr)
    if not match:
        return None
    try:
        amount = int(match.group(1))
        return _normalize(now + amount * UNIT_DURATIONS[match.group(2)])
    except (OverflowError, ValueError):
        # Beyond datetime range (year 9999) or an absurdly long number
        logger.debug(f"Relative time '{expr}' is out of range")
        return None


def _parse_clock(expr: str, now: datetime) -> Optional[datetime]:
    """
    Parse "5pm", "9:30am", "14:30" as the next occurrence of that time.

    Returns None on out-of-range hours or minutes.
    """
    match = CLOCK_PATTERN.match(expr)
    if not match:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    period = match.group(3)

    if minute > 59:
        return None

    if period:
        if hour < 1 or hour > 12:
            return None
        # Convert to 24-hour
        if period == "pm" and hour != 12:
            hour += 12
        elif period == "am" and hour == 12:
            hour = 0
    elif hour > 23:
        return None

    candidate = local_at(now, time(hour, minute))
    if candidate <= now:
        # Already passed today
        candidate = local_at(now, time(hour, minute), days=1)
        logger.debug(f"Time '{expr}' has passed today, using {candidate.isoformat()}")
    return candidate


def _tomorrow(now: datetime) -> datetime:
    return local_at(now, TOMORROW_TIME, days=1)


def _next_week(now: datetime) -> datetime:
    # Same wall-clock time, even across a DST change
    return local_at(now, now.time().replace(tzinfo=None), days=7)


def _tonight(now: datetime) -> datetime:
    # Not rolled to tomorrow after 20:00, unlike clock times
    return local_at(now, TONIGHT_TIME)


NAMED_PHRASES: dict[str, Callable[[datetime], datetime]] = {
    "tomorrow": _tomorrow,
    "next week": _next_week,
    "tonight": _tonight,
}


def _parse_fallback(expr: str, now: datetime) -> Optional[datetime]:
    """Generic date parsing; only future results are accepted."""
    settings = {
        "TIMEZONE": getattr(now.tzinfo, "zone", "UTC"),
        "RETURN_AS_TIMEZONE_AWARE": True,
        "PREFER_DATES_FROM": "future",
        "RELATIVE_BASE": now.replace(tzinfo=None),
    }

    try:
        parsed = dateparser.parse(expr, settings=settings)
    except (OverflowError, ValueError) as e:
        logger.debug(f"Could not parse time '{expr}': {e}")
        return None
    if parsed is None:
        return None

    if parsed <= now:
        logger.debug(f"Time '{expr}' parsed to {parsed.isoformat()}, which is not in the future")
        return None
    return parsed


def parse_time(expr: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse a time expression into an absolute timestamp.

    Supports, in order:
    - Relative durations: "5m", "2 hours", "3d", "1w"
    - Clock times: "5pm", "9:30am", "14:30" (rolled to tomorrow if passed)
    - Phrases: "tomorrow" (9am), "next week", "tonight" (8pm)
    - Anything dateparser understands that lies in the future

    Args:
        expr: The time expression to parse
        now: Aware reference time (defaults to the current UTC time)

    Returns:
        Aware datetime, or None if the expression could not be parsed
    """
    if now is None:
        now = datetime.now(pytz.UTC)

    text = expr.strip().lower()
    if not text:
        return None

    if RELATIVE_PATTERN.match(text):
        return _parse_relative(text, now)

    if CLOCK_PATTERN.match(text):
        # Out-of-range clock values fail here rather than reaching dateparser
        return _parse_clock(text, now)

    phrase = NAMED_PHRASES.get(text)
    if phrase is not None:
        return phrase(now)

    # Raw input, dateparser handles its own casing
    return _parse_fallback(expr.strip(), now)
