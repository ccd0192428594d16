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
Reminder Formatting

Human-readable renderings of reminder times shared by the Discord and
Telegram command handlers.
"""

from datetime import datetime, timedelta

MINUTE = timedelta(minutes=1)
HOUR = timedelta(hours=1)
DAY = timedelta(days=1)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_time_until(due_at: datetime, now: datetime) -> str:
    """
    Describe the time remaining until a reminder fires.

    Args:
        due_at: When the reminder fires
        now: Reference time

    Returns:
        e.g. "1 day, 2 hours, 5 minutes", "less than a minute" or "now"
    """
    remaining = due_at - now
    if remaining <= timedelta(0):
        return "now"

    days = remaining // DAY
    hours = (remaining % DAY) // HOUR
    minutes = (remaining % HOUR) // MINUTE

    parts = []
    if days > 0:
        parts.append(_plural(days, "day"))
    if hours > 0:
        parts.append(_plural(hours, "hour"))
    if minutes > 0:
        parts.append(_plural(minutes, "minute"))

    if not parts:
        return "less than a minute"
    return ", ".join(parts)


def format_reminder_time(when: datetime) -> str:
    """Format a reminder time for display, e.g. "Sat, Oct 17, 2026, 05:30 PM"."""
    return when.strftime("%a, %b %d, %Y, %I:%M %p")


def truncate(text: str, limit: int = 50) -> str:
    """Shorten text for list displays."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text
