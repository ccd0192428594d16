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
Reminder System Configuration

Retention and sweep settings for the in-memory reminder scheduler.
Values can be overridden via environment variables.
"""

import logging
import os
from dataclasses import dataclass

import pytz

logger = logging.getLogger("utilbot.reminders.config")


@dataclass
class ReminderConfig:
    """Configuration for the reminder scheduler."""

    # Wall-clock timezone for "5pm", "tomorrow", "tonight"
    timezone: str = "UTC"

    # How long a fired reminder is kept before it is purged
    grace_hours: int = 24

    # Interval of the stale-reminder sweep
    sweep_minutes: int = 60

    @property
    def tz(self) -> pytz.BaseTzInfo:
        return pytz.timezone(self.timezone)

    @classmethod
    def from_env(cls) -> "ReminderConfig":
        """Create config from environment variables with defaults."""
        timezone = os.getenv("REMINDER_TIMEZONE", "UTC")
        try:
            pytz.timezone(timezone)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Invalid timezone '{timezone}', falling back to UTC")
            timezone = "UTC"

        return cls(
            timezone=timezone,
            grace_hours=int(os.getenv("REMINDER_GRACE_HOURS", "24")),
            sweep_minutes=int(os.getenv("REMINDER_SWEEP_MINUTES", "60")),
        )
