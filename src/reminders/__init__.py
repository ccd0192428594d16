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
Reminders Package

In-memory one-shot reminders with natural language time parsing.
"""

from .config import ReminderConfig
from .formatting import format_reminder_time, format_time_until
from .models import Reminder, ReminderError, ReminderResult, ReminderStats
from .scheduler import NotificationCallback, ReminderScheduler
from .time_parser import VALID_FORMATS_HELP, parse_time

__all__ = [
    "ReminderConfig",
    "format_reminder_time",
    "format_time_until",
    "Reminder",
    "ReminderError",
    "ReminderResult",
    "ReminderStats",
    "NotificationCallback",
    "ReminderScheduler",
    "VALID_FORMATS_HELP",
    "parse_time",
]
