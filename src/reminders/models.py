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

"""Reminder data types."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass
class Reminder:
    """A scheduled one-shot notification owned by a user."""

    id: int
    owner_id: str
    message: str
    due_at: datetime
    platform: str  # e.g. "discord", "telegram"
    destination: Optional[str]  # channel/chat id, only read by notification senders
    created_at: datetime
    completed: bool = False


class ReminderError(Enum):
    """Reasons a reminder could not be created."""

    INVALID_TIME_FORMAT = 'Invalid time format. Try: "5m", "2h", "tomorrow", "5pm", etc.'
    TIME_IN_PAST = "Reminder time must be in the future"
    EMPTY_MESSAGE = "Reminder message cannot be empty"

    @property
    def message(self) -> str:
        return self.value


@dataclass
class ReminderResult:
    """Outcome of create_reminder: either a reminder or an error."""

    reminder: Optional[Reminder] = None
    time_until: Optional[str] = None
    error: Optional[ReminderError] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class ReminderStats:
    """Counts of stored reminders and armed timers."""

    total_reminders: int = 0
    active_reminders: int = 0
    completed_reminders: int = 0
    scheduled_tasks: int = 0
