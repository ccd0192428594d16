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
Reminder Notification Routing

The reminder scheduler accepts a single notification callback. The router is
that callback: it hands each fired reminder to the sender registered for the
reminder's platform tag ("discord", "telegram", ...).
"""

import logging
from typing import Optional

from reminders import NotificationCallback, Reminder

logger = logging.getLogger("utilbot.notifications")


class NotificationRouter:
    """Dispatches fired reminders to per-platform senders."""

    def __init__(self):
        self._senders: dict[str, NotificationCallback] = {}

    def register(self, platform: str, sender: NotificationCallback) -> None:
        """Register (or replace) the sender for a platform."""
        self._senders[platform] = sender
        logger.info(f"Registered reminder sender for {platform}")

    def unregister(self, platform: str) -> None:
        self._senders.pop(platform, None)

    def sender_for(self, platform: str) -> Optional[NotificationCallback]:
        return self._senders.get(platform)

    async def __call__(self, reminder: Reminder) -> None:
        sender = self._senders.get(reminder.platform)
        if sender is None:
            logger.warning(
                f"No sender for platform '{reminder.platform}', "
                f"reminder {reminder.id} not delivered"
            )
            return
        await sender(reminder)
