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
Reminder Scheduler Module

In-memory registry of one-shot reminders. Each pending reminder owns a single
event-loop timer; when it fires the reminder is marked completed, the
registered notification callback is awaited in its own task, and the
reminder is purged after a grace window. An hourly sweep (discord.ext.tasks)
removes any completed reminders whose purge timer was missed.

Nothing here is persisted: a restart loses every reminder.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

from discord.ext import tasks

from .config import ReminderConfig
from .formatting import format_time_until
from .models import Reminder, ReminderError, ReminderResult, ReminderStats
from .time_parser import parse_time

logger = logging.getLogger("utilbot.reminders.scheduler")

NotificationCallback = Callable[[Reminder], Awaitable[None]]


class ReminderScheduler:
    """
    Creates, lists, cancels and fires reminders.

    Constructed once at startup and passed to every command handler.
    The timer loop and the clock are injectable so tests can drive time.
    """

    def __init__(
        self,
        config: Optional[ReminderConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        loop: Optional[Any] = None,
    ):
        """
        Initialize the reminder scheduler.

        Args:
            config: Reminder configuration (defaults to environment)
            clock: Returns the current aware time (defaults to now in config.timezone)
            loop: Object providing call_later(delay, callback, *args)
                  (defaults to the running asyncio loop)
        """
        self.config = config or ReminderConfig.from_env()
        self._clock = clock or (lambda: datetime.now(self.config.tz))
        self._loop = loop

        self._reminders: dict[int, Reminder] = {}
        self._timers: dict[int, asyncio.TimerHandle] = {}
        self._purge_timers: dict[int, asyncio.TimerHandle] = {}
        self._deliveries: set[asyncio.Task] = set()
        self._next_id = 1
        self._notify: Optional[NotificationCallback] = None
        self._started = False
        self._closed = False

    @property
    def grace_period(self) -> timedelta:
        return timedelta(hours=self.config.grace_hours)

    def now(self) -> datetime:
        return self._clock()

    def set_notification_callback(self, callback: Optional[NotificationCallback]) -> None:
        """
        Register the function awaited when a reminder fires.

        Only one callback is kept; registering again replaces it.
        """
        self._notify = callback

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start the stale-reminder sweep loop."""
        if not self._started:
            self._sweep_loop.change_interval(minutes=self.config.sweep_minutes)
            self._sweep_loop.start()
            self._started = True
            self._closed = False
            logger.info(f"Reminder sweep started (runs every {self.config.sweep_minutes} minutes)")

    async def close(self) -> None:
        """Stop the sweep, disarm all timers and wait for in-flight deliveries."""
        self._closed = True
        if self._started:
            self._sweep_loop.cancel()
            self._started = False

        for handle in list(self._timers.values()) + list(self._purge_timers.values()):
            handle.cancel()
        self._timers.clear()
        self._purge_timers.clear()

        await self.wait_for_deliveries()
        logger.info(f"Reminder scheduler stopped, {len(self._reminders)} reminder(s) dropped")

    async def wait_for_deliveries(self) -> None:
        """Wait until every fired reminder has finished its notification."""
        while True:
            pending = [task for task in self._deliveries if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    @tasks.loop(hours=1)
    async def _sweep_loop(self) -> None:
        """Purge stale completed reminders periodically."""
        try:
            self.purge_expired()
        except Exception as e:
            logger.error(f"Error in reminder sweep: {e}", exc_info=True)

    # =========================================================================
    # Command-facing methods
    # =========================================================================

    def create_reminder(
        self,
        owner_id: str,
        message: str,
        time_string: str,
        platform: str = "discord",
        destination: Optional[str] = None,
    ) -> ReminderResult:
        """
        Create and schedule a new reminder.

        Args:
            owner_id: Platform user ID of the requester
            message: Reminder text
            time_string: When to fire, e.g. "30m", "5pm", "tomorrow"
            platform: Platform tag used to route the notification
            destination: Channel/chat ID for the notification

        Returns:
            ReminderResult with the stored reminder and a "time until" string,
            or with an error if the input was rejected
        """
        now = self._clock()

        message = (message or "").strip()
        if not message:
            return ReminderResult(error=ReminderError.EMPTY_MESSAGE)

        due_at = parse_time(time_string, now)
        if due_at is None:
            logger.debug(f"Rejected reminder time '{time_string}' from user {owner_id}")
            return ReminderResult(error=ReminderError.INVALID_TIME_FORMAT)
        if due_at <= now:
            return ReminderResult(error=ReminderError.TIME_IN_PAST)

        reminder = Reminder(
            id=self._next_id,
            owner_id=owner_id,
            message=message,
            due_at=due_at,
            platform=platform,
            destination=destination,
            created_at=now,
        )
        self._next_id += 1
        self._reminders[reminder.id] = reminder
        self._schedule(reminder, now)

        logger.info(
            f"Created reminder {reminder.id} for user {owner_id} on {platform}: "
            f"due={due_at.isoformat()}"
        )
        return ReminderResult(reminder=reminder, time_until=format_time_until(due_at, now))

    def get_user_reminders(self, owner_id: str) -> list[Reminder]:
        """
        List a user's pending reminders, soonest first.

        Args:
            owner_id: Platform user ID

        Returns:
            New list of non-completed reminders sorted by due time
        """
        pending = [
            reminder
            for reminder in self._reminders.values()
            if reminder.owner_id == owner_id and not reminder.completed
        ]
        return sorted(pending, key=lambda reminder: reminder.due_at)

    def get_reminder(self, reminder_id: int) -> Optional[Reminder]:
        return self._reminders.get(reminder_id)

    def cancel_reminder(self, reminder_id: int, owner_id: str) -> bool:
        """
        Cancel (delete) a pending reminder if the user owns it.

        Args:
            reminder_id: Reminder ID
            owner_id: Platform user ID (for ownership check)

        Returns:
            True if cancelled, False if not found, not owned or already fired
        """
        reminder = self._reminders.get(reminder_id)
        if reminder is None or reminder.owner_id != owner_id or reminder.completed:
            return False

        handle = self._timers.pop(reminder_id, None)
        if handle is not None:
            handle.cancel()
        del self._reminders[reminder_id]

        logger.info(f"Cancelled reminder {reminder_id} for user {owner_id}")
        return True

    def get_stats(self) -> ReminderStats:
        completed = sum(1 for reminder in self._reminders.values() if reminder.completed)
        return ReminderStats(
            total_reminders=len(self._reminders),
            active_reminders=len(self._reminders) - completed,
            completed_reminders=completed,
            scheduled_tasks=len(self._timers),
        )

    # =========================================================================
    # Timer-facing methods
    # =========================================================================

    def _call_later(self, delay: float, callback: Callable[..., None], *args: Any) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback, *args)

    def _schedule(self, reminder: Reminder, now: datetime) -> None:
        delay = (reminder.due_at - now).total_seconds()
        self._timers[reminder.id] = self._call_later(delay, self._on_due, reminder.id)

    def _on_due(self, reminder_id: int) -> None:
        reminder = self._reminders.get(reminder_id)
        if reminder is None or reminder.completed:
            return
        self.trigger_reminder(reminder)

    def trigger_reminder(self, reminder: Reminder) -> asyncio.Task:
        """
        Fire a reminder: mark it completed and start its notification.

        Completion is recorded before returning, so a cancel issued after this
        point fails even while the notification is still in flight.

        Args:
            reminder: The reminder whose time has come

        Returns:
            The delivery task
        """
        reminder.completed = True

        handle = self._timers.pop(reminder.id, None)
        if handle is not None:
            handle.cancel()

        task = asyncio.create_task(self._deliver(reminder))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)
        return task

    async def _deliver(self, reminder: Reminder) -> None:
        callback = self._notify
        try:
            if callback is None:
                logger.warning(f"Reminder {reminder.id} fired with no notification callback set")
            else:
                await callback(reminder)
                logger.info(f"Reminder {reminder.id} triggered for user {reminder.owner_id}")
        except Exception as e:
            # Never retried; the reminder stays completed
            logger.error(f"Error triggering reminder {reminder.id}: {e}", exc_info=True)
        finally:
            # No new purge timers once close() has disarmed everything
            if not self._closed and reminder.id in self._reminders:
                self._purge_timers[reminder.id] = self._call_later(
                    self.grace_period.total_seconds(), self._purge, reminder.id
                )

    def _purge(self, reminder_id: int) -> None:
        self._purge_timers.pop(reminder_id, None)
        if self._reminders.pop(reminder_id, None) is not None:
            logger.debug(f"Purged completed reminder {reminder_id}")

    def purge_expired(self) -> int:
        """
        Remove completed reminders whose due time is older than the grace window.

        Returns:
            Number of reminders removed
        """
        cutoff = self._clock() - self.grace_period
        stale = [
            reminder_id
            for reminder_id, reminder in self._reminders.items()
            if reminder.completed and reminder.due_at < cutoff
        ]

        for reminder_id in stale:
            del self._reminders[reminder_id]
            handle = self._purge_timers.pop(reminder_id, None)
            if handle is not None:
                handle.cancel()

        if stale:
            logger.info(f"Cleaned up {len(stale)} old reminders")
        return len(stale)
