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

"""Tests for the in-memory reminder scheduler."""

import asyncio
import sys
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import pytz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reminders import ReminderConfig, ReminderError, ReminderScheduler

T0 = pytz.UTC.localize(datetime(2026, 6, 10, 12, 0))


class FakeTimer:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Stands in for the event loop's call_later and the wall clock."""

    def __init__(self, start):
        self.now = start
        self.timers = []

    def clock(self):
        return self.now

    def call_later(self, delay, callback, *args):
        timer = FakeTimer(self.now + timedelta(seconds=delay), callback, args)
        self.timers.append(timer)
        return timer

    def pending(self):
        return [timer for timer in self.timers if not timer.cancelled]

    def advance(self, delta):
        """Move the clock forward, running due timers in deadline order."""
        target = self.now + delta
        while True:
            due = sorted(
                (timer for timer in self.pending() if timer.when <= target),
                key=lambda timer: timer.when,
            )
            if not due:
                break
            timer = due[0]
            self.timers.remove(timer)
            self.now = max(self.now, timer.when)
            timer.callback(*timer.args)
        self.now = target


@pytest.fixture
def fake_loop():
    return FakeLoop(T0)


@pytest.fixture
def scheduler(fake_loop):
    return ReminderScheduler(
        ReminderConfig(timezone="UTC"),
        clock=fake_loop.clock,
        loop=fake_loop,
    )


@pytest.fixture
def notify(scheduler):
    callback = AsyncMock()
    scheduler.set_notification_callback(callback)
    return callback


async def advance(fake_loop, scheduler, delta):
    fake_loop.advance(delta)
    await scheduler.wait_for_deliveries()


class TestCreateReminder:
    """Test reminder creation and validation."""

    def test_creates_and_schedules(self, scheduler, fake_loop):
        result = scheduler.create_reminder("u1", "Buy milk", "30m", "X", "c1")

        assert result.success
        assert result.error is None
        reminder = result.reminder
        assert reminder.id == 1
        assert reminder.owner_id == "u1"
        assert reminder.message == "Buy milk"
        assert reminder.due_at == T0 + timedelta(minutes=30)
        assert reminder.platform == "X"
        assert reminder.destination == "c1"
        assert reminder.created_at == T0
        assert reminder.completed is False
        assert result.time_until == "30 minutes"
        assert [timer.when for timer in fake_loop.pending()] == [T0 + timedelta(minutes=30)]

    def test_message_is_trimmed(self, scheduler):
        result = scheduler.create_reminder("u1", "  Call mom \n", "1h")
        assert result.reminder.message == "Call mom"

    @pytest.mark.parametrize("message", ["", "   ", None])
    def test_empty_message_rejected(self, scheduler, fake_loop, message):
        result = scheduler.create_reminder("u1", message, "1h")
        assert not result.success
        assert result.error is ReminderError.EMPTY_MESSAGE
        assert fake_loop.pending() == []

    def test_invalid_time_format(self, scheduler, fake_loop):
        result = scheduler.create_reminder("u1", "Buy milk", "xyzzy")

        assert not result.success
        assert result.reminder is None
        assert result.error is ReminderError.INVALID_TIME_FORMAT
        assert "5m" in result.error.message
        assert fake_loop.pending() == []
        assert scheduler.get_user_reminders("u1") == []

    @pytest.mark.parametrize("time_string", ["99999999w", "5000000d"])
    def test_time_beyond_datetime_range(self, scheduler, fake_loop, time_string):
        result = scheduler.create_reminder("u1", "Buy milk", time_string)

        assert result.error is ReminderError.INVALID_TIME_FORMAT
        assert fake_loop.pending() == []
        assert scheduler.get_user_reminders("u1") == []

    def test_zero_duration_is_in_past(self, scheduler):
        result = scheduler.create_reminder("u1", "Buy milk", "0m")
        assert result.error is ReminderError.TIME_IN_PAST

    def test_tonight_after_eight_is_in_past(self, fake_loop, scheduler):
        fake_loop.now = T0.replace(hour=21)
        result = scheduler.create_reminder("u1", "Walk the dog", "tonight")
        assert result.error is ReminderError.TIME_IN_PAST

    def test_rejected_input_does_not_consume_ids(self, scheduler):
        scheduler.create_reminder("u1", "Buy milk", "nonsense")
        assert scheduler.create_reminder("u1", "Buy milk", "5m").reminder.id == 1

    def test_ids_are_global_and_never_reused(self, scheduler):
        first = scheduler.create_reminder("u1", "a", "5m").reminder
        second = scheduler.create_reminder("u2", "b", "5m").reminder
        assert scheduler.cancel_reminder(second.id, "u2")
        third = scheduler.create_reminder("u1", "c", "5m").reminder
        assert (first.id, second.id, third.id) == (1, 2, 3)


class TestGetUserReminders:
    """Test listing a user's reminders."""

    def test_sorted_by_due_time(self, scheduler):
        later = scheduler.create_reminder("u1", "later", "10m").reminder
        sooner = scheduler.create_reminder("u1", "sooner", "5m").reminder

        reminders = scheduler.get_user_reminders("u1")
        assert [r.id for r in reminders] == [sooner.id, later.id]

    def test_filters_by_owner(self, scheduler):
        scheduler.create_reminder("u1", "mine", "5m")
        scheduler.create_reminder("u2", "theirs", "5m")

        assert [r.message for r in scheduler.get_user_reminders("u1")] == ["mine"]
        assert scheduler.get_user_reminders("nobody") == []

    def test_returns_fresh_list(self, scheduler):
        scheduler.create_reminder("u1", "a", "5m")
        first = scheduler.get_user_reminders("u1")
        first.clear()
        assert len(scheduler.get_user_reminders("u1")) == 1


class TestCancelReminder:
    """Test cancellation and ownership checks."""

    @pytest.mark.asyncio
    async def test_owner_can_cancel(self, scheduler, fake_loop, notify):
        reminder = scheduler.create_reminder("u1", "Buy milk", "5m").reminder

        assert scheduler.cancel_reminder(reminder.id, "u1") is True
        assert scheduler.get_user_reminders("u1") == []
        assert scheduler.get_reminder(reminder.id) is None
        assert fake_loop.pending() == []

        await advance(fake_loop, scheduler, timedelta(hours=1))
        notify.assert_not_called()

    def test_other_user_cannot_cancel(self, scheduler):
        reminder = scheduler.create_reminder("u1", "Buy milk", "5m").reminder

        assert scheduler.cancel_reminder(reminder.id, "u2") is False
        assert [r.id for r in scheduler.get_user_reminders("u1")] == [reminder.id]

    def test_unknown_id(self, scheduler):
        assert scheduler.cancel_reminder(42, "u1") is False

    def test_cancel_twice(self, scheduler):
        reminder = scheduler.create_reminder("u1", "Buy milk", "5m").reminder
        assert scheduler.cancel_reminder(reminder.id, "u1") is True
        assert scheduler.cancel_reminder(reminder.id, "u1") is False


class TestFiring:
    """Test timers firing and notification delivery."""

    @pytest.mark.asyncio
    async def test_fires_once_at_due_time(self, scheduler, fake_loop, notify):
        reminder = scheduler.create_reminder("u1", "Buy milk", "30m").reminder

        await advance(fake_loop, scheduler, timedelta(minutes=29, seconds=59))
        notify.assert_not_called()

        await advance(fake_loop, scheduler, timedelta(seconds=1))
        notify.assert_awaited_once()
        fired = notify.await_args.args[0]
        assert fired.id == reminder.id
        assert fired.completed is True

        await advance(fake_loop, scheduler, timedelta(hours=1))
        assert notify.await_count == 1

    @pytest.mark.asyncio
    async def test_cancel_after_fire_fails(self, scheduler, fake_loop, notify):
        reminder = scheduler.create_reminder("u1", "Buy milk", "5m").reminder
        await advance(fake_loop, scheduler, timedelta(minutes=5))

        assert scheduler.cancel_reminder(reminder.id, "u1") is False
        assert scheduler.get_user_reminders("u1") == []
        # Kept for the grace window
        assert scheduler.get_reminder(reminder.id) is reminder

    @pytest.mark.asyncio
    async def test_cancel_during_delivery_fails(self, scheduler, fake_loop):
        release = asyncio.Event()
        delivered = []

        async def slow_notify(reminder):
            await release.wait()
            delivered.append(reminder.id)

        scheduler.set_notification_callback(slow_notify)
        reminder = scheduler.create_reminder("u1", "Buy milk", "5m").reminder

        fake_loop.advance(timedelta(minutes=5))
        assert scheduler.cancel_reminder(reminder.id, "u1") is False

        release.set()
        await scheduler.wait_for_deliveries()
        assert delivered == [reminder.id]

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_block_others(self, scheduler, fake_loop):
        calls = []

        async def flaky_notify(reminder):
            calls.append(reminder.message)
            if reminder.message == "first":
                raise RuntimeError("delivery failed")

        scheduler.set_notification_callback(flaky_notify)
        first = scheduler.create_reminder("u1", "first", "5m").reminder
        second = scheduler.create_reminder("u2", "second", "10m").reminder

        await advance(fake_loop, scheduler, timedelta(minutes=5))
        assert calls == ["first"]
        assert first.completed is True

        await advance(fake_loop, scheduler, timedelta(minutes=5))
        assert calls == ["first", "second"]
        assert second.completed is True

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_retried(self, scheduler, fake_loop):
        scheduler.set_notification_callback(AsyncMock(side_effect=RuntimeError("boom")))
        reminder = scheduler.create_reminder("u1", "Buy milk", "5m").reminder

        with patch("reminders.scheduler.logger") as mock_logger:
            await advance(fake_loop, scheduler, timedelta(minutes=5))

        mock_logger.error.assert_called_once()
        assert reminder.completed is True
        assert scheduler.get_stats().scheduled_tasks == 0

    @pytest.mark.asyncio
    async def test_callback_replaced_last_writer_wins(self, scheduler, fake_loop):
        old, new = AsyncMock(), AsyncMock()
        scheduler.set_notification_callback(old)
        scheduler.set_notification_callback(new)
        scheduler.create_reminder("u1", "Buy milk", "5m")

        await advance(fake_loop, scheduler, timedelta(minutes=5))
        old.assert_not_called()
        new.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fires_without_callback(self, scheduler, fake_loop):
        reminder = scheduler.create_reminder("u1", "Buy milk", "5m").reminder
        await advance(fake_loop, scheduler, timedelta(minutes=5))
        assert reminder.completed is True

    @pytest.mark.asyncio
    async def test_manual_trigger_disarms_timer(self, scheduler, fake_loop, notify):
        reminder = scheduler.create_reminder("u1", "Buy milk", "1h").reminder

        await scheduler.trigger_reminder(reminder)
        assert reminder.completed is True
        assert scheduler.get_stats().scheduled_tasks == 0

        await advance(fake_loop, scheduler, timedelta(hours=1))
        notify.assert_awaited_once()


class TestPurge:
    """Test removal of completed reminders."""

    @pytest.mark.asyncio
    async def test_purged_after_grace_window(self, scheduler, fake_loop, notify):
        reminder = scheduler.create_reminder("u1", "Buy milk", "5m").reminder
        await advance(fake_loop, scheduler, timedelta(minutes=5))

        await advance(fake_loop, scheduler, timedelta(hours=23, minutes=59))
        assert scheduler.get_reminder(reminder.id) is reminder

        await advance(fake_loop, scheduler, timedelta(minutes=1))
        assert scheduler.get_reminder(reminder.id) is None

    @pytest.mark.asyncio
    async def test_sweep_removes_missed_purges(self, scheduler, fake_loop, notify):
        fired = scheduler.create_reminder("u1", "fired", "5m").reminder
        recent = scheduler.create_reminder("u1", "recent", "2h").reminder
        await advance(fake_loop, scheduler, timedelta(hours=2))
        pending = scheduler.create_reminder("u1", "pending", "3d").reminder

        # Wall clock jumps without timers running, e.g. after a suspend
        fake_loop.now = T0 + timedelta(hours=25)

        assert scheduler.purge_expired() == 1
        assert scheduler.get_reminder(fired.id) is None
        assert scheduler.get_reminder(recent.id) is recent
        assert scheduler.get_reminder(pending.id) is pending

    def test_sweep_with_nothing_to_do(self, scheduler):
        scheduler.create_reminder("u1", "pending", "5m")
        assert scheduler.purge_expired() == 0


class TestLifecycle:
    """Test stats, start and close."""

    @pytest.mark.asyncio
    async def test_stats(self, scheduler, fake_loop, notify):
        scheduler.create_reminder("u1", "a", "5m")
        scheduler.create_reminder("u1", "b", "1h")
        scheduler.create_reminder("u2", "c", "1d")
        await advance(fake_loop, scheduler, timedelta(minutes=5))

        stats = scheduler.get_stats()
        assert stats.total_reminders == 3
        assert stats.active_reminders == 2
        assert stats.completed_reminders == 1
        assert stats.scheduled_tasks == 2

    @pytest.mark.asyncio
    async def test_close_disarms_timers(self, scheduler, fake_loop, notify):
        scheduler.create_reminder("u1", "a", "5m")
        await scheduler.close()

        assert fake_loop.pending() == []
        await advance(fake_loop, scheduler, timedelta(hours=1))
        notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_close_during_delivery_arms_no_purge(self, scheduler, fake_loop):
        release = asyncio.Event()

        async def slow_notify(reminder):
            await release.wait()

        scheduler.set_notification_callback(slow_notify)
        scheduler.create_reminder("u1", "Buy milk", "5m")
        fake_loop.advance(timedelta(minutes=5))

        close_task = asyncio.create_task(scheduler.close())
        await asyncio.sleep(0)
        release.set()
        await close_task

        assert fake_loop.pending() == []
        assert scheduler.get_stats().completed_reminders == 1

    @pytest.mark.asyncio
    async def test_start_runs_sweep_loop(self, scheduler):
        scheduler.start()
        try:
            assert scheduler._sweep_loop.is_running()
            assert scheduler._sweep_loop.minutes == 60
        finally:
            await scheduler.close()

    @pytest.mark.asyncio
    async def test_real_event_loop(self):
        scheduler = ReminderScheduler(ReminderConfig(timezone="UTC"))
        notify = AsyncMock()
        scheduler.set_notification_callback(notify)

        result = scheduler.create_reminder("u1", "Buy milk", "1m")
        assert result.success
        assert scheduler.get_stats().scheduled_tasks == 1

        await scheduler.close()
        assert scheduler.get_stats().scheduled_tasks == 0


@pytest.mark.asyncio
async def test_buy_milk_scenario(scheduler, fake_loop, notify):
    result = scheduler.create_reminder("u1", "Buy milk", "30m", "X", "c1")

    assert result.reminder.due_at == T0 + timedelta(minutes=30)
    assert len(scheduler.get_user_reminders("u1")) == 1

    await advance(fake_loop, scheduler, timedelta(minutes=30))

    notify.assert_awaited_once()
    assert notify.await_args.args[0].message == "Buy milk"
    assert scheduler.get_user_reminders("u1") == []
