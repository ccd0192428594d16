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
Telegram Reminder Bot

python-telegram-bot handlers for the reminder commands, sharing the scheduler
with the Discord bot, plus delivery of fired Telegram reminders.

Commands:
    /remind <time> <message>   e.g. /remind 30m Buy milk, /remind next week Rent
    /reminders                 list active reminders
    /cancel <id>               cancel a reminder
"""

import logging
import re
from typing import Optional

from telegram import BotCommand, Update
from telegram.ext import Application, CommandHandler, ContextTypes

from reminders import (
    Reminder,
    ReminderScheduler,
    format_reminder_time,
    format_time_until,
)
from reminders.formatting import truncate
from reminders.time_parser import UNIT_DURATIONS

logger = logging.getLogger("utilbot.telegram")

PLATFORM = "telegram"
LIST_LIMIT = 10

# Multi-word phrases accepted as the time argument of /remind
MULTI_WORD_TIMES = ("next week",)
TIME_SUFFIXES = set(UNIT_DURATIONS) | {"am", "pm"}
CLOCK_TOKEN = re.compile(r"^\d{1,2}:\d{2}$")

USAGE = (
    "Usage: /remind <time> <message>\n\n"
    "Relative: 5m, 2h, 3d, 1w\n"
    "Specific: 5pm, 14:30, 9am\n"
    "Phrases: tomorrow, tonight, next week\n\n"
    "Example: /remind 30m Buy groceries"
)


def split_time_and_message(args: list[str]) -> tuple[str, str]:
    """
    Split /remind arguments into the time expression and the message.

    Args:
        args: Whitespace-split command arguments

    Returns:
        Tuple of (time_string, message); either may be empty
    """
    if not args:
        return "", ""

    text = " ".join(args)
    lowered = text.lower()
    for phrase in MULTI_WORD_TIMES:
        if lowered == phrase or lowered.startswith(phrase + " "):
            return text[: len(phrase)], text[len(phrase):].strip()

    # "5 m Buy milk" -> "5 m", "5 pm Call mom" -> "5 pm"
    if len(args) > 1 and args[0].isdigit() and args[1].lower() in TIME_SUFFIXES:
        return f"{args[0]} {args[1]}", " ".join(args[2:])

    # "9:30 am Call mom" -> "9:30 am"
    if len(args) > 1 and CLOCK_TOKEN.match(args[0]) and args[1].lower() in ("am", "pm"):
        return f"{args[0]} {args[1]}", " ".join(args[2:])

    return args[0], " ".join(args[1:])


class TelegramReminderBot:
    """Telegram front end for the shared reminder scheduler."""

    def __init__(self, token: str, scheduler: ReminderScheduler):
        self.scheduler = scheduler
        self.application = Application.builder().token(token).build()
        self.application.add_handler(CommandHandler("remind", self.remind_command))
        self.application.add_handler(CommandHandler("reminders", self.reminders_command))
        self.application.add_handler(CommandHandler("cancel", self.cancel_command))

    async def start(self) -> None:
        """Start polling inside the already running event loop."""
        await self.application.initialize()
        await self.application.bot.set_my_commands([
            BotCommand("remind", "Set a personal reminder"),
            BotCommand("reminders", "View your active reminders"),
            BotCommand("cancel", "Cancel one of your reminders"),
        ])
        await self.application.start()
        await self.application.updater.start_polling()
        logger.info("Telegram bot polling started")

    async def stop(self) -> None:
        await self.application.updater.stop()
        await self.application.stop()
        await self.application.shutdown()
        logger.info("Telegram bot stopped")

    async def remind_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        try:
            time_string, message = split_time_and_message(context.args or [])
            if not time_string or not message:
                await update.message.reply_text(USAGE)
                return

            user_id = str(update.effective_user.id)
            result = self.scheduler.create_reminder(
                owner_id=user_id,
                message=message,
                time_string=time_string,
                platform=PLATFORM,
                destination=str(update.effective_chat.id),
            )

            if not result.success:
                await update.message.reply_text(f"❌ {result.error.message}\n\n{USAGE}")
                return

            reminder = result.reminder
            await update.message.reply_text(
                f"⏰ Reminder set!\n\n"
                f"I'll remind you about: {reminder.message}\n"
                f"🕐 When: {format_reminder_time(reminder.due_at)}\n"
                f"⏳ In: {result.time_until}\n"
                f"🆔 ID: #{reminder.id}"
            )
            logger.info(f"Reminder created via Telegram: {reminder.id} for user {user_id}")

        except Exception as e:
            logger.error(f"Error in remind command: {e}", exc_info=True)
            await update.message.reply_text("❌ An error occurred while setting your reminder. Please try again.")

    async def reminders_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        try:
            user_id = str(update.effective_user.id)
            reminders = self.scheduler.get_user_reminders(user_id)

            if not reminders:
                await update.message.reply_text(
                    "📝 You don't have any active reminders.\n\n"
                    "Use /remind <time> <message> to set one!"
                )
                return

            await update.message.reply_text(format_reminder_list(reminders, self.scheduler))

        except Exception as e:
            logger.error(f"Error in reminders command: {e}", exc_info=True)
            await update.message.reply_text("❌ An error occurred while fetching your reminders. Please try again.")

    async def cancel_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        try:
            reminder_id = parse_reminder_id(context.args or [])
            if reminder_id is None:
                await update.message.reply_text("Usage: /cancel <id>  (see /reminders for IDs)")
                return

            user_id = str(update.effective_user.id)
            if self.scheduler.cancel_reminder(reminder_id, user_id):
                await update.message.reply_text(f"✅ Cancelled reminder #{reminder_id}")
            else:
                await update.message.reply_text(
                    f"❌ Could not find reminder #{reminder_id} or you don't have permission to cancel it."
                )

        except Exception as e:
            logger.error(f"Error in cancel command: {e}", exc_info=True)
            await update.message.reply_text("❌ An error occurred while cancelling your reminder. Please try again.")

    async def deliver(self, reminder: Reminder) -> None:
        """Send a fired reminder to the chat it was created in."""
        await self.application.bot.send_message(
            chat_id=int(reminder.destination),
            text=f"⏰ Reminder: {reminder.message}",
        )
        logger.info(f"Delivered reminder {reminder.id} to Telegram chat {reminder.destination}")


def parse_reminder_id(args: list[str]) -> Optional[int]:
    if len(args) != 1:
        return None
    value = args[0].lstrip("#")
    if not value.isdigit() or int(value) < 1:
        return None
    return int(value)


def format_reminder_list(reminders: list[Reminder], scheduler: ReminderScheduler) -> str:
    now = scheduler.now()
    lines = [f"📝 Your Active Reminders ({len(reminders)})", ""]
    for reminder in reminders[:LIST_LIMIT]:
        lines.append(f"⏰ #{reminder.id} - {truncate(reminder.message)}")
        lines.append(
            f"   When: {format_reminder_time(reminder.due_at)} "
            f"(in {format_time_until(reminder.due_at, now)})"
        )
    if len(reminders) > LIST_LIMIT:
        lines.append("")
        lines.append(f"Showing first {LIST_LIMIT} of {len(reminders)} reminders.")
    lines.append("")
    lines.append("Use /cancel <id> to cancel a reminder")
    return "\n".join(lines)
