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
Reminder Slash Commands

Discord slash commands for personal one-shot reminders, and delivery of
fired reminders back to Discord.
"""

import logging
from datetime import datetime

import discord
import pytz
from discord import app_commands
from discord.ext import commands

from reminders import (
    Reminder,
    ReminderScheduler,
    VALID_FORMATS_HELP,
    format_reminder_time,
    format_time_until,
)
from reminders.formatting import truncate

logger = logging.getLogger("utilbot.commands.reminder")

# Reminders shown by /reminders
LIST_LIMIT = 10

PLATFORM = "discord"


class ReminderCommands(commands.Cog):
    """
    Slash commands for reminder management.

    Commands:
    - /remind - Create a new reminder
    - /reminders - List your active reminders
    - /remind-cancel - Cancel a reminder
    """

    def __init__(self, bot: commands.Bot, scheduler: ReminderScheduler):
        self.bot = bot
        self.scheduler = scheduler

    # =========================================================================
    # /remind
    # =========================================================================

    @app_commands.command(name="remind", description="Set a personal reminder")
    @app_commands.describe(
        time='When to remind you (e.g., "5m", "2h", "tomorrow", "5pm")',
        message="What to remind you about",
    )
    async def remind(
        self,
        interaction: discord.Interaction,
        time: str,
        message: str,
    ):
        """Create a new reminder."""
        try:
            user_id = str(interaction.user.id)
            result = self.scheduler.create_reminder(
                owner_id=user_id,
                message=message,
                time_string=time,
                platform=PLATFORM,
                destination=str(interaction.channel_id) if interaction.channel_id else None,
            )

            if not result.success:
                embed = discord.Embed(
                    title="❌ Invalid Time Format",
                    description=result.error.message,
                    color=discord.Color.red(),
                )
                embed.add_field(
                    name="💡 Valid Time Formats",
                    value=VALID_FORMATS_HELP
                    + "\n**Examples:**\n"
                    "• `/remind 30m Buy groceries`\n"
                    "• `/remind tomorrow Meeting with team`\n"
                    "• `/remind 5pm Take medication`",
                    inline=False,
                )
                await interaction.response.send_message(embed=embed, ephemeral=True)
                return

            reminder = result.reminder
            embed = discord.Embed(
                title="⏰ Reminder Set!",
                description=f"I'll remind you about: **{reminder.message}**",
                color=discord.Color.green(),
                timestamp=datetime.now(pytz.UTC),
            )
            embed.add_field(name="🕐 When", value=format_reminder_time(reminder.due_at), inline=True)
            embed.add_field(name="⏳ In", value=result.time_until, inline=True)
            embed.add_field(name="🆔 Reminder ID", value=f"#{reminder.id}", inline=True)
            embed.set_footer(text="Use /reminders to view all your reminders or /remind-cancel to cancel one")

            await interaction.response.send_message(embed=embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in remind command: {e}", exc_info=True)
            await interaction.response.send_message(
                "❌ An error occurred while setting your reminder. Please try again.",
                ephemeral=True,
            )

    # =========================================================================
    # /reminders
    # =========================================================================

    @app_commands.command(name="reminders", description="View all your active reminders")
    async def list_reminders(self, interaction: discord.Interaction):
        """List your active reminders."""
        try:
            user_id = str(interaction.user.id)
            reminders = self.scheduler.get_user_reminders(user_id)

            if not reminders:
                embed = discord.Embed(
                    title="📝 Your Reminders",
                    description="You don't have any active reminders.",
                    color=discord.Color.orange(),
                )
                embed.add_field(
                    name="💡 Create a Reminder",
                    value="Use `/remind <time> <message>` to set a new reminder!\n\n"
                    "Example: `/remind 30m Buy groceries`",
                    inline=False,
                )
                await interaction.response.send_message(embed=embed, ephemeral=True)
                return

            embed = build_reminder_list_embed(reminders, self.scheduler.now())
            await interaction.response.send_message(embed=embed, ephemeral=True)
            logger.info(f"Reminders viewed by user {user_id}: {len(reminders)} active")

        except Exception as e:
            logger.error(f"Error in reminders command: {e}", exc_info=True)
            await interaction.response.send_message(
                "❌ An error occurred while fetching your reminders. Please try again.",
                ephemeral=True,
            )

    # =========================================================================
    # /remind-cancel
    # =========================================================================

    @app_commands.command(name="remind-cancel", description="Cancel one of your reminders")
    @app_commands.describe(reminder_id="The ID of the reminder to cancel (from /reminders)")
    async def cancel_reminder(
        self,
        interaction: discord.Interaction,
        reminder_id: app_commands.Range[int, 1],
    ):
        """Cancel a reminder."""
        try:
            user_id = str(interaction.user.id)

            if self.scheduler.cancel_reminder(reminder_id, user_id):
                embed = discord.Embed(
                    title="✅ Reminder Cancelled",
                    description=f"Successfully cancelled reminder #{reminder_id}",
                    color=discord.Color.green(),
                )
                embed.add_field(
                    name="💡 Tip",
                    value="Use `/reminders` to view your remaining active reminders.",
                )
            else:
                embed = discord.Embed(
                    title="❌ Reminder Not Found",
                    description=f"Could not find reminder #{reminder_id} or you don't have permission to cancel it.",
                    color=discord.Color.red(),
                )
                embed.add_field(
                    name="💡 Check Your Reminders",
                    value="Use `/reminders` to see all your active reminders and their IDs.",
                )

            await interaction.response.send_message(embed=embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in remind-cancel command: {e}", exc_info=True)
            await interaction.response.send_message(
                "❌ An error occurred while cancelling your reminder. Please try again.",
                ephemeral=True,
            )

    # =========================================================================
    # Delivery
    # =========================================================================

    async def deliver(self, reminder: Reminder) -> None:
        """
        Send a fired reminder to its channel, or by DM if it has none.

        Errors propagate to the scheduler, which logs them.

        Args:
            reminder: The fired reminder
        """
        embed = build_delivery_embed(reminder)

        if reminder.destination:
            channel_id = int(reminder.destination)
            channel = self.bot.get_channel(channel_id)
            if channel is None:
                channel = await self.bot.fetch_channel(channel_id)
            await channel.send(content=f"<@{reminder.owner_id}>", embed=embed)
            logger.info(f"Delivered reminder {reminder.id} to channel {channel_id}")
        else:
            user_id = int(reminder.owner_id)
            user = self.bot.get_user(user_id)
            if user is None:
                user = await self.bot.fetch_user(user_id)
            await user.send(embed=embed)
            logger.info(f"Delivered reminder {reminder.id} to user {user_id} via DM")


def build_reminder_list_embed(reminders: list[Reminder], now: datetime) -> discord.Embed:
    """
    Build the /reminders embed.

    Args:
        reminders: The user's pending reminders, soonest first
        now: Reference time for "time until"

    Returns:
        Discord embed listing at most LIST_LIMIT reminders
    """
    embed = discord.Embed(
        title=f"📝 Your Active Reminders ({len(reminders)})",
        color=discord.Color.blue(),
        timestamp=datetime.now(pytz.UTC),
    )
    embed.set_footer(text="Use /remind-cancel <id> to cancel a reminder")

    for reminder in reminders[:LIST_LIMIT]:
        embed.add_field(
            name=f"⏰ #{reminder.id} - {truncate(reminder.message)}",
            value=(
                f"**When:** {format_reminder_time(reminder.due_at)}\n"
                f"**In:** {format_time_until(reminder.due_at, now)}"
            ),
            inline=False,
        )

    if len(reminders) > LIST_LIMIT:
        embed.description = f"Showing first {LIST_LIMIT} of {len(reminders)} reminders."

    return embed


def build_delivery_embed(reminder: Reminder) -> discord.Embed:
    """Build the embed posted when a reminder fires."""
    embed = discord.Embed(
        title="⏰ Reminder",
        description=reminder.message,
        color=discord.Color.blue(),
        timestamp=datetime.now(pytz.UTC),
    )
    embed.add_field(name="Set", value=format_reminder_time(reminder.created_at), inline=True)
    embed.set_footer(text=f"Reminder ID: {reminder.id}")
    return embed


async def setup(bot: commands.Bot):
    """
    Standard discord.py cog setup function.

    Note: This cog requires the shared scheduler, so it's loaded
    manually in discord_bot.py rather than using this function.
    """
    pass
