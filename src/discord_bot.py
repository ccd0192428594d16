"""
utilbot Discord Bot

Runs the Discord bot and, when configured, the Telegram bot in one event
loop. Both share a single reminder scheduler constructed here and passed to
every command handler.
"""

import asyncio
import os
from typing import Optional

import discord
from discord.ext import commands
from dotenv import load_dotenv

from commands.reminder_commands import ReminderCommands
from notifications import NotificationRouter
from reminders import ReminderConfig, ReminderScheduler

load_dotenv()

import logging

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("utilbot")


class DiscordBot(commands.Bot):
    """Discord bot exposing the reminder slash commands."""

    def __init__(self, scheduler: ReminderScheduler, router: NotificationRouter):
        intents = discord.Intents.default()
        intents.guilds = True

        super().__init__(command_prefix=os.getenv("BOT_PREFIX", "!"), intents=intents)

        self.scheduler = scheduler
        self.router = router
        self.reminder_commands: Optional[ReminderCommands] = None

    async def setup_hook(self):
        """Called when the bot is starting up."""
        self.reminder_commands = ReminderCommands(self, self.scheduler)
        await self.add_cog(self.reminder_commands)
        self.router.register("discord", self.reminder_commands.deliver)

        guild_id = os.getenv("GUILD_ID")
        if guild_id:
            # Guild sync is immediate, global sync can take up to an hour
            guild = discord.Object(id=int(guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
        else:
            synced = await self.tree.sync()
        logger.info(f"Synced {len(synced)} slash command(s)")

    async def on_ready(self):
        """Called when the bot has connected to Discord."""
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")

    async def close(self):
        """Clean up resources on shutdown."""
        self.router.unregister("discord")
        await super().close()


async def main():
    """Run the bots until interrupted."""
    discord_token = os.getenv("DISCORD_BOT_TOKEN")
    telegram_token = os.getenv("TELEGRAM_BOT_TOKEN")
    telegram_enabled = os.getenv("ENABLE_TELEGRAM", "true").lower() == "true"

    logger.info(f"Setup: DISCORD_BOT_TOKEN={'set' if discord_token else 'missing'}")
    logger.info(f"Setup: TELEGRAM_BOT_TOKEN={'set' if telegram_token else 'missing'}")
    logger.info(f"Setup: ENABLE_TELEGRAM={telegram_enabled}")

    if not discord_token and not (telegram_token and telegram_enabled):
        print("Error: neither DISCORD_BOT_TOKEN nor TELEGRAM_BOT_TOKEN is set")
        print("Please set at least one in your .env file")
        return

    config = ReminderConfig.from_env()
    scheduler = ReminderScheduler(config)
    router = NotificationRouter()
    scheduler.set_notification_callback(router)
    scheduler.start()

    telegram_bot = None
    try:
        if telegram_token and telegram_enabled:
            # Imported lazily so a Discord-only deployment does not need it configured
            from telegram_bot import TelegramReminderBot

            telegram_bot = TelegramReminderBot(telegram_token, scheduler)
            router.register("telegram", telegram_bot.deliver)
            await telegram_bot.start()

        if discord_token:
            bot = DiscordBot(scheduler, router)
            async with bot:
                await bot.start(discord_token)
        else:
            # Telegram only: polling runs in the background
            await asyncio.Event().wait()
    finally:
        if telegram_bot is not None:
            await telegram_bot.stop()
        await scheduler.close()


def run():
    """Console entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    run()
