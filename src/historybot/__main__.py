# __main__.py
import os
import sys
import time
from dotenv import load_dotenv
import discord
from discord.ext import commands
import asyncio
import logging

load_dotenv()

from historybot import digest_db  # noqa: E402  (reads DIGEST_DB_PATH after .env is loaded)

token = os.getenv("DISCORD_TOKEN")
logger = logging.getLogger("historybot")
logging.basicConfig(level=logging.INFO)

intents = discord.Intents.default()
intents.message_content = True
intents.guilds = True

EXTENSIONS = (
    "historybot.cogs.general",
    "historybot.cogs.history_plugins",
    "historybot.cogs.force_summarize",
    "historybot.cogs.channel_explain",
    "historybot.cogs.auto_digest",
)

bot = commands.Bot(
    command_prefix=commands.when_mentioned_or("!"),
    intents=intents,
    case_insensitive=True,
    help_command=None,
)


@bot.event
async def on_ready():
    logger.info("Bot is ready. Logged in as %s (ID: %s)", bot.user, bot.user.id)
    logger.info("Loaded cogs: %s", list(bot.cogs.keys()))


async def main():
    async with bot:
        for name in EXTENSIONS:
            # Avoid double-loading across crash/retry loops
            if name not in bot.extensions:
                await bot.load_extension(name)
        logger.info("starting bot")
        await bot.start(token)


if __name__ == "__main__":
    if not token:
        logger.error("DISCORD_TOKEN is not set; add it to .env and restart")
        sys.exit(0)
    digest_db.init_db()
    # Robust launcher: retry on transient connect errors (e.g., gateway timeouts)
    while True:
        try:
            asyncio.run(main())
            break  # Normal exit
        except discord.LoginFailure:
            logger.error("Discord rejected DISCORD_TOKEN; not retrying")
            break
        except Exception as e:  # noqa: BLE001
            logger.exception("Bot crashed during startup/connect; retrying in 5s: %s", e)
            time.sleep(5)
