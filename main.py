# main.py
import asyncio
import logging
import sys
from pathlib import Path

from config import __version__ as config_version, DB_NAME, setup_logging
from db_utils import BuildStore, StorageError

setup_logging()
logger = logging.getLogger(__name__)

from bot_client import bot

PROJECT_ROOT = Path(__file__).resolve().parent
store = BuildStore(DB_NAME)


def discover_extensions(*root_dirs: str) -> list[str]:
    """
    Dynamically discovers extensions in the specified root directories.
    Converts file paths like 'commands/builds.py' to 'commands.builds'.
    """
    extensions = []
    for root_dir in root_dirs:
        for path in sorted((PROJECT_ROOT / root_dir).rglob("*.py")):
            # Private modules and package markers are not extensions
            if path.stem == "__init__" or path.name.startswith("_"):
                continue
            extensions.append(".".join(path.relative_to(PROJECT_ROOT).with_suffix("").parts))
    return extensions


# --- Bot Events ---
@bot.event()
async def on_ready():
    """
    Called when the bot is ready. This can be called multiple times on reconnects.
    The initial setup (loading extensions, syncing commands) should only run once.
    """
    if getattr(bot, "has_been_started", False):
        return

    logger.info("--------------------------------------------------")
    logger.info("Bot is performing first-time startup...")
    # Sync once after all extensions are loaded instead of once per extension
    bot.sync_ext = False

    for extension in discover_extensions("commands"):
        try:
            bot.load_extension(extension, store=store)
            logger.info(f"Successfully loaded extension: {extension}")
        except Exception as e:
            logger.error(f"Failed to load extension {extension}: {e}", exc_info=True)

    try:
        await bot.synchronise_interactions()
        logger.info("Application commands successfully synchronised.")
    except Exception as e:
        logger.error(f"Failed to synchronise application commands: {e}", exc_info=True)
    bot.sync_ext = True

    bot.has_been_started = True
    logger.info(f"Bot is ready! Logged in as {bot.user.username} ({bot.user.id})")
    logger.info(f"Version: {config_version}")
    logger.info("--------------------------------------------------")


# --- Main Execution ---
def prepare_database():
    """Creates the build tables before the bot starts. Exits if the database is unusable."""
    logger.info(f"Preparing build database '{DB_NAME}'...")
    try:
        asyncio.run(store.initialize())
    except StorageError as e:
        logger.critical(f"Build database '{DB_NAME}' could not be initialised: {e}", exc_info=True)
        sys.exit(1)
    logger.info(f"Build database '{DB_NAME}' is ready.")


if __name__ == "__main__":
    prepare_database()
    bot.start()
