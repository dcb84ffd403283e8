import os
import logging

from dotenv import load_dotenv

load_dotenv()

# --- Bot Version ---
__version__ = "0.3.0" # Centralized version

# --- Core Bot Config ---
BOT_TOKEN = os.getenv("BOT_TOKEN")
OWNER_ID = int(os.getenv("OWNER_ID", "0"))  # Discord user id of the bot owner

# --- File Paths ---
DB_NAME = os.getenv("BUILDS_DB", "builds.db")
DB_TIMEOUT_SECONDS = float(os.getenv("BUILDS_DB_TIMEOUT", "5.0")) # How long a writer waits for the SQLite lock
MASTER_SETTINGS_FILE = os.getenv("SETTINGS_FILE", "bot_settings.json")
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join("public", "uploads"))
UPLOAD_URL_PREFIX = "/uploads"
TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")

# --- Admin Web Interface ---
ADMIN_HOST = os.getenv("ADMIN_HOST", "0.0.0.0")
ADMIN_PORT = int(os.getenv("ADMIN_PORT", "3000"))
ADMIN_BASE_URL = os.getenv("ADMIN_BASE_URL", f"http://localhost:{ADMIN_PORT}").rstrip("/")

# --- Build Lookup ---
# Activity value -> label shown in the /build command choices
ACTIVITY_TYPES = {
    "farming": "Farming",
    "solo_pvp": "Solo PvP",
    "group_pvp": "Group PvP",
    "avalon": "Avalon",
    "ganking": "Ganking",
    "gathering": "Gathering",
}
CUSTOM_BUILD_TYPE = "custom" # Type given to builds created from Discord
TIER_CHOICES = [4, 5, 6, 7, 8]
SELECT_BUILD_CUSTOM_ID = "select_build"
MAX_SELECT_OPTIONS = 25 # Discord limit for a select menu
EMBED_COLOR = 0x0099FF

# --- Logging ---
DEFAULT_LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

def setup_logging():
    logging.basicConfig(
        level=DEFAULT_LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    interactions_logger = logging.getLogger("interactions")
    interactions_logger.setLevel(DEFAULT_LOG_LEVEL)
