import json
import logging
from typing import List, Dict, Any

import config

logger = logging.getLogger(__name__)


def load_master_settings() -> Dict[str, Any]:
    """Loads all settings from the master JSON file. Creates it with defaults if not found."""
    try:
        with open(config.MASTER_SETTINGS_FILE, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        default_settings = {
            "bot_managers": [],
        }
        save_master_settings(default_settings)
        return default_settings

def save_master_settings(settings_data: Dict[str, Any]):
    """Saves the provided settings data to the master JSON file."""
    with open(config.MASTER_SETTINGS_FILE, 'w', encoding='utf-8') as f:
        json.dump(settings_data, f, indent=4)

def load_bot_managers() -> List[int]:
    settings = load_master_settings()
    managers = settings.get("bot_managers", [])
    if not isinstance(managers, list) or not all(isinstance(uid, int) for uid in managers):
        logger.warning(f"Corrupted bot_managers in {config.MASTER_SETTINGS_FILE}. Expected list of ints.")
        return []
    return managers

def save_bot_managers(managers_list: List[int]):
    settings = load_master_settings()
    settings["bot_managers"] = managers_list
    save_master_settings(settings)

def is_bot_manager(user_id: int) -> bool:
    if user_id == config.OWNER_ID:
        return True
    return user_id in load_bot_managers()

def add_bot_manager(user_id: int) -> bool:
    managers = load_bot_managers()
    if user_id not in managers:
        managers.append(user_id)
        save_bot_managers(managers)
        return True
    return False

def remove_bot_manager(user_id: int) -> bool:
    managers = load_bot_managers()
    if user_id in managers:
        managers.remove(user_id)
        save_bot_managers(managers)
        return True
    return False
