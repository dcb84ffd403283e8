from interactions import Member, Permissions

import config
from settings_manager import is_bot_manager


def can_manage_builds(author) -> bool:
    """Bot owner, bot managers and guild administrators may create builds from Discord."""
    user_id = int(author.id)
    if user_id == config.OWNER_ID or is_bot_manager(user_id):
        return True
    return isinstance(author, Member) and author.has_permission(Permissions.ADMINISTRATOR)
