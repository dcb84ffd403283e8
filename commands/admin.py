import logging

from interactions import (
    Extension,
    slash_command,
    slash_option,
    OptionType,
    SlashContext,
    Permissions,
    Client,
    User,
)

import config
from settings_manager import add_bot_manager, remove_bot_manager, load_bot_managers

logger = logging.getLogger(__name__)


def _is_server_admin_or_owner(ctx: SlashContext) -> bool:
    if int(ctx.author.id) == config.OWNER_ID:
        return True
    return hasattr(ctx.author, "has_permission") and ctx.author.has_permission(Permissions.ADMINISTRATOR)


class AdminCommands(Extension):
    def __init__(self, bot: Client):
        self.bot = bot

    @slash_command(name="manage", description="Manage who may create builds (Admin/Owner only).")
    async def manage_group(self, ctx: SlashContext):
        """Base command for bot management."""
        pass

    @manage_group.subcommand(sub_cmd_name="permit", sub_cmd_description="Allows a user to create builds.")
    @slash_option("user", "The user to grant permissions to", opt_type=OptionType.USER, required=True)
    async def manage_permit(self, ctx: SlashContext, user: User):
        if not _is_server_admin_or_owner(ctx):
            await ctx.send("You need Administrator permissions or be the Bot Owner to use this command.", ephemeral=True)
            return
        if add_bot_manager(int(user.id)):
            logger.info(f"{ctx.author.id} granted build management to {user.id}.")
            await ctx.send(f"✅ {user.mention} can now manage builds.", ephemeral=True)
        else:
            await ctx.send(f"ℹ️ {user.mention} already manages builds.", ephemeral=True)

    @manage_group.subcommand(sub_cmd_name="unpermit", sub_cmd_description="Revokes a user's build permissions.")
    @slash_option("user", "The user to revoke permissions from", opt_type=OptionType.USER, required=True)
    async def manage_unpermit(self, ctx: SlashContext, user: User):
        if not _is_server_admin_or_owner(ctx):
            await ctx.send("You need Administrator permissions or be the Bot Owner to use this command.", ephemeral=True)
            return
        if int(user.id) == config.OWNER_ID:
            await ctx.send("🚫 The bot owner's permissions cannot be revoked.", ephemeral=True)
            return
        if remove_bot_manager(int(user.id)):
            logger.info(f"{ctx.author.id} revoked build management from {user.id}.")
            await ctx.send(f"✅ {user.mention} can no longer manage builds.", ephemeral=True)
        else:
            await ctx.send(f"ℹ️ {user.mention} was not a build manager.", ephemeral=True)

    @manage_group.subcommand(sub_cmd_name="listmanagers", sub_cmd_description="Lists users who may manage builds.")
    async def manage_listmanagers(self, ctx: SlashContext):
        if not _is_server_admin_or_owner(ctx):
            await ctx.send("You need Administrator permissions or be the Bot Owner to use this command.", ephemeral=True)
            return
        managers = load_bot_managers()
        if not managers:
            await ctx.send("No build managers configured. Guild administrators can always manage builds.", ephemeral=True)
            return
        await ctx.send("Build managers:\n" + "\n".join(f"• <@{uid}>" for uid in managers), ephemeral=True)


def setup(bot: Client, **kwargs):
    AdminCommands(bot)
