import logging
from typing import Optional

from interactions import (
    Extension, slash_command, slash_option, OptionType, SlashContext, ComponentContext,
    component_callback, ActionRow, Client
)

from build_display import build_list_message, build_message, build_select_menu, format_build_embed, tier_suffix
from config import ACTIVITY_TYPES, ADMIN_BASE_URL, CUSTOM_BUILD_TYPE, SELECT_BUILD_CUSTOM_ID, TIER_CHOICES
from db_utils import BuildStore, NotFound, StorageError, ValidationError
from utils.permissions import can_manage_builds

logger = logging.getLogger(__name__)

ACTIVITY_CHOICES = [{"name": label, "value": value} for value, label in ACTIVITY_TYPES.items()]
TIER_OPTION_CHOICES = [{"name": f"T{tier}", "value": tier} for tier in TIER_CHOICES]


class BuildCommands(Extension):
    def __init__(self, bot: Client, store: Optional[BuildStore] = None):
        self.bot = bot
        self.store = store or BuildStore()

    @slash_command(name="build", description="Get a build for an activity.")
    @slash_option("type", "Activity type", opt_type=OptionType.STRING, required=True, choices=ACTIVITY_CHOICES)
    @slash_option("tier", "Equipment tier", opt_type=OptionType.INTEGER, required=False, choices=TIER_OPTION_CHOICES)
    async def build(self, ctx: SlashContext, type: str, tier: Optional[int] = None):
        try:
            builds = await self.store.list_builds(type=type, tier=tier, newest_first=True)
        except StorageError:
            await ctx.send("An error occurred while fetching builds.", ephemeral=True)
            return

        if not builds:
            await ctx.send(f"No builds found for {type}{tier_suffix(tier)}.", ephemeral=True)
            return

        await ctx.send(
            build_list_message(type, tier),
            components=[ActionRow(build_select_menu(builds))],
            ephemeral=True,
        )

    @component_callback(SELECT_BUILD_CUSTOM_ID)
    async def select_build(self, ctx: ComponentContext):
        try:
            build_id = int(ctx.values[0])
            build, items = await self.store.get_build_with_items(build_id)
        except (ValueError, IndexError, NotFound, ValidationError):
            logger.warning(f"Build selection with unknown value {ctx.values!r}.")
            await ctx.edit_origin(content="Build not found.", embeds=[], components=[])
            return
        except StorageError:
            await ctx.edit_origin(content="An error occurred while loading the build.", embeds=[], components=[])
            return

        await ctx.edit_origin(
            content=build_message(build),
            embeds=[format_build_embed(build, items)],
            components=[],
        )

    @slash_command(name="add_build", description="Add a new build (administrators only).")
    @slash_option("name", "Build name", opt_type=OptionType.STRING, required=True)
    async def add_build(self, ctx: SlashContext, name: str):
        if not can_manage_builds(ctx.author):
            await ctx.send("You do not have permission to use this command.", ephemeral=True)
            return

        try:
            build_id = await self.store.create_build(name, type=CUSTOM_BUILD_TYPE)
        except ValidationError as e:
            await ctx.send(f"Could not create the build: {e}", ephemeral=True)
            return
        except StorageError:
            await ctx.send("Failed to create the build.", ephemeral=True)
            return

        logger.info(f"Build {build_id} '{name}' created from Discord by {ctx.author.id}.")
        await ctx.send(
            f"Build '{name}' created! Edit it here: {ADMIN_BASE_URL}/edit-build/{build_id}",
            ephemeral=True,
        )


def setup(bot: Client, store: Optional[BuildStore] = None):
    BuildCommands(bot, store=store)
