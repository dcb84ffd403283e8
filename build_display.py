import logging
from datetime import timezone
from typing import Dict, List, Optional

from interactions import Embed, StringSelectMenu, StringSelectOption

from config import ADMIN_BASE_URL, EMBED_COLOR, MAX_SELECT_OPTIONS, SELECT_BUILD_CUSTOM_ID
from models import Build, BuildItem

logger = logging.getLogger(__name__)

FIELD_VALUE_LIMIT = 1024 # Discord embed field value limit
OPTION_LABEL_LIMIT = 100
OPTION_DESCRIPTION_LENGTH = 50


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit - 1] + "…"


def tier_suffix(tier: Optional[int]) -> str:
    return f" T{tier}" if tier else ""


def image_url(item_image: Optional[str]) -> Optional[str]:
    """Uploads are stored as site-relative paths; Discord needs absolute URLs."""
    if not item_image or not item_image.strip():
        return None
    item_image = item_image.strip()
    if item_image.startswith(("http://", "https://")):
        return item_image
    return f"{ADMIN_BASE_URL}/{item_image.lstrip('/')}"


def format_item_line(item: BuildItem) -> str:
    line = f"• {item.item_name}"
    if item.is_alternative:
        line = f"↳ {item.item_name} (alt)"
    if item.item_description:
        line += f" - {item.item_description}"
    url = image_url(item.item_image)
    if url:
        line += f" [image]({url})"
    return line


def build_select_menu(builds: List[Build]) -> StringSelectMenu:
    """Select menu listing the given builds, capped at Discord's option limit."""
    if len(builds) > MAX_SELECT_OPTIONS:
        logger.info(f"{len(builds)} builds matched, only the first {MAX_SELECT_OPTIONS} fit in the select menu.")

    options = []
    for build in builds[:MAX_SELECT_OPTIONS]:
        description = (build.description or "").strip()[:OPTION_DESCRIPTION_LENGTH] or "No description"
        options.append(
            StringSelectOption(
                label=_truncate(build.name, OPTION_LABEL_LIMIT),
                value=str(build.id),
                description=description,
            )
        )
    return StringSelectMenu(
        *options,
        custom_id=SELECT_BUILD_CUSTOM_ID,
        placeholder="Choose a build",
    )


def format_build_embed(build: Build, items: Dict[str, List[BuildItem]]) -> Embed:
    created_at = build.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc) # SQLite CURRENT_TIMESTAMP is UTC

    embed = Embed(
        title=f"{build.name}{f' (T{build.tier})' if build.tier else ''}",
        description=build.description or "No description.",
        color=EMBED_COLOR,
        timestamp=created_at,
    )
    embed.set_footer(text=f"Type: {build.type}")

    if not items:
        embed.add_field(name="Items", value="No items have been added to this build yet.", inline=False)
        return embed

    for slot, slot_items in items.items():
        value = "\n".join(format_item_line(item) for item in slot_items)
        embed.add_field(name=slot.upper(), value=_truncate(value or "Not set", FIELD_VALUE_LIMIT), inline=True)
    return embed


def build_list_message(activity_type: str, tier: Optional[int]) -> str:
    return f"Available builds for {activity_type}{tier_suffix(tier)}:"


def build_message(build: Build) -> str:
    return f"Build for {build.type}{tier_suffix(build.tier)}:"
