import unittest
from datetime import datetime

from build_display import (
    build_list_message, build_message, build_select_menu, format_build_embed, format_item_line, image_url
)
from config import ADMIN_BASE_URL, MAX_SELECT_OPTIONS, SELECT_BUILD_CUSTOM_ID
from models import Build, BuildItem


def make_build(build_id=7, name="Ganker T6", description="Solo gank set", type="ganking", tier=6):
    return Build(
        id=build_id, name=name, description=description, type=type, tier=tier,
        created_at=datetime(2026, 10, 19, 12, 0, 0),
    )


def make_item(item_id, slot, item_name, is_alternative=False, item_description=None, item_image=None):
    return BuildItem(
        id=item_id, build_id=7, slot=slot, item_name=item_name, item_description=item_description,
        item_image=item_image, is_alternative=is_alternative,
    )


class TestBuildEmbed(unittest.TestCase):
    def test_embed_lists_slots_with_primary_and_alternates(self):
        items = {
            "weapon": [
                make_item(1, "weapon", "Claymore", item_description="2h sword"),
                make_item(2, "weapon", "Bloodletter", is_alternative=True),
            ],
            "head": [make_item(3, "head", "Hood")],
        }
        embed = format_build_embed(make_build(), items)

        self.assertEqual(embed.title, "Ganker T6 (T6)")
        self.assertEqual(embed.description, "Solo gank set")
        self.assertEqual(embed.footer.text, "Type: ganking")
        self.assertEqual([field.name for field in embed.fields], ["WEAPON", "HEAD"])
        self.assertEqual(embed.fields[0].value, "• Claymore - 2h sword\n↳ Bloodletter (alt)")
        self.assertEqual(embed.fields[1].value, "• Hood")

    def test_embed_for_build_without_items_or_tier(self):
        embed = format_build_embed(make_build(tier=None, description=None), {})
        self.assertEqual(embed.title, "Ganker T6")
        self.assertEqual(embed.description, "No description.")
        self.assertEqual(len(embed.fields), 1)
        self.assertEqual(embed.fields[0].name, "Items")

    def test_long_slot_is_truncated(self):
        items = {"bag": [make_item(i, "bag", "x" * 60, is_alternative=i > 0) for i in range(40)]}
        embed = format_build_embed(make_build(), items)
        self.assertLessEqual(len(embed.fields[0].value), 1024)

    def test_item_images(self):
        self.assertIsNone(image_url(None))
        self.assertIsNone(image_url("  "))
        self.assertEqual(image_url("https://cdn.example/a.png"), "https://cdn.example/a.png")
        self.assertEqual(image_url("/uploads/a.png"), f"{ADMIN_BASE_URL}/uploads/a.png")
        line = format_item_line(make_item(1, "weapon", "Claymore", item_image="/uploads/a.png"))
        self.assertEqual(line, f"• Claymore [image]({ADMIN_BASE_URL}/uploads/a.png)")


class TestBuildSelectMenu(unittest.TestCase):
    def test_options_describe_builds(self):
        builds = [
            make_build(1, "Farm", "A" * 80, "farming", None),
            make_build(2, "Farm T5", None, "farming", 5),
        ]
        menu = build_select_menu(builds)
        self.assertEqual(menu.custom_id, SELECT_BUILD_CUSTOM_ID)
        self.assertEqual([option.value for option in menu.options], ["1", "2"])
        self.assertEqual([option.label for option in menu.options], ["Farm", "Farm T5"])
        self.assertEqual(menu.options[0].description, "A" * 50)
        self.assertEqual(menu.options[1].description, "No description")

    def test_options_are_capped(self):
        builds = [make_build(i, f"Build {i}") for i in range(MAX_SELECT_OPTIONS + 5)]
        menu = build_select_menu(builds)
        self.assertEqual(len(menu.options), MAX_SELECT_OPTIONS)
        self.assertEqual(menu.options[0].value, "0")

    def test_messages(self):
        self.assertEqual(build_list_message("farming", None), "Available builds for farming:")
        self.assertEqual(build_list_message("farming", 6), "Available builds for farming T6:")
        self.assertEqual(build_message(make_build()), "Build for ganking T6:")


if __name__ == '__main__':
    unittest.main()
