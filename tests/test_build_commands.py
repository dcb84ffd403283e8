import os
import tempfile
import unittest
from types import SimpleNamespace
from unittest import mock

from interactions import ActionRow, Embed

from commands.builds import BuildCommands
from config import ADMIN_BASE_URL, CUSTOM_BUILD_TYPE
from db_utils import BuildStore, StorageError


def make_ctx(**attrs):
    ctx = mock.AsyncMock()
    for name, value in attrs.items():
        setattr(ctx, name, value)
    return ctx


class BuildCommandsTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = BuildStore(os.path.join(self._tmp.name, "builds.db"))
        await self.store.initialize()
        # Command callbacks only need the store from the extension
        self.extension = SimpleNamespace(store=self.store)

    async def asyncTearDown(self):
        self._tmp.cleanup()

    def failing_extension(self, method):
        store = mock.AsyncMock(spec=BuildStore)
        getattr(store, method).side_effect = StorageError("database is locked")
        return SimpleNamespace(store=store)


class TestBuildCommand(BuildCommandsTestCase):
    async def test_lists_matching_builds_in_select_menu(self):
        await self.store.create_build("Farm T5", None, "farming", 5)
        await self.store.create_build("Gank", None, "ganking", 5)
        ctx = make_ctx()

        await BuildCommands.build.callback(self.extension, ctx, "farming", 5)

        ctx.send.assert_awaited_once()
        args, kwargs = ctx.send.call_args
        self.assertEqual(args[0], "Available builds for farming T5:")
        self.assertTrue(kwargs["ephemeral"])
        row = kwargs["components"][0]
        self.assertIsInstance(row, ActionRow)
        self.assertEqual([option.label for option in row.components[0].options], ["Farm T5"])

    async def test_no_builds_message(self):
        ctx = make_ctx()
        await BuildCommands.build.callback(self.extension, ctx, "avalon", 8)
        ctx.send.assert_awaited_once_with("No builds found for avalon T8.", ephemeral=True)

    async def test_storage_error_is_reported(self):
        ctx = make_ctx()
        await BuildCommands.build.callback(self.failing_extension("list_builds"), ctx, "farming", None)
        ctx.send.assert_awaited_once_with("An error occurred while fetching builds.", ephemeral=True)


class TestSelectBuild(BuildCommandsTestCase):
    async def test_selected_build_is_shown_as_embed(self):
        build_id = await self.store.create_build("Ganker", "Solo gank set", "ganking", 6)
        await self.store.replace_build(
            build_id, {"name": "Ganker", "description": "Solo gank set", "type": "ganking", "tier": 6},
            {"weapon": [{"item_name": "Claymore"}]},
        )
        ctx = make_ctx(values=[str(build_id)])

        await BuildCommands.select_build.callback(self.extension, ctx)

        ctx.edit_origin.assert_awaited_once()
        kwargs = ctx.edit_origin.call_args.kwargs
        self.assertEqual(kwargs["content"], "Build for ganking T6:")
        self.assertEqual(kwargs["components"], [])
        embed = kwargs["embeds"][0]
        self.assertIsInstance(embed, Embed)
        self.assertEqual(embed.title, "Ganker (T6)")

    async def test_unknown_or_malformed_value_clears_components(self):
        for values in (["999"], ["not-a-number"], []):
            with self.subTest(values=values):
                ctx = make_ctx(values=values)
                await BuildCommands.select_build.callback(self.extension, ctx)
                ctx.edit_origin.assert_awaited_once_with(content="Build not found.", embeds=[], components=[])

    async def test_storage_error_is_reported(self):
        ctx = make_ctx(values=["1"])
        await BuildCommands.select_build.callback(self.failing_extension("get_build_with_items"), ctx)
        ctx.edit_origin.assert_awaited_once_with(
            content="An error occurred while loading the build.", embeds=[], components=[]
        )


class TestAddBuild(BuildCommandsTestCase):
    async def test_permission_denied(self):
        ctx = make_ctx(author=SimpleNamespace(id=7))
        with mock.patch("commands.builds.can_manage_builds", return_value=False):
            await BuildCommands.add_build.callback(self.extension, ctx, "Sneaky")

        ctx.send.assert_awaited_once_with("You do not have permission to use this command.", ephemeral=True)
        self.assertEqual(await self.store.list_builds(), [])

    async def test_creates_custom_build_and_links_edit_page(self):
        ctx = make_ctx(author=SimpleNamespace(id=1000))
        with mock.patch("commands.builds.can_manage_builds", return_value=True):
            await BuildCommands.add_build.callback(self.extension, ctx, "My build")

        [build] = await self.store.list_builds()
        self.assertEqual((build.name, build.type), ("My build", CUSTOM_BUILD_TYPE))
        ctx.send.assert_awaited_once_with(
            f"Build 'My build' created! Edit it here: {ADMIN_BASE_URL}/edit-build/{build.id}",
            ephemeral=True,
        )

    async def test_blank_name_is_rejected(self):
        ctx = make_ctx(author=SimpleNamespace(id=1000))
        with mock.patch("commands.builds.can_manage_builds", return_value=True):
            await BuildCommands.add_build.callback(self.extension, ctx, "   ")

        message = ctx.send.call_args.args[0]
        self.assertTrue(message.startswith("Could not create the build:"))
        self.assertEqual(await self.store.list_builds(), [])


if __name__ == '__main__':
    unittest.main()
