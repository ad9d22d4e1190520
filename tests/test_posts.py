from __future__ import annotations

import asyncio
import json
from datetime import date

import pytest

from persistence.records import Visibility
from services import build_services
from services.posts import InvalidCommentError, InvalidImagesError, ScreenNotFoundError, contains_url

IMAGES = ["data:image/jpeg;base64,AAAA", "data:image/jpeg;base64,BBBB", "data:image/jpeg;base64,CCCC"]


async def _make_user(services, user_id: str, name: str) -> None:
    await services.profiles.complete_setup(user_id, display_name=name, birth_date=date(1995, 6, 1))


def test_upload_writes_current_pointer_and_permanent_record(services, store):
    async def _run():
        screen = await services.posts.upload("A", IMAGES)

        assert await store.get("screen:A:current") is not None
        assert await store.get(f"screen:A:{screen.id}") is not None

        current = await services.repos.screens.get_current("A")
        permanent = await services.repos.screens.get("A", screen.id)
        assert current == permanent
        assert current.isCurrent is True
        assert current.images == IMAGES
        assert current.likes == [] and current.saves == [] and current.comments == []

    asyncio.run(_run())


def test_second_upload_demotes_the_first(services, store):
    async def _run():
        first = await services.posts.upload("A", IMAGES[:1])
        second = await services.posts.upload("A", IMAGES[1:])

        pointer = json.loads(await store.get("screen:A:current"))
        assert pointer["screenId"] == second.id

        stored_first = json.loads(await store.get(f"screen:A:{first.id}"))
        assert stored_first["isCurrent"] is False
        assert (await services.repos.screens.get("A", first.id)).isCurrent is False
        assert (await services.repos.screens.get_current("A")).id == second.id

    asyncio.run(_run())


def test_upload_rejects_bad_image_sets(services):
    async def _run():
        with pytest.raises(InvalidImagesError):
            await services.posts.upload("A", [])
        with pytest.raises(InvalidImagesError):
            await services.posts.upload("A", IMAGES * 2)
        assert await services.repos.screens.get_current("A") is None

    asyncio.run(_run())


def test_like_toggle_is_idempotent_in_pairs(services):
    async def _run():
        screen = await services.posts.upload("A", IMAGES)

        liked = await services.posts.toggle_like("B", "A", screen.id)
        assert liked.likes == ["B"]
        unliked = await services.posts.toggle_like("B", "A", screen.id)
        assert unliked.likes == []
        assert (await services.repos.screens.get_current("A")).likes == []

    asyncio.run(_run())


def test_save_toggle_and_saved_screens(services):
    async def _run():
        await _make_user(services, "A", "Aki")
        screen = await services.posts.upload("A", IMAGES)

        saved = await services.posts.toggle_save("B", "A", screen.id)
        assert saved.saves == ["B"]

        items = await services.posts.saved_screens("B")
        assert [i.screen.id for i in items] == [screen.id]
        assert items[0].user.displayName == "Aki"

        await services.posts.toggle_save("B", "A", screen.id)
        assert await services.posts.saved_screens("B") == []

    asyncio.run(_run())


def test_engagement_on_missing_screen_raises(services):
    async def _run():
        with pytest.raises(ScreenNotFoundError):
            await services.posts.toggle_like("B", "A", "screen_nope")

    asyncio.run(_run())


def test_comments_are_trimmed_and_bounded(services):
    async def _run():
        screen = await services.posts.upload("A", IMAGES)

        comment = await services.posts.add_comment("B", "A", screen.id, "  great dock!  ")
        assert comment.text == "great dock!"
        stored = await services.repos.screens.get("A", screen.id)
        assert [c.text for c in stored.comments] == ["great dock!"]

        with pytest.raises(InvalidCommentError):
            await services.posts.add_comment("B", "A", screen.id, "   ")
        with pytest.raises(InvalidCommentError):
            await services.posts.add_comment("B", "A", screen.id, "x" * 201)

    asyncio.run(_run())


def test_contains_url():
    assert contains_url("see https://example.com")
    assert contains_url("WWW.example.com")
    assert not contains_url("no links here")


def test_engagement_on_archived_screen_keeps_pointer(services, store):
    async def _run():
        first = await services.posts.upload("A", IMAGES)
        second = await services.posts.upload("A", IMAGES)

        await services.posts.toggle_like("B", "A", first.id)

        assert json.loads(await store.get("screen:A:current"))["screenId"] == second.id
        assert (await services.repos.screens.get("A", first.id)).likes == ["B"]
        assert (await services.repos.screens.get_current("A")).likes == []

    asyncio.run(_run())


def test_visibility_and_profile_listing(services):
    async def _run():
        old = await services.posts.upload("A", IMAGES)
        new = await services.posts.upload("A", IMAGES)

        hidden = await services.posts.toggle_visibility("A", old.id)
        assert hidden.visibility == Visibility.PRIVATE

        own = await services.posts.profile_screens("A", "A")
        assert [s.id for s in own] == [new.id, old.id]
        assert own[0].isCurrent

        public = await services.posts.profile_screens("A", "B")
        assert [s.id for s in public] == [new.id]

        shown = await services.posts.set_visibility("A", old.id, Visibility.PUBLIC)
        assert shown.visibility == Visibility.PUBLIC

    asyncio.run(_run())


def test_feed_lists_public_current_screens_newest_first(services):
    async def _run():
        await _make_user(services, "A", "Aki")
        await _make_user(services, "B", "Ben")
        await _make_user(services, "C", "Cho")

        a = await services.posts.upload("A", IMAGES)
        b = await services.posts.upload("B", IMAGES)
        c = await services.posts.upload("C", IMAGES, visibility=Visibility.PRIVATE)

        feed = await services.posts.feed()
        ids = [item.screen.id for item in feed]
        assert ids == [b.id, a.id]
        assert c.id not in ids
        assert feed[0].user.displayName == "Ben"
        assert feed[0].user.ageDisplay is not None

    asyncio.run(_run())


def test_delete_current_and_archived(services, store):
    async def _run():
        first = await services.posts.upload("A", IMAGES)
        second = await services.posts.upload("A", IMAGES)

        await services.posts.delete("A", first.id)
        assert await store.get(f"screen:A:{first.id}") is None
        assert (await services.repos.screens.get_current("A")).id == second.id

        await services.posts.delete("A", second.id)
        assert await store.get(f"screen:A:{second.id}") is None
        assert await store.get("screen:A:current") is None

        with pytest.raises(ScreenNotFoundError):
            await services.posts.delete("A", second.id)

    asyncio.run(_run())


def test_concurrent_likes_are_not_lost(yielding_store, test_settings):
    async def _run():
        services = build_services(yielding_store, test_settings)
        screen = await services.posts.upload("A", IMAGES)

        likers = [f"U{i}" for i in range(8)]
        await asyncio.gather(*(services.posts.toggle_like(u, "A", screen.id) for u in likers))

        stored = await services.repos.screens.get("A", screen.id)
        assert sorted(stored.likes) == sorted(likers)

    asyncio.run(_run())
