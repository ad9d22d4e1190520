from __future__ import annotations

import asyncio


def test_sign_in_restore_sign_out(services, store):
    async def _run():
        user = await services.session.sign_in("a@example.com", "email")
        assert user.id.startswith("user_")
        assert await store.get("current-user") is not None
        assert (await services.session.restore(user.id)).id == user.id

        other = await services.session.sign_in("a@example.com", "google")
        assert other.id != user.id
        assert (await services.session.restore(other.id)).provider == "google"

        assert await services.session.sign_out(other.id) is True
        assert await services.session.restore(other.id) is None
        assert await services.session.sign_out(other.id) is False

    asyncio.run(_run())


def test_session_is_only_visible_to_its_owner(services, store):
    async def _run():
        alice = await services.session.sign_in("alice@example.com", "email")
        bob = await services.session.sign_in("bob@example.com", "email")

        assert await services.session.restore(alice.id) is None
        assert await services.session.sign_out(alice.id) is False
        assert (await services.session.restore(bob.id)).email == "bob@example.com"
        assert await store.get("current-user") is not None

    asyncio.run(_run())
