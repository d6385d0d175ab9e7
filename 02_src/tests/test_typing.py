"""Tests for typing indicators."""

import asyncio
from datetime import datetime, timezone

import pytest

from chat_core.composer import TypingPublisher, TypingWatcher, describe_typing, typing_topic
from chat_core.models import TypingState


def state(user_id: str, is_typing: bool = True) -> TypingState:
    return TypingState("g1", user_id, is_typing, datetime.now(timezone.utc))


class TestDescribeTyping:
    @pytest.mark.parametrize(
        "names, expected",
        [
            ([], ""),
            (["Ann"], "Ann is typing..."),
            (["Ann", "Ben"], "Ann, Ben are typing..."),
            (["Ann", "Ben", "Cy", "Di"], "Ann, Ben and 2 others are typing..."),
        ],
    )
    def test_text(self, names, expected):
        assert describe_typing(names) == expected

    def test_topic(self):
        assert typing_topic("g1") == "typing:g1"


class TestTypingPublisher:
    """Tests for publishing our own typing state."""

    @pytest.mark.asyncio
    async def test_keystroke_marks_typing_once(self, storage, context, monkeypatch):
        writes = []
        original = storage.upsert

        async def counting_upsert(table, row, **kwargs):
            writes.append(row["is_typing"])
            return await original(table, row, **kwargs)

        monkeypatch.setattr(storage, "upsert", counting_upsert)
        publisher = TypingPublisher(context, "g1", timeout=10)

        await publisher.keystroke()
        await publisher.keystroke()

        assert writes == [True]
        rows = await storage.select("typing_indicators", eq={"group_id": "g1"})
        assert rows[0]["user_id"] == "alice"
        assert rows[0]["is_typing"] == 1
        await publisher.close()

    @pytest.mark.asyncio
    async def test_cleared_after_timeout(self, storage, context):
        publisher = TypingPublisher(context, "g1", timeout=0.05)

        await publisher.keystroke()
        await asyncio.sleep(0.2)

        assert not publisher.is_typing
        rows = await storage.select("typing_indicators", eq={"group_id": "g1"})
        assert rows[0]["is_typing"] == 0

    @pytest.mark.asyncio
    async def test_stop_clears_immediately(self, storage, context):
        publisher = TypingPublisher(context, "g1", timeout=10)

        await publisher.keystroke()
        await publisher.stop()

        assert not publisher.is_typing
        rows = await storage.select("typing_indicators")
        assert rows[0]["is_typing"] == 0

    @pytest.mark.asyncio
    async def test_signed_out_writes_nothing(self, session, storage, context):
        session.sign_out()
        publisher = TypingPublisher(context, "g1", timeout=10)

        await publisher.keystroke()
        await publisher.close()

        assert await storage.select("typing_indicators") == []


class TestTypingWatcher:
    """Tests for watching other members."""

    @pytest.mark.asyncio
    async def test_follows_typing_rows(self, seed, storage, context):
        await seed.profile("bob", "Bob")

        async with TypingWatcher(context, "g1", viewer_id="alice") as watcher:
            await storage.upsert(
                "typing_indicators",
                {"group_id": "g1", "user_id": "bob", "is_typing": True},
                on_conflict=("group_id", "user_id"),
            )
            assert watcher.names == ["Bob"]
            assert watcher.describe() == "Bob is typing..."

            await storage.upsert(
                "typing_indicators",
                {"group_id": "g1", "user_id": "bob", "is_typing": False},
                on_conflict=("group_id", "user_id"),
            )
            assert watcher.names == []

    @pytest.mark.asyncio
    async def test_ignores_viewer_and_other_groups(self, storage, context):
        async with TypingWatcher(context, "g1", viewer_id="alice") as watcher:
            await storage.insert(
                "typing_indicators", {"group_id": "g1", "user_id": "alice", "is_typing": True}
            )
            await storage.insert(
                "typing_indicators", {"group_id": "g2", "user_id": "bob", "is_typing": True}
            )
            assert watcher.names == []

    @pytest.mark.asyncio
    async def test_latest_typer_moves_to_end(self, seed, context):
        await seed.profile("ann", "Ann")
        await seed.profile("ben", "Ben")
        watcher = TypingWatcher(context, "g1", viewer_id="alice")

        await watcher.apply(state("ann"))
        await watcher.apply(state("ben"))
        await watcher.apply(state("ann"))

        assert watcher.names == ["Ben", "Ann"]

    @pytest.mark.asyncio
    async def test_unknown_profile_name(self, context):
        watcher = TypingWatcher(context, "g1", viewer_id="alice")
        await watcher.apply(state("ghost"))
        assert watcher.names == ["Unknown"]

    @pytest.mark.asyncio
    async def test_no_updates_after_unsubscribe(self, storage, context):
        watcher = TypingWatcher(context, "g1", viewer_id="alice")
        await watcher.subscribe()
        await watcher.unsubscribe()

        await storage.insert(
            "typing_indicators", {"group_id": "g1", "user_id": "bob", "is_typing": True}
        )

        assert watcher.names == []
