"""Tests for MessageStreamAdapter."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import aiosqlite
import pytest

from chat_core.attachments import FileUpload, VoiceRecording
from chat_core.config import MAX_FILE_SIZE
from chat_core.models import (
    ChangeEvent,
    ChangeType,
    ContainerKind,
    DeletedKind,
    FileKind,
    LinkKind,
    TextKind,
    VoiceKind,
)
from chat_core.stream import MessageStreamAdapter


def at(minute: int) -> str:
    return datetime(2026, 3, 2, 9, minute, tzinfo=timezone.utc).isoformat()


@pytest.fixture
def adapter(context):
    return MessageStreamAdapter(context, ContainerKind.GROUP, "g1")


@pytest.fixture
def direct_adapter(context):
    return MessageStreamAdapter(context, ContainerKind.DIRECT, "c1")


class TestLoadAndSubscribe:
    """Tests for the initial load and the live feed."""

    @pytest.mark.asyncio
    async def test_load_orders_by_created_at(self, seed, adapter):
        await seed.group_message("g1", "bob", "second", created_at=at(2))
        await seed.group_message("g1", "bob", "first", created_at=at(1))
        await seed.group_message("g2", "bob", "elsewhere", created_at=at(0))

        result = await adapter.load()

        assert result.ok
        assert [m.content for m in adapter.messages] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_remote_insert_is_appended(self, seed, adapter):
        await adapter.subscribe()

        await seed.group_message("g1", "bob", "from bob")

        assert [m.content for m in adapter.messages] == ["from bob"]
        await adapter.unsubscribe()

    @pytest.mark.asyncio
    async def test_late_insert_is_placed_by_timestamp(self, seed, adapter):
        await seed.group_message("g1", "bob", "one", created_at=at(1))
        await seed.group_message("g1", "bob", "three", created_at=at(3))
        await adapter.subscribe()

        await seed.group_message("g1", "carol", "two", created_at=at(2))

        assert [m.content for m in adapter.messages] == ["one", "two", "three"]
        await adapter.unsubscribe()

    @pytest.mark.asyncio
    async def test_same_row_delivered_twice_is_kept_once(self, seed, hub, adapter):
        row = await seed.group_message("g1", "bob", "hello")
        await adapter.subscribe()

        event = ChangeEvent(
            table="messages",
            event_type=ChangeType.INSERT,
            new=row,
            old={},
            timestamp=datetime.now(timezone.utc),
        )
        await hub.publish(event)
        await hub.publish(event)

        assert [m.id for m in adapter.messages] == [row["id"]]
        await adapter.unsubscribe()

    @pytest.mark.asyncio
    async def test_no_events_after_unsubscribe(self, seed, adapter):
        await adapter.subscribe()
        await adapter.unsubscribe()

        await seed.group_message("g1", "bob", "missed")

        assert adapter.messages == []
        assert not adapter.subscribed

    @pytest.mark.asyncio
    async def test_mounted_scope(self, hub, adapter):
        async with adapter.mounted():
            assert adapter.subscribed
            assert hub.active_topics == ["messages:g1"]
        assert hub.active_topics == []

    @pytest.mark.asyncio
    async def test_listener_receives_snapshots(self, seed, adapter):
        snapshots = []
        adapter.add_listener(snapshots.append)
        await adapter.subscribe()

        await seed.group_message("g1", "bob", "hi")

        assert [len(s) for s in snapshots] == [0, 1]
        await adapter.unsubscribe()

    @pytest.mark.asyncio
    async def test_load_failure_raises_toast(self, storage, notifier, adapter, monkeypatch):
        monkeypatch.setattr(
            storage, "select", AsyncMock(side_effect=aiosqlite.OperationalError("disk I/O error"))
        )

        result = await adapter.load()

        assert not result.ok
        assert notifier.latest().variant == "destructive"
        assert notifier.latest().description == "disk I/O error"


class TestSend:
    """Tests for sending text messages."""

    @pytest.mark.asyncio
    async def test_send_hello(self, storage, adapter):
        """Test that a sent message shows up exactly once."""
        await adapter.subscribe()

        result = await adapter.send("  hello  ")

        assert result.ok
        assert result.value.content == "hello"
        assert result.value.sender_id == "alice"
        assert [m.content for m in adapter.messages] == ["hello"]

        rows = await storage.select("messages", eq={"group_id": "g1"})
        assert len(rows) == 1
        assert rows[0]["user_id"] == "alice"
        await adapter.unsubscribe()

    @pytest.mark.asyncio
    async def test_blank_is_skipped_silently(self, storage, notifier, adapter):
        result = await adapter.send("   ")

        assert result.skipped
        assert await storage.select("messages") == []
        assert notifier.toasts == []

    @pytest.mark.asyncio
    async def test_link_preview_attached(self, adapter):
        result = await adapter.send("notes at https://school.example/notes")

        assert isinstance(result.value.kind, LinkKind)
        assert result.value.link_preview.url == "https://school.example/notes"

    @pytest.mark.asyncio
    async def test_reply_reference_stored(self, seed, adapter):
        row = await seed.group_message("g1", "bob", "question?")
        result = await adapter.send("answer", reply_to_id=row["id"])
        assert result.value.reply_to_message_id == row["id"]

    @pytest.mark.asyncio
    async def test_not_signed_in(self, session, storage, notifier, adapter):
        session.sign_out()

        result = await adapter.send("hello")

        assert not result.ok
        assert notifier.latest().title == "Not signed in"
        assert await storage.select("messages") == []

    @pytest.mark.asyncio
    async def test_store_failure_raises_toast(self, storage, notifier, adapter, monkeypatch):
        """Test that a rejected write ends in a destructive toast."""
        monkeypatch.setattr(
            storage,
            "insert",
            AsyncMock(side_effect=aiosqlite.OperationalError("database is locked")),
        )

        result = await adapter.send("hello")

        assert not result.ok
        assert result.error == "database is locked"
        assert isinstance(result.exception, aiosqlite.OperationalError)
        assert notifier.latest().variant == "destructive"
        assert adapter.messages == []

    @pytest.mark.asyncio
    async def test_direct_send_bumps_conversation(self, seed, storage, direct_adapter):
        await seed.conversation("c1", "alice", "bob")

        result = await direct_adapter.send("hi bob")

        rows = await storage.select("conversations", eq={"id": "c1"})
        assert rows[0]["last_message_at"] == result.value.created_at.isoformat()


class TestSendAttachments:
    """Tests for voice and file messages."""

    @pytest.mark.asyncio
    async def test_send_voice(self, objects, adapter):
        result = await adapter.send_voice(VoiceRecording(data=b"opus", duration_seconds=3.0))

        message = result.value
        assert result.ok
        assert message.content == "Voice message"
        assert isinstance(message.kind, VoiceKind)
        assert message.kind.duration_seconds == 3.0
        assert message.kind.url.startswith("alice/")
        assert message.kind.url.endswith(".webm")
        assert await objects.download("voice-messages", message.kind.url) == b"opus"

    @pytest.mark.asyncio
    async def test_send_voice_bytes_in_direct_chat(self, direct_adapter):
        result = await direct_adapter.send_voice(b"opus", duration_seconds=1.5)

        assert result.value.content == "[Voice Message]"
        assert result.value.attachment.voice_duration_seconds == 1.5

    @pytest.mark.asyncio
    async def test_empty_recording_rejected(self, storage, notifier, adapter):
        result = await adapter.send_voice(b"", duration_seconds=0.0)

        assert not result.ok
        assert notifier.latest().description == "Recording is empty"
        assert await storage.select("messages") == []

    @pytest.mark.asyncio
    async def test_send_image(self, objects, adapter):
        result = await adapter.send_file(FileUpload("photo.jpg", b"jpeg"))

        message = result.value
        assert message.content == "[Image]"
        assert isinstance(message.kind, FileKind)
        assert message.is_image
        assert message.attachment.file_type == "image/jpeg"
        assert message.attachment.url.startswith("alice-")
        assert await objects.download("chat-files", message.attachment.url) == b"jpeg"

    @pytest.mark.asyncio
    async def test_send_document(self, adapter):
        result = await adapter.send_file(FileUpload("notes.pdf", b"%PDF"))

        assert result.value.content == "[notes.pdf]"
        assert result.value.attachment.file_size == 4

    @pytest.mark.asyncio
    async def test_oversized_file_writes_nothing(self, storage, notifier, adapter):
        upload = FileUpload("big.mp4", b"\0" * (MAX_FILE_SIZE + 1))

        result = await adapter.send_file(upload)

        assert not result.ok
        assert notifier.latest().description == "Maximum file size is 50MB"
        assert await storage.select("messages") == []

    @pytest.mark.asyncio
    async def test_upload_failure_writes_no_row(self, storage, objects, adapter, monkeypatch):
        monkeypatch.setattr(objects, "upload", AsyncMock(side_effect=OSError("disk full")))

        result = await adapter.send_file(FileUpload("photo.png", b"png"))

        assert not result.ok
        assert await storage.select("messages") == []


class TestEdit:
    """Tests for editing messages."""

    @pytest.mark.asyncio
    async def test_edit_own_text(self, storage, notifier, adapter):
        await adapter.subscribe()
        sent = (await adapter.send("helo")).value

        result = await adapter.edit(sent.id, "hello https://example.com")

        assert result.ok
        edited = adapter.find(sent.id)
        assert edited.content == "hello https://example.com"
        assert edited.edited_at is not None
        assert isinstance(edited.kind, LinkKind)
        assert notifier.latest().description == "Message updated"
        rows = await storage.select("messages", eq={"id": sent.id})
        assert rows[0]["link_url"] == "https://example.com"
        await adapter.unsubscribe()

    @pytest.mark.asyncio
    async def test_edit_removes_link(self, adapter):
        sent = (await adapter.send("see https://example.com")).value
        await adapter.edit(sent.id, "never mind")
        assert isinstance(adapter.find(sent.id).kind, TextKind)

    @pytest.mark.asyncio
    async def test_blank_edit_is_skipped(self, adapter):
        sent = (await adapter.send("hello")).value
        result = await adapter.edit(sent.id, "  ")

        assert result.skipped
        assert adapter.find(sent.id).content == "hello"

    @pytest.mark.asyncio
    async def test_cannot_edit_others_message(self, seed, notifier, adapter):
        row = await seed.group_message("g1", "bob", "mine")
        await adapter.load()

        result = await adapter.edit(row["id"], "hacked")

        assert not result.ok
        assert notifier.latest().title == "Permission denied"

    @pytest.mark.asyncio
    async def test_cannot_edit_voice(self, adapter):
        sent = (await adapter.send_voice(b"opus", duration_seconds=1.0)).value
        result = await adapter.edit(sent.id, "text")

        assert not result.ok
        assert result.error == "Only text messages can be edited"

    @pytest.mark.asyncio
    async def test_cannot_edit_file(self, adapter):
        sent = (await adapter.send_file(FileUpload("a.png", b"png"))).value
        result = await adapter.edit(sent.id, "text")
        assert result.error == "Only text messages can be edited"

    @pytest.mark.asyncio
    async def test_cannot_edit_deleted(self, adapter):
        sent = (await adapter.send("hello")).value
        await adapter.soft_delete(sent.id)

        result = await adapter.edit(sent.id, "back")

        assert result.error == "Deleted messages cannot be edited"

    @pytest.mark.asyncio
    async def test_edit_unknown_message(self, adapter):
        result = await adapter.edit("nope", "text")
        assert result.error == "Message not found"


class TestSoftDelete:
    """Tests for soft deletion."""

    @pytest.mark.asyncio
    async def test_delete_keeps_row(self, storage, notifier, adapter):
        sent = (await adapter.send("oops")).value

        result = await adapter.soft_delete(sent.id)

        assert result.ok
        deleted = adapter.find(sent.id)
        assert deleted.is_deleted
        assert deleted.content == "Message deleted"
        assert isinstance(deleted.kind, DeletedKind)
        assert notifier.latest().description == "Message deleted"
        assert len(await storage.select("messages")) == 1

    @pytest.mark.asyncio
    async def test_delete_twice_changes_nothing(self, storage, notifier, adapter):
        sent = (await adapter.send("oops")).value
        await adapter.soft_delete(sent.id)
        before = await storage.select("messages", eq={"id": sent.id})
        toasts = len(notifier.toasts)

        result = await adapter.soft_delete(sent.id)

        assert result.ok
        assert await storage.select("messages", eq={"id": sent.id}) == before
        assert len(notifier.toasts) == toasts

    @pytest.mark.asyncio
    async def test_direct_placeholder(self, direct_adapter):
        sent = (await direct_adapter.send("oops")).value
        await direct_adapter.soft_delete(sent.id)
        assert direct_adapter.find(sent.id).content == "[Message deleted]"

    @pytest.mark.asyncio
    async def test_delete_voice_removes_binary(self, objects, adapter):
        sent = (await adapter.send_voice(b"opus", duration_seconds=1.0)).value

        await adapter.soft_delete(sent.id)

        with pytest.raises(FileNotFoundError):
            await objects.download("voice-messages", sent.kind.url)

    @pytest.mark.asyncio
    async def test_cannot_delete_others_message(self, seed, adapter):
        row = await seed.group_message("g1", "bob", "mine")
        await adapter.load()

        result = await adapter.soft_delete(row["id"])

        assert not result.ok
        assert not adapter.find(row["id"]).is_deleted
