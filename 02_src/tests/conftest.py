"""Pytest configuration and fixtures."""

import sys
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from chat_core.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def hub(storage):
    """Create RealtimeHub fed by storage writes."""
    from chat_core.realtime import RealtimeHub

    rh = RealtimeHub()
    storage.set_change_listener(rh.publish)
    return rh


@pytest.fixture
def objects(tmp_path):
    """Create object storage under a temporary directory."""
    from chat_core.objects import LocalObjectStorage

    return LocalObjectStorage(
        tmp_path / "objects",
        secret="test-secret",
        base_url="http://test/storage/v1",
    )


@pytest.fixture
def session():
    """Session signed in as alice."""
    from chat_core.auth import Session
    from chat_core.models import CurrentUser

    return Session(CurrentUser(id="alice", email="alice@school.test"))


@pytest.fixture
def notifier():
    from chat_core.notifications import Notifier

    return Notifier()


@pytest.fixture
def context(session, storage, hub, objects, notifier):
    """Create ChatContext wired to the test collaborators."""
    from chat_core.context import ChatContext

    return ChatContext(
        session=session,
        store=storage,
        realtime=hub,
        objects=objects,
        notifier=notifier,
    )


@pytest.fixture
def mock_llm():
    """Create mock LLM provider."""
    llm = Mock()
    llm.complete = AsyncMock(return_value="Test response")
    return llm


class Seeder:
    """Writes fixture rows straight into storage."""

    def __init__(self, storage):
        self._storage = storage

    async def profile(
        self,
        user_id: str,
        display_name: str | None = None,
        username: str | None = None,
        last_seen: datetime | None = None,
        avatar_url: str | None = None,
    ) -> dict:
        return await self._storage.insert(
            "profiles",
            {
                "id": user_id,
                "display_name": display_name,
                "username": username,
                "avatar_url": avatar_url,
                "last_seen": last_seen.isoformat() if last_seen else None,
            },
        )

    async def group(self, group_id: str, name: str, members: list[str] = ()) -> dict:
        row = await self._storage.insert("groups", {"id": group_id, "name": name})
        for user_id in members:
            await self._storage.insert(
                "group_members", {"group_id": group_id, "user_id": user_id}
            )
        return row

    async def conversation(self, conversation_id: str, user1: str, user2: str) -> dict:
        user1, user2 = sorted([user1, user2])
        return await self._storage.insert(
            "conversations",
            {"id": conversation_id, "user1_id": user1, "user2_id": user2},
        )

    async def group_message(
        self, group_id: str, user_id: str, content: str, created_at: str | None = None, **extra
    ) -> dict:
        row = {"group_id": group_id, "user_id": user_id, "content": content}
        if created_at:
            row["created_at"] = created_at
        row.update(extra)
        return await self._storage.insert("messages", row)

    async def direct_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        created_at: str | None = None,
        **extra,
    ) -> dict:
        row = {"conversation_id": conversation_id, "sender_id": sender_id, "content": content}
        if created_at:
            row["created_at"] = created_at
        row.update(extra)
        return await self._storage.insert("direct_messages", row)


@pytest.fixture
def seed(storage):
    """Helper for writing fixture rows."""
    return Seeder(storage)
