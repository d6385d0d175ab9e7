"""Tests for the HTTP API."""

import base64

import httpx
import pytest
import pytest_asyncio

from chat_core.api import create_fastapi_app
from chat_core.app import Application


@pytest_asyncio.fixture
async def application(tmp_path, monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("TRANSCRIBE_API_KEY", raising=False)
    app = Application(db_path=":memory:", storage_dir=tmp_path)
    # ASGITransport does not run the lifespan
    await app.start()
    yield app
    await app.stop()


@pytest_asyncio.fixture
async def client(application):
    transport = httpx.ASGITransport(app=create_fastapi_app(application))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def signed_in(application, client):
    await application.storage.insert(
        "profiles", {"id": "alice", "display_name": "Alice", "username": "alice"}
    )
    await application.storage.insert("profiles", {"id": "bob", "display_name": "Bob"})
    response = await client.post("/api/control/sign-in", json={"user_id": "alice"})
    assert response.status_code == 200
    return client


MESSAGES = "/api/chats/group/g1/messages"


class TestMessagesApi:
    """Tests for sending and listing messages."""

    @pytest.mark.asyncio
    async def test_requires_sign_in(self, client):
        response = await client.get(MESSAGES)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_send_and_list(self, signed_in):
        response = await signed_in.post(MESSAGES, json={"content": " hello "})

        assert response.status_code == 200
        assert response.json()["content"] == "hello"

        listed = (await signed_in.get(MESSAGES)).json()
        assert len(listed) == 1
        assert listed[0]["kind"] == "text"
        assert listed[0]["sender_name"] == "Alice"
        assert listed[0]["is_own"] is True
        assert listed[0]["presence"] == "Online"
        assert listed[0]["actions"] == ["reply", "forward", "edit", "delete"]

    @pytest.mark.asyncio
    async def test_blank_message(self, signed_in):
        response = await signed_in.post(MESSAGES, json={"content": "   "})

        assert response.status_code == 400
        assert response.json()["detail"] == "Message is empty"

    @pytest.mark.asyncio
    async def test_unknown_container_kind(self, signed_in):
        response = await signed_in.get("/api/chats/channel/g1/messages")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_edit_and_delete(self, signed_in):
        sent = (await signed_in.post(MESSAGES, json={"content": "helo"})).json()

        edited = await signed_in.patch(f"{MESSAGES}/{sent['id']}", json={"content": "hello"})
        assert edited.status_code == 200

        deleted = await signed_in.delete(f"{MESSAGES}/{sent['id']}")
        assert deleted.status_code == 200

        listed = (await signed_in.get(MESSAGES)).json()
        assert listed[0]["is_deleted"] is True
        assert listed[0]["content"] == "Message deleted"
        assert listed[0]["actions"] == []

        toasts = (await signed_in.get("/api/toasts")).json()
        assert [t["description"] for t in toasts] == ["Message updated", "Message deleted"]

    @pytest.mark.asyncio
    async def test_edit_someone_elses_message(self, application, signed_in):
        row = await application.storage.insert(
            "messages", {"group_id": "g1", "user_id": "bob", "content": "mine"}
        )

        response = await signed_in.patch(f"{MESSAGES}/{row['id']}", json={"content": "x"})

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_edit_missing_message(self, signed_in):
        response = await signed_in.patch(f"{MESSAGES}/nope", json={"content": "x"})
        assert response.status_code == 404


class TestForwardApi:
    """Tests for forwarding."""

    @pytest.mark.asyncio
    async def test_forward(self, application, signed_in):
        await application.storage.insert("groups", {"id": "g2", "name": "Science"})
        await application.storage.insert(
            "group_members", {"group_id": "g2", "user_id": "alice"}
        )
        sent = (await signed_in.post(MESSAGES, json={"content": "homework"})).json()

        targets = (await signed_in.get("/api/forward-targets")).json()
        assert [t["name"] for t in targets] == ["Science"]

        response = await signed_in.post(
            f"{MESSAGES}/{sent['id']}/forward",
            json={"destinations": [{"id": "g2", "kind": "group", "name": "Science"}]},
        )

        assert response.status_code == 200
        assert response.json()["summary"] == "Message forwarded to 1 chat(s)"
        rows = await application.storage.select("messages", eq={"group_id": "g2"})
        assert rows[0]["content"] == "📨 Forwarded: homework"

    @pytest.mark.asyncio
    async def test_forward_needs_destinations(self, signed_in):
        sent = (await signed_in.post(MESSAGES, json={"content": "x"})).json()
        response = await signed_in.post(
            f"{MESSAGES}/{sent['id']}/forward", json={"destinations": []}
        )
        assert response.status_code == 422


class TestComposerApi:
    @pytest.mark.asyncio
    async def test_mentions(self, application, signed_in):
        await application.storage.insert("group_members", {"group_id": "g1", "user_id": "bob"})
        await application.storage.update("profiles", {"username": "bobby"}, eq={"id": "bob"})

        response = await signed_in.get("/api/chats/group/g1/mentions", params={"text": "hi @bo"})

        assert [s["handle"] for s in response.json()] == ["bobby"]

    @pytest.mark.asyncio
    async def test_typing_only_in_groups(self, signed_in):
        assert (await signed_in.post("/api/chats/group/g1/typing")).status_code == 200
        assert (await signed_in.post("/api/chats/direct/c1/typing")).status_code == 400


class TestObservabilityApi:
    @pytest.mark.asyncio
    async def test_presence(self, signed_in):
        response = await signed_in.get("/api/presence/alice")

        assert response.status_code == 200
        assert response.json()["online"] is True
        assert response.json()["status"] == "Online"

    @pytest.mark.asyncio
    async def test_presence_unknown_user(self, client):
        assert (await client.get("/api/presence/ghost")).status_code == 404

    @pytest.mark.asyncio
    async def test_toasts_bad_timestamp(self, client):
        assert (await client.get("/api/toasts", params={"after": "yesterday"})).status_code == 400


class TestTranscriptionApi:
    @pytest.mark.asyncio
    async def test_invalid_base64(self, client):
        response = await client.post("/api/transcriptions", json={"audio_base64": "%%%"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_service_not_configured(self, client):
        audio = base64.b64encode(b"mp3").decode("ascii")
        response = await client.post(
            "/api/transcriptions", json={"audio_base64": audio, "file_name": "a.mp3"}
        )

        assert response.status_code == 500
        assert response.json()["detail"] == "Transcription service not configured"


class TestControlApi:
    @pytest.mark.asyncio
    async def test_reset(self, application, signed_in):
        await signed_in.post(MESSAGES, json={"content": "hello"})

        response = await signed_in.post("/api/control/reset")

        assert response.status_code == 200
        assert await application.storage.select("messages") == []

    @pytest.mark.asyncio
    async def test_sign_in_requires_user(self, client):
        response = await client.post("/api/control/sign-in", json={"user_id": " "})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_sign_out(self, signed_in):
        await signed_in.post("/api/control/sign-out")
        assert (await signed_in.get(MESSAGES)).status_code == 401


class TestInvitationsApi:
    @pytest.mark.asyncio
    async def test_accept_invitation(self, application, signed_in):
        await application.storage.insert("groups", {"id": "g2", "name": "Science"})
        await application.storage.insert(
            "group_invitations",
            {"id": "i1", "group_id": "g2", "invited_by": "bob", "invited_user_id": "alice"},
        )

        listed = (await signed_in.get("/api/invitations")).json()
        assert [(i["group_name"], i["inviter_name"]) for i in listed] == [("Science", "Bob")]

        response = await signed_in.post("/api/invitations/i1/accept")

        assert response.status_code == 200
        assert (await signed_in.get("/api/invitations")).json() == []
        targets = (await signed_in.get("/api/forward-targets")).json()
        assert [t["name"] for t in targets] == ["Science"]

    @pytest.mark.asyncio
    async def test_answer_missing_invitation(self, signed_in):
        response = await signed_in.post("/api/invitations/nope/decline")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_requires_sign_in(self, client):
        assert (await client.get("/api/invitations")).status_code == 401
