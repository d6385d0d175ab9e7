"""Messaging API routes."""

import base64
import binascii
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from ...app import Application
from ...attachments import FileUpload
from ...errors import ChatError, NotAuthenticated
from ...models import ContainerKind, ForwardDestination, RenderedMessage
from ...stream import Forwarder
from ...surface import ChatSurface
from ..errors import http_error, raise_for_result


class SendRequest(BaseModel):
    """Request model for sending a text message."""

    content: str
    reply_to_id: str | None = None


class EditRequest(BaseModel):
    content: str


class DestinationModel(BaseModel):
    id: str
    kind: Literal["group", "conversation"]
    name: str = ""


class ForwardRequest(BaseModel):
    destinations: list[DestinationModel] = Field(min_length=1)
    surface_failures: bool = False


class ReplyResponse(BaseModel):
    message_id: str
    sender_name: str
    content: str


class AttachmentResponse(BaseModel):
    url: str
    file_name: str | None = None
    file_type: str | None = None
    file_size: int | None = None
    voice_duration_seconds: float | None = None


class LinkPreviewResponse(BaseModel):
    url: str
    title: str | None = None
    description: str | None = None


class MessageResponse(BaseModel):
    """Response model for one rendered message slot."""

    id: str
    container_id: str
    container_kind: str
    kind: str
    sender_id: str
    sender_name: str
    sender_avatar_url: str | None = None
    content: str
    created_at: datetime
    edited_at: datetime | None = None
    is_deleted: bool
    is_own: bool
    is_edited: bool
    presence: str
    reply: ReplyResponse | None = None
    attachment: AttachmentResponse | None = None
    link_preview: LinkPreviewResponse | None = None
    collage_urls: list[str] = []
    actions: list[str] = []


class SentResponse(BaseModel):
    id: str
    content: str
    created_at: datetime


class StatusResponse(BaseModel):
    status: str
    skipped: bool = False


class ForwardResponse(BaseModel):
    summary: str
    succeeded: list[str]
    failed: dict[str, str]


class SuggestionResponse(BaseModel):
    id: str
    handle: str
    name: str
    avatar_url: str | None = None


class TargetResponse(BaseModel):
    id: str
    kind: str
    name: str
    avatar_url: str | None = None


class InvitationResponse(BaseModel):
    id: str
    group_id: str
    group_name: str
    invited_by: str
    inviter_name: str
    created_at: datetime | None = None


class TranscriptionRequest(BaseModel):
    audio_base64: str | None = None
    file_name: str | None = None
    content_type: str | None = None
    url: str | None = None
    language: str = "auto"
    summarize: bool = False


class TranscriptResponse(BaseModel):
    text: str
    original_text: str
    detected_language: str
    language_name: str
    was_translated: bool
    summary: str
    notes: str


def to_response(item: RenderedMessage) -> dict:
    message = item.message
    deleted = message.is_deleted
    attachment = None
    if message.attachment is not None and not deleted:
        attachment = {
            "url": item.attachment_url or message.attachment.url,
            "file_name": message.attachment.file_name,
            "file_type": message.attachment.file_type,
            "file_size": message.attachment.file_size,
            "voice_duration_seconds": message.attachment.voice_duration_seconds,
        }
    link_preview = None
    if message.kind_name == "link":
        link_preview = {
            "url": message.link_preview.url,
            "title": message.link_preview.title,
            "description": message.link_preview.description,
        }
    return {
        "id": message.id,
        "container_id": message.container_id,
        "container_kind": message.container_kind.value,
        "kind": message.kind_name,
        "sender_id": message.sender_id,
        "sender_name": item.sender_name,
        "sender_avatar_url": item.sender_avatar_url,
        "content": message.content,
        "created_at": message.created_at,
        "edited_at": message.edited_at,
        "is_deleted": deleted,
        "is_own": item.is_own,
        "is_edited": item.is_edited,
        "presence": item.presence,
        "reply": vars(item.reply) if item.reply else None,
        "attachment": attachment,
        "link_preview": link_preview,
        "collage_urls": item.collage_urls,
        "actions": list(item.actions),
    }


def create_messaging_router(app: Application) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])

    async def surface_for(kind: ContainerKind, container_id: str) -> ChatSurface:
        if app.session.get_current_user() is None:
            raise http_error(NotAuthenticated())
        return await app.open_chat(kind, container_id)

    @router.get(
        "/chats/{kind}/{container_id}/messages", response_model=list[MessageResponse]
    )
    async def list_messages(kind: ContainerKind, container_id: str) -> list[dict]:
        """Rendered message list, oldest first."""
        surface = await surface_for(kind, container_id)
        return [to_response(item) for item in await surface.render()]

    @router.post("/chats/{kind}/{container_id}/messages", response_model=SentResponse)
    async def send_message(kind: ContainerKind, container_id: str, request: SendRequest) -> dict:
        """Send a text message."""
        surface = await surface_for(kind, container_id)
        result = await surface.submit(request.content, request.reply_to_id)
        if result.skipped:
            raise HTTPException(status_code=400, detail="Message is empty")
        raise_for_result(result)
        message = result.value
        return {"id": message.id, "content": message.content, "created_at": message.created_at}

    @router.patch(
        "/chats/{kind}/{container_id}/messages/{message_id}", response_model=StatusResponse
    )
    async def edit_message(
        kind: ContainerKind, container_id: str, message_id: str, request: EditRequest
    ) -> dict:
        surface = await surface_for(kind, container_id)
        result = await surface.stream.edit(message_id, request.content)
        raise_for_result(result)
        return {"status": "ok", "skipped": result.skipped}

    @router.delete(
        "/chats/{kind}/{container_id}/messages/{message_id}", response_model=StatusResponse
    )
    async def delete_message(kind: ContainerKind, container_id: str, message_id: str) -> dict:
        surface = await surface_for(kind, container_id)
        result = await surface.stream.soft_delete(message_id)
        raise_for_result(result)
        return {"status": "ok"}

    @router.post(
        "/chats/{kind}/{container_id}/messages/{message_id}/forward",
        response_model=ForwardResponse,
    )
    async def forward_message(
        kind: ContainerKind, container_id: str, message_id: str, request: ForwardRequest
    ) -> dict:
        surface = await surface_for(kind, container_id)
        message = surface.stream.find(message_id)
        if message is None:
            raise HTTPException(status_code=404, detail="Message not found")
        result = await surface.forwarder.forward(
            message,
            [ForwardDestination(d.id, d.kind, d.name) for d in request.destinations],
            surface_failures=request.surface_failures,
        )
        return {
            "summary": result.summary(),
            "succeeded": [d.id for d in result.succeeded],
            "failed": {f.destination.id: f.error for f in result.failed},
        }

    @router.get("/forward-targets", response_model=list[TargetResponse])
    async def forward_targets(query: str = Query("", description="Name filter")) -> list[dict]:
        if app.session.get_current_user() is None:
            raise http_error(NotAuthenticated())
        targets = await Forwarder(app.context).list_forward_targets(query)
        return [
            {"id": t.id, "kind": t.kind, "name": t.name, "avatar_url": t.avatar_url}
            for t in targets
        ]

    @router.get(
        "/chats/{kind}/{container_id}/mentions", response_model=list[SuggestionResponse]
    )
    async def mention_suggestions(
        kind: ContainerKind,
        container_id: str,
        text: str = Query(..., description="Composer text"),
    ) -> list[dict]:
        surface = await surface_for(kind, container_id)
        profiles = await surface.mentions.on_input_change(text)
        return [
            {"id": p.id, "handle": p.handle, "name": p.name, "avatar_url": p.avatar_url}
            for p in profiles
        ]

    @router.post("/chats/{kind}/{container_id}/typing", response_model=StatusResponse)
    async def typing(kind: ContainerKind, container_id: str) -> dict:
        surface = await surface_for(kind, container_id)
        if surface.typing is None:
            raise HTTPException(status_code=400, detail="Typing is only shown in groups")
        await surface.typing.keystroke()
        return {"status": "ok"}

    @router.get("/chats/{kind}/{container_id}/typing")
    async def typing_status(kind: ContainerKind, container_id: str) -> dict:
        surface = await surface_for(kind, container_id)
        watcher = surface.typing_watcher
        names = watcher.names if watcher else []
        return {"names": names, "text": watcher.describe() if watcher else ""}

    @router.get("/invitations", response_model=list[InvitationResponse])
    async def list_invitations() -> list[dict]:
        """Pending group invitations of the signed-in user, newest first."""
        if app.session.get_current_user() is None:
            raise http_error(NotAuthenticated())
        inbox = await app.open_invitations()
        return [vars(invitation) for invitation in inbox.pending]

    @router.post("/invitations/{invitation_id}/{answer}", response_model=StatusResponse)
    async def answer_invitation(
        invitation_id: str, answer: Literal["accept", "decline"]
    ) -> dict:
        if app.session.get_current_user() is None:
            raise http_error(NotAuthenticated())
        inbox = await app.open_invitations()
        if answer == "accept":
            result = await inbox.accept(invitation_id)
        else:
            result = await inbox.decline(invitation_id)
        raise_for_result(result)
        return {"status": "ok"}

    @router.post("/transcriptions", response_model=TranscriptResponse)
    async def transcribe(request: TranscriptionRequest) -> dict:
        """Transcribe uploaded (base64) or linked audio."""
        upload = None
        if request.audio_base64:
            try:
                data = base64.b64decode(request.audio_base64, validate=True)
            except binascii.Error:
                raise HTTPException(status_code=400, detail="audio_base64 is not valid base64")
            upload = FileUpload(
                file_name=request.file_name or "audio.mp3",
                data=data,
                content_type=request.content_type,
            )
        try:
            transcript = await app.transcription.transcribe(
                upload=upload, url=request.url, language=request.language
            )
            if request.summarize and app.summarizer is not None:
                transcript = await app.summarizer.summarize(transcript)
        except ChatError as e:
            raise http_error(e)
        return vars(transcript)

    return router

