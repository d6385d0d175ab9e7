"""Application bootstrap and lifecycle management."""

import os
from pathlib import Path
from typing import Protocol

from .auth import Session
from .context import ChatContext
from .config import resolve_db_path
from .llm import ILLMProvider, LLMProvider
from .logging_config import get_logger
from .models import ContainerKind, CurrentUser
from .notifications import Notifier
from .objects import LocalObjectStorage
from .realtime import RealtimeHub
from .rooms import ConversationDirectory, InvitationInbox
from .storage import Storage
from .surface import ChatSurface
from .transcription import TranscriptionClient, TranscriptSummarizer

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        db_path: str | None = None,
        storage_dir: str | Path | None = None,
        user: CurrentUser | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._storage_dir = storage_dir or os.getenv("STORAGE_DIR")
        self._initial_user = user

        # Components (initialized in start())
        self._storage: Storage | None = None
        self._hub: RealtimeHub | None = None
        self._context: ChatContext | None = None
        self._llm: ILLMProvider | None = None
        self._transcription: TranscriptionClient | None = None
        self._summarizer: TranscriptSummarizer | None = None
        self._surfaces: dict[tuple[ContainerKind, str], ChatSurface] = {}
        self._invitations: InvitationInbox | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Realtime hub, fed by storage writes
        self._hub = RealtimeHub()
        self._storage.set_change_listener(self._hub.publish)
        logger.info("Realtime hub initialized")

        # 3. Session-wide context
        self._context = ChatContext(
            session=Session(self._initial_user),
            store=self._storage,
            realtime=self._hub,
            objects=LocalObjectStorage(self._storage_dir),
            notifier=Notifier(),
        )

        # 4. Transcription, with LLM summaries when a key is configured
        self._transcription = TranscriptionClient()
        if os.getenv("ANTHROPIC_API_KEY"):
            self._llm = LLMProvider()
            self._summarizer = TranscriptSummarizer(self._llm)
            logger.info("LLM provider initialized")
        else:
            logger.info("ANTHROPIC_API_KEY not set, transcript summaries disabled")

        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        await self._unmount_all()
        if self._transcription:
            await self._transcription.close()
        if self._hub:
            await self._hub.close()
        if self._storage:
            self._storage.set_change_listener(None)
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        # 1. Release live subscriptions
        await self._unmount_all()

        # 2. Clear storage
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

        # 3. Drop session caches
        if self._context:
            self._context.profile_cache.clear()
            self._context.notifier.clear()
        logger.info("Reset complete")

    async def sign_in(self, user: CurrentUser) -> None:
        """Switch the session user; surfaces are per viewer so they are dropped."""
        await self._unmount_all()
        self.session.sign_in(user)
        await self.context.profiles.touch_last_seen(user.id)

    async def sign_out(self) -> None:
        await self._unmount_all()
        self.session.sign_out()

    async def open_chat(
        self, kind: ContainerKind, container_id: str, title: str = ""
    ) -> ChatSurface:
        """Mounted surface for a container; one per container."""
        key = (kind, container_id)
        surface = self._surfaces.get(key)
        if surface is not None:
            return surface

        member_ids = None
        if kind is ContainerKind.GROUP:
            rows = await self.storage.select("group_members", eq={"group_id": container_id})
            member_ids = [row["user_id"] for row in rows]

        surface = ChatSurface(
            self.context, kind, container_id, title=title, member_ids=member_ids
        )
        await surface.mount()
        self._surfaces[key] = surface
        return surface

    async def close_chat(self, kind: ContainerKind, container_id: str) -> None:
        surface = self._surfaces.pop((kind, container_id), None)
        if surface is not None:
            await surface.unmount()

    async def open_invitations(self) -> InvitationInbox:
        """Live inbox of the signed-in user's pending invitations."""
        if self._invitations is None:
            inbox = InvitationInbox(self.context)
            await inbox.subscribe()
            self._invitations = inbox
        return self._invitations

    async def _unmount_all(self) -> None:
        for surface in list(self._surfaces.values()):
            await surface.unmount()
        self._surfaces.clear()
        if self._invitations is not None:
            await self._invitations.unsubscribe()
            self._invitations = None

    @property
    def storage(self) -> Storage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def context(self) -> ChatContext:
        if not self._context:
            raise RuntimeError("Application not started")
        return self._context

    @property
    def session(self) -> Session:
        return self.context.session

    @property
    def conversations(self) -> ConversationDirectory:
        return ConversationDirectory(self.context)

    @property
    def transcription(self) -> TranscriptionClient:
        if not self._transcription:
            raise RuntimeError("Application not started")
        return self._transcription

    @property
    def summarizer(self) -> TranscriptSummarizer | None:
        return self._summarizer
