"""Observability API routes."""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from ...app import Application
from ...profiles import describe, is_online


class ToastResponse(BaseModel):
    """Response model for a toast."""

    title: str
    description: str
    variant: str
    created_at: datetime


class PresenceResponse(BaseModel):
    user_id: str
    name: str
    online: bool
    status: str
    last_seen_at: datetime | None = None


def create_observability_router(app: Application) -> APIRouter:
    """Create observability router."""
    router = APIRouter(prefix="/api", tags=["observability"])

    @router.get("/toasts", response_model=list[ToastResponse])
    async def get_toasts(
        after: str | None = Query(None, description="ISO timestamp filter"),
        limit: int = Query(100, ge=1, le=1000),
        variant: str | None = Query(None, description="default or destructive"),
    ) -> list[dict]:
        """Recent toasts, oldest first."""
        after_dt = None
        if after:
            try:
                after_dt = datetime.fromisoformat(after)
                if after_dt.tzinfo is None:
                    after_dt = after_dt.replace(tzinfo=timezone.utc)
            except ValueError:
                raise HTTPException(status_code=400, detail="Invalid after timestamp format")

        toasts = app.context.notifier.toasts
        if after_dt is not None:
            toasts = [t for t in toasts if t.created_at > after_dt]
        if variant:
            toasts = [t for t in toasts if t.variant == variant]
        return [
            {
                "title": t.title,
                "description": t.description,
                "variant": t.variant,
                "created_at": t.created_at,
            }
            for t in toasts[-limit:]
        ]

    @router.get("/presence/{user_id}", response_model=PresenceResponse)
    async def get_presence(user_id: str) -> dict:
        """Online status evaluated now."""
        profiles = await app.context.profiles.resolve([user_id], refresh=True)
        profile = profiles.get(user_id)
        if profile is None:
            raise HTTPException(status_code=404, detail="Profile not found")
        return {
            "user_id": user_id,
            "name": profile.name,
            "online": is_online(profile.last_seen_at),
            "status": describe(profile.last_seen_at),
            "last_seen_at": profile.last_seen_at,
        }

    return router
