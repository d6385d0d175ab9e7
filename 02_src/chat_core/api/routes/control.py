"""Control API routes."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...app import Application
from ...models import CurrentUser


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


class SignInRequest(BaseModel):
    user_id: str
    email: str | None = None


def create_control_router(app: Application) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Reset system data between test runs."""
        try:
            await app.reset()
            return {"status": "ok"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/sign-in", response_model=StatusResponse)
    async def sign_in(request: SignInRequest) -> dict:
        """Act as the given user for subsequent requests."""
        if not request.user_id.strip():
            raise HTTPException(status_code=400, detail="user_id is required")
        await app.sign_in(CurrentUser(id=request.user_id, email=request.email))
        return {"status": "ok"}

    @router.post("/sign-out", response_model=StatusResponse)
    async def sign_out() -> dict:
        await app.sign_out()
        return {"status": "ok"}

    return router
