"""Auth module."""

from .session import AuthListener, IAuthSession, Session

__all__ = ["AuthListener", "IAuthSession", "Session"]
