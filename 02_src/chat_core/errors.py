"""Failure taxonomy for the chat pipeline.

Every operation that talks to an external collaborator catches these at its
own boundary and turns them into a user-visible toast.
"""


class ChatError(Exception):
    """Base class for chat pipeline failures."""

    title = "Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailure(ChatError):
    """Input rejected before any network call (empty text, bad field, ...)."""

    title = "Invalid input"


class AttachmentValidationError(ValidationFailure):
    """Attachment too large or of a disallowed MIME type."""

    title = "File rejected"

    def __init__(self, message: str, limit_bytes: int | None = None) -> None:
        super().__init__(message)
        self.limit_bytes = limit_bytes


class NotAuthenticated(ChatError):
    """No signed-in user for an operation that needs one."""

    title = "Not signed in"

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class PermissionDenied(ChatError):
    """Acting without the required role, or a store policy rejected the write."""

    title = "Permission denied"


class NotFound(ChatError):
    """A referenced record does not exist (anymore)."""

    title = "Not found"


class ServiceFailure(ChatError):
    """Network, storage or transcription service failure."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.original_error = original_error
