"""Operation results returned at the pipeline's operation boundary."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Generic, Literal, TypeVar

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """Outcome of a chat operation.

    `skipped` marks input that was silently not submitted (e.g. blank text);
    it is neither a success nor a surfaced failure.
    """

    ok: bool
    value: T | None = None
    error: str | None = None
    skipped: bool = False
    exception: Exception | None = field(default=None, repr=False, compare=False)

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str, exception: Exception | None = None) -> "Result[T]":
        return cls(ok=False, error=error, exception=exception)

    @classmethod
    def skip(cls) -> "Result[T]":
        return cls(ok=False, skipped=True)


@dataclass(frozen=True)
class ForwardDestination:
    """A group or direct conversation a message can be forwarded to."""

    id: str
    kind: Literal["group", "conversation"]
    name: str = ""
    avatar_url: str | None = None


@dataclass
class ForwardFailure:
    destination: ForwardDestination
    error: str


@dataclass
class ForwardResult:
    """Per-destination outcome of a forward fan-out."""

    succeeded: list[ForwardDestination] = field(default_factory=list)
    failed: list[ForwardFailure] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @property
    def partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)

    def summary(self) -> str:
        """Aggregate toast text; counts every attempted destination."""
        return f"Message forwarded to {self.attempted} chat(s)"


@dataclass
class Toast:
    """A transient user-visible notification."""

    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
