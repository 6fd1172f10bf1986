"""Resolution outcomes threaded through the reconciliation layer as data."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Literal, TypeVar

T = TypeVar("T")

ResolutionStatus = Literal["found", "not_found"]


@dataclass(frozen=True)
class Resolution(Generic[T]):
    """Outcome of a fallback chain: the value (if any), the step that produced it
    and every step that was attempted, in order."""

    status: ResolutionStatus
    value: T | None = None
    source: str | None = None
    attempts: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def found(cls, value: T, *, source: str, attempts: tuple[str, ...] = ()) -> "Resolution[T]":
        return cls(status="found", value=value, source=source, attempts=attempts or (source,))

    @classmethod
    def not_found(cls, *, attempts: tuple[str, ...] = ()) -> "Resolution[T]":
        return cls(status="not_found", attempts=attempts)

    @property
    def is_found(self) -> bool:
        return self.status == "found" and self.value is not None

    def value_or(self, default: T) -> T:
        return self.value if self.is_found else default  # type: ignore[return-value]


__all__ = ["Resolution", "ResolutionStatus"]
