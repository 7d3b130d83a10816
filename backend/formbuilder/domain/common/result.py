"""Result<T> pattern: domain operations return this instead of raising for normal flow."""
from __future__ import annotations
from enum import Enum
from typing import TypeVar, Generic, Optional

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"      # precondition unmet, shown to the user
    LOOKUP_MISS = "lookup_miss"    # unknown field/step/form id
    GATEWAY = "gateway"            # persistence call failed
    AUTH_PENDING = "auth_pending"  # no identity established yet


class Result(Generic[T]):
    def __init__(
        self,
        is_success: bool,
        value: Optional[T] = None,
        error: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
    ):
        self.is_success = is_success
        self.value = value
        self.error = error
        self.kind = kind

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(is_success=True, value=value)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind = ErrorKind.VALIDATION) -> "Result[T]":
        return cls(is_success=False, error=error, kind=kind)

    @classmethod
    def miss(cls, error: str) -> "Result[T]":
        return cls.fail(error, kind=ErrorKind.LOOKUP_MISS)

    @property
    def is_rejection(self) -> bool:
        return not self.is_success and self.kind == ErrorKind.VALIDATION

    def __repr__(self) -> str:
        if self.is_success:
            return f"Result.ok({self.value!r})"
        return f"Result.fail({self.error!r}, kind={self.kind.value if self.kind else None})"
