"""Translate failed Results into HTTP errors."""
from __future__ import annotations
from typing import Any, Optional

from fastapi import HTTPException, status

from formbuilder.domain.common.result import ErrorKind, Result

_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.LOOKUP_MISS: status.HTTP_404_NOT_FOUND,
    ErrorKind.GATEWAY: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.AUTH_PENDING: status.HTTP_401_UNAUTHORIZED,
}


def status_for(kind: Optional[ErrorKind]) -> int:
    return _STATUS.get(kind, status.HTTP_400_BAD_REQUEST)


def raise_for(result: Result, detail: Any = None) -> None:
    """Raise the HTTPException matching a failed result; successful results pass through."""
    if result.is_success:
        return
    raise HTTPException(status_code=status_for(result.kind), detail=detail if detail is not None else result.error)
