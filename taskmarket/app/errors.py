"""Domain errors surfaced by the marketplace core."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping, Optional

from fastapi import HTTPException, status


@dataclass
class MarketplaceError(Exception):
    """Base class for tagged, recoverable marketplace failures.

    Every subclass carries a stable ``code`` that hosts can branch on and an
    HTTP status used when the error crosses the API boundary.
    """

    message: str
    detail: Optional[Mapping[str, Any]] = None

    code: ClassVar[str] = "marketplace_error"
    status_code: ClassVar[int] = status.HTTP_400_BAD_REQUEST

    def __post_init__(self) -> None:
        base_detail: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            base_detail.update(self.detail)
        object.__setattr__(self, "_payload", base_detail)
        super().__init__(self.message)

    @property
    def payload(self) -> Mapping[str, Any]:
        """Serialized representation suitable for JSON responses."""

        return self._payload

    def to_http_exception(self) -> HTTPException:
        """Convert the domain error into a FastAPI HTTPException."""

        return HTTPException(status_code=self.status_code, detail=dict(self.payload))


@dataclass
class ValidationError(MarketplaceError):
    """Malformed input; surfaced immediately and never retried."""

    code: ClassVar[str] = "validation_error"
    status_code: ClassVar[int] = status.HTTP_400_BAD_REQUEST


@dataclass
class QuotaExceeded(MarketplaceError):
    """The weekly offer allowance is used up; callers should offer an upgrade."""

    code: ClassVar[str] = "quota_exceeded"
    status_code: ClassVar[int] = status.HTTP_403_FORBIDDEN


@dataclass
class DuplicateOffer(MarketplaceError):
    code: ClassVar[str] = "duplicate_offer"
    status_code: ClassVar[int] = status.HTTP_409_CONFLICT


@dataclass
class InvalidTransition(MarketplaceError):
    """A lifecycle transition that the state machine does not allow."""

    code: ClassVar[str] = "invalid_transition"
    status_code: ClassVar[int] = status.HTTP_409_CONFLICT


@dataclass
class InvalidState(MarketplaceError):
    """The target entity is not in a state that permits the operation."""

    code: ClassVar[str] = "invalid_state"
    status_code: ClassVar[int] = status.HTTP_409_CONFLICT


@dataclass
class NotFound(MarketplaceError):
    code: ClassVar[str] = "not_found"
    status_code: ClassVar[int] = status.HTTP_404_NOT_FOUND


@dataclass
class Forbidden(MarketplaceError):
    code: ClassVar[str] = "forbidden"
    status_code: ClassVar[int] = status.HTTP_403_FORBIDDEN


__all__ = [
    "DuplicateOffer",
    "Forbidden",
    "InvalidState",
    "InvalidTransition",
    "MarketplaceError",
    "NotFound",
    "QuotaExceeded",
    "ValidationError",
]
