"""Result models exchanged between the cache mediator and backend clients."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ReserveOutcome(str, Enum):
    """Outcome of a reservation request."""

    GRANTED = "granted"
    CONFLICT = "conflict"


class QueryOutcome(str, Enum):
    """Outcome of a cache lookup."""

    FOUND = "found"
    NOT_FOUND = "not_found"


class ReservationHandle(BaseModel):
    """Upload session granted by the remote cache.

    Fields are optional so that an incomplete response from the service can
    be represented and rejected by the caller.
    """

    cache_id: Optional[int] = Field(None, description="Opaque cache identifier")
    upload_id: Optional[str] = Field(None, description="Upload session identifier")
    upload_urls: Optional[List[str]] = Field(None, description="Upload target locations")

    @property
    def complete(self) -> bool:
        return bool(self.cache_id and self.upload_id and self.upload_urls)


class CacheEntry(BaseModel):
    """Cache entry reported by a successful lookup."""

    cache_key: str = Field(..., description="Matched key, possibly baseKey#tag")
    archive_location: str = Field(..., description="Download URL of the artifact")


class ReserveResult(BaseModel):
    """Result of ``reserve``; a conflict carries no handle."""

    outcome: ReserveOutcome
    handle: Optional[ReservationHandle] = None

    @classmethod
    def granted(cls, handle: ReservationHandle) -> "ReserveResult":
        return cls(outcome=ReserveOutcome.GRANTED, handle=handle)

    @classmethod
    def conflict(cls) -> "ReserveResult":
        return cls(outcome=ReserveOutcome.CONFLICT)

    @property
    def success(self) -> bool:
        return self.outcome == ReserveOutcome.GRANTED


class QueryResult(BaseModel):
    """Result of ``query``; a miss carries no entry."""

    outcome: QueryOutcome
    entry: Optional[CacheEntry] = None

    @classmethod
    def found(cls, entry: CacheEntry) -> "QueryResult":
        return cls(outcome=QueryOutcome.FOUND, entry=entry)

    @classmethod
    def not_found(cls) -> "QueryResult":
        return cls(outcome=QueryOutcome.NOT_FOUND)

    @property
    def success(self) -> bool:
        return self.outcome == QueryOutcome.FOUND
