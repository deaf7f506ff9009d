"""Lease model - time-bounded token handed to one holder at a time."""

import json
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationError

from tokengate.engine.errors import MalformedRecord
from tokengate.utils.time import to_epoch_ms

# Fields persisted in the record body. The id is carried by the store key.
RECORD_FIELDS = ("expiry", "is_active", "is_blocked", "created_at", "updated_at", "blocked_at")


class Lease(BaseModel):
    """
    A lease and its lifecycle metadata.

    ``is_active`` is written as true at creation for wire compatibility but is
    recomputed from ``expiry`` whenever a lease is read back from the store.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    expiry: datetime
    created_at: datetime
    is_active: bool = True
    is_blocked: bool = False
    updated_at: Optional[datetime] = None
    blocked_at: Optional[datetime] = None

    @classmethod
    def create(cls, now: datetime, ttl_seconds: int) -> "Lease":
        """Mint a new, unblocked lease expiring ``ttl_seconds`` after ``now``."""
        return cls(
            expiry=now + timedelta(seconds=ttl_seconds),
            created_at=now,
        )

    @property
    def expiry_score(self) -> int:
        """Expiry index score (epoch milliseconds)."""
        return to_epoch_ms(self.expiry)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if lease is eligible for reclamation."""
        if now is None:
            now = datetime.now(timezone.utc)
        return self.expiry <= now

    def to_record(self) -> str:
        """Encode the flat record body stored under the lease key."""
        return self.model_dump_json(include=set(RECORD_FIELDS))

    @classmethod
    def from_record(cls, lease_id: str, raw: str | bytes) -> "Lease":
        """
        Decode a stored record body.

        Raises:
            MalformedRecord: body is not a JSON object, required fields are
                missing, or timestamps do not parse.
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MalformedRecord(lease_id, f"invalid JSON ({e})") from e

        if not isinstance(data, dict):
            raise MalformedRecord(lease_id, "record is not an object")

        body = {name: data[name] for name in RECORD_FIELDS if name in data}
        try:
            lease = cls(id=lease_id, **body)
        except ValidationError as e:
            raise MalformedRecord(lease_id, str(e)) from e

        for name in ("expiry", "created_at", "updated_at", "blocked_at"):
            value = getattr(lease, name)
            if value is not None and value.tzinfo is None:
                setattr(lease, name, value.replace(tzinfo=timezone.utc))
        return lease


class BlockingMarker(BaseModel):
    """Short-lived side record asserting a lease is checked out."""

    is_blocked: bool = True

    def to_record(self) -> str:
        return self.model_dump_json()
