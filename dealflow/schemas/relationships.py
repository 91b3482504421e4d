"""Relationship lifecycle schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class RelationshipStatus(str, Enum):
    """Relationship lifecycle states.

    DECLINED and DISCONNECTED are transition labels: the authoritative record
    is removed on decline/disconnect, so a subsequent read reports NONE.
    """

    NONE = "none"
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    DISCONNECTED = "disconnected"


class ConnectionRecord(BaseModel):
    """Row shape returned by the remote relationship service."""

    id: str
    initiator_id: str
    recipient_id: str
    status: str  # pending, accepted, rejected
    deal_closed: bool = False
    deal_closed_at: datetime | None = None
    created_at: datetime | None = None


class Relationship(BaseModel):
    """A directed connection between two accounts, as seen from the local mirror."""

    connection_id: str
    initiator_id: str
    recipient_id: str
    status: RelationshipStatus
    deal_closed: bool = False
    deal_closed_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: ConnectionRecord) -> "Relationship":
        status = {
            "pending": RelationshipStatus.PENDING,
            "accepted": RelationshipStatus.ACCEPTED,
            "rejected": RelationshipStatus.DECLINED,
        }.get(record.status, RelationshipStatus.NONE)
        return cls(
            connection_id=record.id,
            initiator_id=record.initiator_id,
            recipient_id=record.recipient_id,
            status=status,
            deal_closed=record.deal_closed and status == RelationshipStatus.ACCEPTED,
            deal_closed_at=record.deal_closed_at,
            created_at=record.created_at,
        )

    def is_incoming(self, account_id: str) -> bool:
        """True when ``account_id`` received the request. Always recomputed, never stored."""
        return self.recipient_id == account_id

    def counterparty_of(self, account_id: str) -> str:
        return self.initiator_id if self.recipient_id == account_id else self.recipient_id

    @property
    def is_active(self) -> bool:
        """Pending or accepted: blocks a new request for the pair."""
        return self.status in (RelationshipStatus.PENDING, RelationshipStatus.ACCEPTED)


class ConnectionStats(BaseModel):
    """Incoming connection request counts for an account's analytics panel."""

    total: int = 0
    pending: int = 0
    accepted: int = 0
    rejected: int = 0
    recent_change: int = 0
