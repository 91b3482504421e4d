"""Contracts the engine requires from its remote collaborators.

The relationship service is the single owner of relationship state; the
engine only mirrors what it returns. The subscription store owns the
account's active tier.

Implementations:
- InMemoryRelationshipService / InMemorySubscriptionStore (dealflow.remote.fake)
- HttpRelationshipService / HttpSubscriptionStore (dealflow.remote.http)
"""

from typing import Protocol, runtime_checkable

from dealflow.schemas.relationships import ConnectionRecord


@runtime_checkable
class RelationshipService(Protocol):
    """Authoritative store of connection records.

    Implementations raise dealflow.core.exceptions errors: AlreadyExistsError
    when an active record exists for the pair, NotFoundError for unknown ids,
    RemoteUnavailableError for transport failures.
    """

    async def create_connection(self, initiator_id: str, recipient_id: str) -> str:
        """Create a pending connection and return its id."""
        ...

    async def get_connection(self, account_a: str, account_b: str) -> ConnectionRecord | None:
        """Return the record for the unordered pair, or None."""
        ...

    async def update_connection_status(self, connection_id: str, status: str) -> None:
        """Set status ("accepted" or "rejected")."""
        ...

    async def mark_deal_closed(self, connection_id: str) -> None:
        """Flag an accepted connection's deal as closed."""
        ...

    async def delete_connection(self, connection_id: str) -> None:
        """Remove the record; the pair returns to no relationship."""
        ...

    async def list_connections(self, account_id: str) -> list[ConnectionRecord]:
        """All records where the account is initiator or recipient."""
        ...


@runtime_checkable
class SubscriptionStore(Protocol):
    """Per-account subscription record."""

    async def get_tier(self, account_id: str) -> str | None:
        ...

    async def set_tier(self, account_id: str, tier_id: str) -> None:
        ...
