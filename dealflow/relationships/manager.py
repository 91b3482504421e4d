"""Relationship lifecycle state machine.

Every mutation goes to the remote relationship service first and is followed
by an authoritative re-read; the local mirror only ever holds states the
service has confirmed.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

import structlog

from dealflow.core.exceptions import (
    NotAuthorizedError,
    NotFoundError,
    RemoteUnavailableError,
    SelfTargetError,
    StaleStatusError,
)
from dealflow.remote.protocol import RelationshipService
from dealflow.schemas.relationships import ConnectionStats, Relationship, RelationshipStatus

logger = structlog.get_logger(__name__)

# Window for ConnectionStats.recent_change
RECENT_WINDOW = timedelta(days=7)


class RelationshipAction(str, Enum):
    SEND_REQUEST = "send_request"
    ACCEPT = "accept"
    DECLINE = "decline"
    CLOSE_DEAL = "close_deal"
    DISCONNECT = "disconnect"


class RelationshipManager:
    """Manages one account's relationships with its counterparties."""

    # Valid actions per state (state of the unordered pair)
    TRANSITIONS = {
        RelationshipStatus.NONE: [RelationshipAction.SEND_REQUEST],
        RelationshipStatus.PENDING: [RelationshipAction.ACCEPT, RelationshipAction.DECLINE],
        RelationshipStatus.ACCEPTED: [RelationshipAction.CLOSE_DEAL, RelationshipAction.DISCONNECT],
    }

    # State each action leads to, for logging
    OUTCOMES = {
        RelationshipAction.SEND_REQUEST: RelationshipStatus.PENDING,
        RelationshipAction.ACCEPT: RelationshipStatus.ACCEPTED,
        RelationshipAction.DECLINE: RelationshipStatus.DECLINED,
        RelationshipAction.CLOSE_DEAL: RelationshipStatus.ACCEPTED,
        RelationshipAction.DISCONNECT: RelationshipStatus.DISCONNECTED,
    }

    def __init__(self, service: RelationshipService, account_id: str):
        self.service = service
        self.account_id = account_id
        self._cache: dict[str, Relationship | None] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_status(self, counterparty_id: str) -> Relationship | None:
        """Fetch the authoritative relationship with a counterparty and mirror it.

        Rejected leftovers count as no relationship.

        Returns:
            Relationship (pending or accepted) or None
        """
        record = await self.service.get_connection(self.account_id, counterparty_id)
        relationship = Relationship.from_record(record) if record else None
        if relationship is not None and not relationship.is_active:
            relationship = None

        self._cache[counterparty_id] = relationship
        return relationship

    def cached_status(self, counterparty_id: str) -> Relationship | None:
        """Last confirmed relationship for rendering. Never use for permission decisions."""
        return self._cache.get(counterparty_id)

    def clear_cache(self) -> None:
        self._cache.clear()

    async def closed_deals(self) -> list[str]:
        """Counterparty ids of accepted relationships whose deal is closed."""
        records = await self.service.list_connections(self.account_id)
        relationships = [Relationship.from_record(record) for record in records]
        return [
            relationship.counterparty_of(self.account_id)
            for relationship in relationships
            if relationship.status == RelationshipStatus.ACCEPTED and relationship.deal_closed
        ]

    async def connection_stats(self, now: datetime | None = None) -> ConnectionStats:
        """Count incoming connection requests by status.

        Args:
            now: Current time (for deterministic testing)
        """
        now = now or datetime.now(UTC)
        records = await self.service.list_connections(self.account_id)
        incoming = [record for record in records if record.recipient_id == self.account_id]

        return ConnectionStats(
            total=len(incoming),
            pending=sum(1 for record in incoming if record.status == "pending"),
            accepted=sum(1 for record in incoming if record.status == "accepted"),
            rejected=sum(1 for record in incoming if record.status == "rejected"),
            recent_change=sum(
                1 for record in incoming
                if record.created_at is not None and record.created_at > now - RECENT_WINDOW
            ),
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _load_for_transition(
        self,
        action: RelationshipAction,
        counterparty_id: str,
        connection_id: str | None,
    ) -> Relationship:
        """Read the authoritative state and check the action is legal from it.

        Raises:
            NotFoundError: No relationship, stale handle, or action not valid from the state
        """
        record = await self.service.get_connection(self.account_id, counterparty_id)
        current = Relationship.from_record(record) if record else None
        if current is not None and not current.is_active:
            current = None

        if current is None or connection_id is None or current.connection_id != connection_id:
            raise NotFoundError("This request no longer exists. Refresh to see the latest status.")

        if action not in self.TRANSITIONS.get(current.status, []):
            raise NotFoundError(f"Cannot {action.value.replace('_', ' ')} a {current.status.value} connection")

        return current

    async def _reconcile(self, counterparty_id: str, action: RelationshipAction) -> Relationship | None:
        try:
            relationship = await self.get_status(counterparty_id)
        except RemoteUnavailableError as exc:
            # The mutation went through; only the refresh failed
            self._cache.pop(counterparty_id, None)
            logger.warning(
                "relationship_reconcile_failed",
                account_id=self.account_id,
                counterparty_id=counterparty_id,
                action=action.value,
            )
            raise StaleStatusError(
                "Your action was sent but the latest status could not be loaded. Please refresh."
            ) from exc

        logger.info(
            "relationship_transition",
            account_id=self.account_id,
            counterparty_id=counterparty_id,
            action=action.value,
            outcome=self.OUTCOMES[action].value,
            status=relationship.status.value if relationship else RelationshipStatus.NONE.value,
        )
        return relationship

    async def send_request(self, recipient_id: str) -> Relationship | None:
        """Send a connection request (none -> pending).

        Raises:
            SelfTargetError: recipient is this account (no remote call made)
            AlreadyExistsError: a pending or accepted relationship exists for the pair
            RemoteUnavailableError: transport failure
            StaleStatusError: request created but its status could not be re-read
        """
        if recipient_id == self.account_id:
            raise SelfTargetError(self.account_id)

        await self.service.create_connection(self.account_id, recipient_id)
        return await self._reconcile(recipient_id, RelationshipAction.SEND_REQUEST)

    async def accept(self, counterparty_id: str, connection_id: str | None) -> Relationship | None:
        """Accept an incoming request (pending -> accepted). Recipient only.

        Raises:
            NotFoundError: no pending relationship for the handle
            NotAuthorizedError: called by the initiator
        """
        current = await self._load_for_transition(RelationshipAction.ACCEPT, counterparty_id, connection_id)
        if not current.is_incoming(self.account_id):
            raise NotAuthorizedError("Only the recipient can accept this request")

        await self.service.update_connection_status(current.connection_id, "accepted")
        return await self._reconcile(counterparty_id, RelationshipAction.ACCEPT)

    async def decline(self, counterparty_id: str, connection_id: str | None) -> Relationship | None:
        """Decline (recipient) or withdraw (initiator) a pending request (pending -> none)."""
        current = await self._load_for_transition(RelationshipAction.DECLINE, counterparty_id, connection_id)
        await self.service.delete_connection(current.connection_id)
        return await self._reconcile(counterparty_id, RelationshipAction.DECLINE)

    async def close_deal(self, counterparty_id: str, connection_id: str | None) -> Relationship | None:
        """Mark an accepted relationship's deal as closed. Idempotent."""
        current = await self._load_for_transition(RelationshipAction.CLOSE_DEAL, counterparty_id, connection_id)
        if current.deal_closed:
            self._cache[counterparty_id] = current
            logger.info(
                "deal_already_closed",
                account_id=self.account_id,
                counterparty_id=counterparty_id,
                connection_id=current.connection_id,
            )
            return current

        await self.service.mark_deal_closed(current.connection_id)
        return await self._reconcile(counterparty_id, RelationshipAction.CLOSE_DEAL)

    async def disconnect(self, counterparty_id: str, connection_id: str | None) -> Relationship | None:
        """Remove an accepted relationship, closed deal or not (accepted -> none)."""
        current = await self._load_for_transition(RelationshipAction.DISCONNECT, counterparty_id, connection_id)
        await self.service.delete_connection(current.connection_id)
        return await self._reconcile(counterparty_id, RelationshipAction.DISCONNECT)
