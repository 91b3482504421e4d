"""Entitlement gate: check -> act -> record.

Recording happens only after the remote action succeeded, so a failed remote
call can never burn quota.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog
from redis.exceptions import RedisError

from dealflow.core.exceptions import StaleStatusError
from dealflow.domain.entities import EntitlementSubject
from dealflow.domain.tiers import Metric, Role, TierId
from dealflow.relationships.manager import RelationshipManager
from dealflow.schemas.relationships import Relationship
from dealflow.usage.ledger import UsageLedger

logger = structlog.get_logger(__name__)

UPGRADE_REQUIRED = "upgrade_required"


@dataclass
class GateOutcome:
    """Result of a gated action. Denials point the UI at the upgrade flow."""

    permitted: bool
    reason: str
    relationship: Relationship | None = None


def _target_id(target: EntitlementSubject | str) -> str:
    return target if isinstance(target, str) else target.id


class EntitlementGate:
    """Composes the usage ledger and relationship manager for one account."""

    def __init__(
        self,
        ledger: UsageLedger,
        relationships: RelationshipManager,
        tier_provider: Callable[[], Awaitable[TierId]],
        role: Role | None = None,
    ):
        """Initialize with dependency injection.

        Args:
            ledger: The account's usage ledger
            relationships: The account's relationship manager
            tier_provider: Async callable returning the account's active tier
            role: Account role, used for tier fallback
        """
        self.ledger = ledger
        self.relationships = relationships
        self.tier_provider = tier_provider
        self.role = role

    async def _check(self, metric: Metric, entity_id: str | None) -> bool:
        try:
            tier = await self.tier_provider()
        except RedisError as exc:
            logger.warning(
                "usage_check_failed",
                account_id=self.ledger.account_id,
                metric=metric,
                error=str(exc),
            )
            return False

        if metric == "contacts":
            return await self.ledger.can_contact(tier, entity_id, self.role)
        return await self.ledger.can_view_profile(tier, entity_id, self.role)

    async def can_view_profile(self, target: EntitlementSubject | str | None = None) -> bool:
        return await self._check("profile_views", _target_id(target) if target is not None else None)

    async def can_contact(self, target: EntitlementSubject | str | None = None) -> bool:
        return await self._check("contacts", _target_id(target) if target is not None else None)

    async def open_profile(self, target: EntitlementSubject | str) -> GateOutcome:
        """Gate "open profile detail" and count the first successful open."""
        entity_id = _target_id(target)
        if not await self.can_view_profile(entity_id):
            logger.info("profile_view_denied", account_id=self.ledger.account_id, entity_id=entity_id)
            return GateOutcome(permitted=False, reason=UPGRADE_REQUIRED)

        newly_counted = await self.ledger.track_view(entity_id)
        return GateOutcome(permitted=True, reason="counted" if newly_counted else "already_unlocked")

    async def request_connection(self, target: EntitlementSubject | str) -> GateOutcome:
        """Gate "send connection request", send it, then count the contact.

        Relationship errors (SelfTargetError, AlreadyExistsError,
        RemoteUnavailableError) propagate and nothing is recorded. A
        StaleStatusError means the request was created, so the contact is
        recorded before it propagates.
        """
        recipient_id = _target_id(target)
        if not await self.can_contact(recipient_id):
            logger.info("contact_denied", account_id=self.ledger.account_id, entity_id=recipient_id)
            return GateOutcome(permitted=False, reason=UPGRADE_REQUIRED)

        try:
            relationship = await self.relationships.send_request(recipient_id)
        except StaleStatusError:
            await self.ledger.track_contact(recipient_id)
            raise
        await self.ledger.track_contact(recipient_id)
        return GateOutcome(permitted=True, reason="request_sent", relationship=relationship)
