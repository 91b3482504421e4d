"""Per-session entitlement context.

One EntitlementSession is built per authenticated session and owns every
piece of account-scoped state (usage ledger, preference record, relationship
mirror). The host application calls teardown() at sign-out; nothing is shared
between accounts through module-level state.
"""

from dataclasses import dataclass

import structlog
from redis.asyncio import Redis

from dealflow.core.exceptions import SessionClosedError
from dealflow.core.logging import bind_account
from dealflow.db.redis import get_redis
from dealflow.domain.entities import Account
from dealflow.domain.pricing import PriceDisplay, Region, format_price
from dealflow.domain.tiers import (
    TIERS,
    TierDefinition,
    TierId,
    get_tier,
    has_feature,
    role_family,
    tiers_for_role,
)
from dealflow.entitlements.gate import EntitlementGate
from dealflow.relationships.manager import RelationshipManager
from dealflow.remote.protocol import RelationshipService, SubscriptionStore
from dealflow.schemas.usage import UsageMeter, UsageSnapshot
from dealflow.usage.ledger import UsageLedger
from dealflow.usage.preferences import PreferenceStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PricedTier:
    """A pricing-page row: tier definition plus its localized price."""

    tier: TierDefinition
    price: PriceDisplay
    is_current: bool


class EntitlementSession:
    """Entitlement, quota and relationship context for one signed-in account."""

    def __init__(
        self,
        account: Account,
        redis: Redis,
        relationship_service: RelationshipService,
        subscription_store: SubscriptionStore,
        key_prefix: str | None = None,
    ):
        self.account = account
        self.subscription_store = subscription_store
        self.preferences = PreferenceStore(redis, account.id, key_prefix)
        self._ledger = UsageLedger(redis, account.id, key_prefix)
        self._relationships = RelationshipManager(relationship_service, account.id)
        self._gate = EntitlementGate(
            self._ledger,
            self._relationships,
            tier_provider=self.get_tier,
            role=account.role,
        )
        self._tier: TierId | None = None
        self._region: Region | None = None
        self._closed = False

    async def __aenter__(self) -> "EntitlementSession":
        return await self.load()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.teardown()

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError(self.account.id)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def ledger(self) -> UsageLedger:
        self._ensure_open()
        return self._ledger

    @property
    def relationships(self) -> RelationshipManager:
        self._ensure_open()
        return self._relationships

    @property
    def gate(self) -> EntitlementGate:
        self._ensure_open()
        return self._gate

    async def load(self) -> "EntitlementSession":
        """Pull the authoritative tier and mirror it into the local preference record.

        Falls back to the account's own tier, then the stored preference, then
        the role family's free tier.
        """
        self._ensure_open()
        with bind_account(self.account.id):
            remote_tier = await self.subscription_store.get_tier(self.account.id)
            if remote_tier is None and self.account.tier_id is not None:
                remote_tier = self.account.tier_id

            if remote_tier is None:
                self._tier = await self.preferences.get_tier(self.account.role)
            else:
                self._tier = get_tier(remote_tier, self.account.role).id
                await self.preferences.set_tier(self._tier)

            if not await self.preferences.has_region():
                await self.preferences.set_region(self.account.region)
            self._region = await self.preferences.get_region()

            logger.info("entitlement_session_loaded", tier=self._tier.value, region=self._region.value)
        return self

    async def get_tier(self) -> TierId:
        self._ensure_open()
        if self._tier is None:
            self._tier = await self.preferences.get_tier(self.account.role)
        return self._tier

    async def get_region(self) -> Region:
        self._ensure_open()
        if self._region is None:
            self._region = await self.preferences.get_region()
        return self._region

    async def change_tier(self, tier_id: TierId | str) -> TierId:
        """Switch plans: authoritative store first, then local record, then usage reset.

        Raises:
            ValueError: unknown tier id, or a tier from another role family
            RemoteUnavailableError: subscription store failure (local state untouched)
        """
        self._ensure_open()
        tier = TierId(tier_id)
        family = role_family(self.account.role)
        if TIERS[tier].role != family:
            raise ValueError(f"Tier '{tier.value}' is not available to {family.value} accounts")

        with bind_account(self.account.id):
            await self.subscription_store.set_tier(self.account.id, tier.value)
            await self.preferences.set_tier(tier)
            await self._ledger.reset_usage()
            previous, self._tier = self._tier, tier
            logger.info("tier_changed", previous=previous.value if previous else None, tier=tier.value)
        return tier

    async def set_region(self, region: Region | str) -> Region:
        self._ensure_open()
        await self.preferences.set_region(region)
        self._region = await self.preferences.get_region()
        return self._region

    async def get_usage(self) -> UsageSnapshot:
        self._ensure_open()
        return await self._ledger.get_usage()

    async def usage_meters(self) -> list[UsageMeter]:
        self._ensure_open()
        return await self._ledger.usage_meters(await self.get_tier(), self.account.role)

    async def format_price(self, base_price: int | float) -> PriceDisplay:
        self._ensure_open()
        return format_price(base_price, await self.get_region())

    async def has_feature(self, feature: str) -> bool:
        self._ensure_open()
        return has_feature(await self.get_tier(), feature, self.account.role)

    async def pricing_table(self) -> list[PricedTier]:
        """Tiers of the account's role family with prices in the account's region."""
        self._ensure_open()
        region = await self.get_region()
        current = await self.get_tier()
        return [
            PricedTier(tier=tier, price=format_price(tier.base_price, region), is_current=tier.id == current)
            for tier in tiers_for_role(self.account.role)
        ]

    def teardown(self) -> None:
        """Sign-out hook: drop all in-memory account state and close the session.

        Persisted per-account records stay; they are namespaced by account id.
        """
        if self._closed:
            return
        self._relationships.clear_cache()
        self._tier = None
        self._region = None
        self._closed = True
        logger.info("entitlement_session_closed", account_id=self.account.id)


async def open_session(
    account: Account,
    relationship_service: RelationshipService,
    subscription_store: SubscriptionStore,
    redis: Redis | None = None,
) -> EntitlementSession:
    """Build and load a session, using the shared Redis pool by default."""
    session = EntitlementSession(
        account,
        redis or get_redis(),
        relationship_service,
        subscription_store,
    )
    return await session.load()
