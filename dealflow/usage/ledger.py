"""Usage ledger: idempotent per-account counters for metered actions."""

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from dealflow.core.config import get_settings
from dealflow.domain.tiers import Metric, Role, TierId, get_quota, is_unbounded
from dealflow.schemas.usage import UsageMeter, UsageSnapshot

logger = structlog.get_logger(__name__)

# Metric -> (redis set suffix, widget label)
_METRICS: dict[str, tuple[str, str]] = {
    "profile_views": ("viewed", "Profile Views"),
    "contacts": ("contacted", "Contacts"),
}


class UsageLedger:
    """Track profile views and outbound contacts for one account.

    Each metric is a Redis set of entity ids. Counters are the set
    cardinalities, so re-tracking an entity can never double count and the
    ledger only grows until reset_usage() is called.
    """

    def __init__(self, redis: Redis, account_id: str, key_prefix: str | None = None):
        self.redis = redis
        self.account_id = account_id
        self.key_prefix = key_prefix or get_settings().key_prefix

    def _key(self, metric: Metric) -> str:
        suffix, _ = _METRICS[metric]
        return f"{self.key_prefix}:usage:{self.account_id}:{suffix}"

    async def get_usage(self) -> UsageSnapshot:
        """Return current usage, zeroed if the account has never been tracked."""
        viewed = await self.redis.smembers(self._key("profile_views"))
        contacted = await self.redis.smembers(self._key("contacts"))
        return UsageSnapshot(
            profile_views=len(viewed),
            contacts=len(contacted),
            viewed_ids=sorted(viewed),
            contacted_ids=sorted(contacted),
        )

    async def _track(self, metric: Metric, entity_id: str) -> bool:
        if not entity_id:
            return False

        added = await self.redis.sadd(self._key(metric), entity_id)
        if added:
            logger.info("usage_tracked", account_id=self.account_id, metric=metric, entity_id=entity_id)
        return bool(added)

    async def track_view(self, entity_id: str) -> bool:
        """Count a profile view once per entity.

        Returns:
            True if the entity was newly counted, False if already counted
        """
        return await self._track("profile_views", entity_id)

    async def track_contact(self, entity_id: str) -> bool:
        """Count an outbound contact once per entity.

        Returns:
            True if the entity was newly counted, False if already counted
        """
        return await self._track("contacts", entity_id)

    async def reset_usage(self) -> None:
        """Clear both metrics. Called on tier change or billing rollover."""
        await self.redis.delete(self._key("profile_views"), self._key("contacts"))
        logger.info("usage_reset", account_id=self.account_id)

    async def _can(
        self,
        metric: Metric,
        tier_id: TierId | str | None,
        entity_id: str | None,
        role: Role | str | None,
    ) -> bool:
        quota = get_quota(tier_id, metric, role)
        if is_unbounded(quota):
            return True

        key = self._key(metric)
        try:
            # Already-counted entities stay reachable after the quota runs out
            if entity_id and await self.redis.sismember(key, entity_id):
                return True
            used = await self.redis.scard(key)
        except RedisError as exc:
            logger.warning(
                "usage_check_failed",
                account_id=self.account_id,
                metric=metric,
                error=str(exc),
            )
            return False

        allowed = used < quota
        if not allowed:
            logger.info("quota_exhausted", account_id=self.account_id, metric=metric, used=used, limit=quota)
        return allowed

    async def can_view_profile(
        self,
        tier_id: TierId | str | None,
        entity_id: str | None = None,
        role: Role | str | None = None,
    ) -> bool:
        """Check whether the account may open a profile. Never raises."""
        return await self._can("profile_views", tier_id, entity_id, role)

    async def can_contact(
        self,
        tier_id: TierId | str | None,
        entity_id: str | None = None,
        role: Role | str | None = None,
    ) -> bool:
        """Check whether the account may contact an entity. Never raises."""
        return await self._can("contacts", tier_id, entity_id, role)

    async def usage_meters(self, tier_id: TierId | str | None, role: Role | str | None = None) -> list[UsageMeter]:
        """Build the plan-usage widget bars for the given tier."""
        usage = await self.get_usage()
        used_by_metric = {"profile_views": usage.profile_views, "contacts": usage.contacts}

        meters = []
        for metric, (_, label) in _METRICS.items():
            used = used_by_metric[metric]
            quota = get_quota(tier_id, metric, role)
            if is_unbounded(quota):
                meters.append(UsageMeter(
                    metric=metric,
                    label=label,
                    used=used,
                    limit=None,
                    remaining=None,
                    percentage=0.0,
                    unbounded=True,
                ))
                continue

            percentage = min(used / quota * 100, 100.0) if quota else 100.0
            meters.append(UsageMeter(
                metric=metric,
                label=label,
                used=used,
                limit=quota,
                remaining=max(0, quota - used),
                percentage=percentage,
                unbounded=False,
            ))
        return meters
