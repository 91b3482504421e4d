"""Per-account tier and region preference record."""

from redis.asyncio import Redis

from dealflow.core.config import get_settings
from dealflow.domain.pricing import Region, resolve_region
from dealflow.domain.tiers import Role, TierId, get_tier


class PreferenceStore:
    """Local ``{tier_id, region}`` record for one account.

    Stored as a Redis hash namespaced by account id so a second account on the
    same device never reads the first account's plan.
    """

    def __init__(self, redis: Redis, account_id: str, key_prefix: str | None = None):
        settings = get_settings()
        self.redis = redis
        self.account_id = account_id
        self.key_prefix = key_prefix or settings.key_prefix
        self.default_region = resolve_region(settings.default_region)

    @property
    def key(self) -> str:
        return f"{self.key_prefix}:prefs:{self.account_id}"

    async def get_tier(self, role: Role | str | None = None) -> TierId:
        """Stored tier, or the role family's free tier when absent or unknown."""
        raw = await self.redis.hget(self.key, "tier_id")
        return get_tier(raw, role).id

    async def set_tier(self, tier_id: TierId | str) -> None:
        await self.redis.hset(self.key, "tier_id", TierId(tier_id).value)

    async def get_region(self) -> Region:
        raw = await self.redis.hget(self.key, "region")
        return resolve_region(raw) if raw else self.default_region

    async def has_region(self) -> bool:
        return bool(await self.redis.hexists(self.key, "region"))

    async def set_region(self, region: Region | str) -> None:
        await self.redis.hset(self.key, "region", resolve_region(region).value)

    async def get_record(self, role: Role | str | None = None) -> dict:
        """Full preference record as persisted: ``{tier_id, region}``."""
        return {
            "tier_id": (await self.get_tier(role)).value,
            "region": (await self.get_region()).value,
        }
