"""Tier Registry: static catalog of subscription tiers.

Pure domain data and lookups. No I/O, no errors: an unknown tier id always
resolves to the free tier of the caller's role family so a corrupt or missing
preference record degrades to the most restrictive plan instead of failing.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

# Quota value meaning "no ceiling" (-1 = unlimited)
UNBOUNDED = -1

Metric = Literal["profile_views", "contacts"]


class Role(StrEnum):
    """Account roles. Providers supply capital, seekers raise it."""

    PROVIDER = "provider"
    SEEKER = "seeker"
    OPERATOR = "operator"


class TierId(StrEnum):
    """Subscription tier tags."""

    # Seeker (startup) family
    DISCOVERY = "discovery"
    STARTER = "starter"
    GROWTH = "growth"
    FUNDRAISE_PRO = "fundraise_pro"

    # Provider (investor) family
    EXPLORE = "explore"
    INVESTOR_BASIC = "investor_basic"
    INVESTOR_PRO = "investor_pro"
    INSTITUTIONAL = "institutional"


@dataclass(frozen=True)
class Quotas:
    """Per-billing-period ceilings. UNBOUNDED never blocks."""

    profile_views: int
    contacts: int


@dataclass(frozen=True)
class TierDefinition:
    id: TierId
    name: str
    role: Role
    quotas: Quotas
    features: tuple[str, ...]
    base_price: int  # INR per month
    currency: str = "INR"
    is_popular: bool = False

    @property
    def is_free(self) -> bool:
        return self.base_price == 0


TIERS: dict[TierId, TierDefinition] = {
    TierId.DISCOVERY: TierDefinition(
        id=TierId.DISCOVERY,
        name="Discovery",
        role=Role.SEEKER,
        quotas=Quotas(profile_views=2, contacts=0),
        features=(
            "Basic visibility",
            "Limited investor discovery",
            "2 profile views/month",
            "AI match previews (blurred)",
        ),
        base_price=0,
    ),
    TierId.STARTER: TierDefinition(
        id=TierId.STARTER,
        name="Starter",
        role=Role.SEEKER,
        quotas=Quotas(profile_views=100, contacts=10),
        features=(
            "AI investor matching",
            "10 investor contacts/month",
            "Basic pitch analytics",
            "Standard support",
        ),
        base_price=999,
    ),
    TierId.GROWTH: TierDefinition(
        id=TierId.GROWTH,
        name="Growth",
        role=Role.SEEKER,
        quotas=Quotas(profile_views=UNBOUNDED, contacts=UNBOUNDED),
        features=(
            "Unlimited discovery",
            "Advanced AI match scoring",
            "AI pitch deck feedback",
            "Investor interest signals",
        ),
        base_price=2499,
        is_popular=True,
    ),
    TierId.FUNDRAISE_PRO: TierDefinition(
        id=TierId.FUNDRAISE_PRO,
        name="Fundraise Pro",
        role=Role.SEEKER,
        quotas=Quotas(profile_views=UNBOUNDED, contacts=UNBOUNDED),
        features=(
            "Featured startup badge",
            "AI warm intros",
            "Fundraising timeline tracking",
            "Dedicated success manager",
        ),
        base_price=4999,
    ),
    TierId.EXPLORE: TierDefinition(
        id=TierId.EXPLORE,
        name="Explore",
        role=Role.PROVIDER,
        quotas=Quotas(profile_views=20, contacts=0),
        features=(
            "View 20 startup profiles",
            "No direct contact (Upgrade only)",
            "Basic filters",
            "AI match previews",
        ),
        base_price=0,
    ),
    TierId.INVESTOR_BASIC: TierDefinition(
        id=TierId.INVESTOR_BASIC,
        name="Investor Basic",
        role=Role.PROVIDER,
        quotas=Quotas(profile_views=100, contacts=20),
        features=(
            "AI-curated startup feed",
            "20 startup contacts/month",
            "Industry/Geo filters",
            "Bookmarking tools",
        ),
        base_price=4999,
    ),
    TierId.INVESTOR_PRO: TierDefinition(
        id=TierId.INVESTOR_PRO,
        name="Investor Pro",
        role=Role.PROVIDER,
        quotas=Quotas(profile_views=UNBOUNDED, contacts=UNBOUNDED),
        features=(
            "Unlimited startup access",
            "Advanced AI scoring (Team/Risk)",
            "Deal-flow analytics",
            "CRM-style tracking",
        ),
        base_price=9999,
        is_popular=True,
    ),
    TierId.INSTITUTIONAL: TierDefinition(
        id=TierId.INSTITUTIONAL,
        name="Institutional / VC+",
        role=Role.PROVIDER,
        quotas=Quotas(profile_views=UNBOUNDED, contacts=UNBOUNDED),
        features=(
            "Custom AI thesis matching",
            "API & data export",
            "Multiple team seats",
            "White-label reports",
        ),
        base_price=24999,
    ),
}


def role_family(role: Role | str | None) -> Role:
    """Catalog family a role buys from. Operators and unknown roles use the provider catalog."""
    if role == Role.SEEKER:
        return Role.SEEKER
    return Role.PROVIDER


def tiers_for_role(role: Role | str | None) -> list[TierDefinition]:
    """Return the tiers of a role family ordered by base price (pricing page order)."""
    family = role_family(role)
    return sorted(
        (tier for tier in TIERS.values() if tier.role == family),
        key=lambda tier: tier.base_price,
    )


def free_tier(role: Role | str | None) -> TierDefinition:
    """Lowest free tier of the role family."""
    return tiers_for_role(role)[0]


def get_tier(tier_id: TierId | str | None, role: Role | str | None = None) -> TierDefinition:
    """Look up a tier, falling back to the role family's free tier.

    Args:
        tier_id: Tier tag (enum member or raw string from storage)
        role: Account role, used only to pick the fallback family

    Returns:
        The matching TierDefinition, never None
    """
    try:
        return TIERS[TierId(tier_id)]
    except ValueError:
        return free_tier(role)


def get_quota(tier_id: TierId | str | None, metric: Metric, role: Role | str | None = None) -> int:
    """Return the quota for a metric (UNBOUNDED for unlimited)."""
    return getattr(get_tier(tier_id, role).quotas, metric)


def is_unbounded(count: int) -> bool:
    return count == UNBOUNDED


def has_feature(tier_id: TierId | str | None, feature: str, role: Role | str | None = None) -> bool:
    """Case-insensitive substring match against the tier's feature descriptions.

    Deliberately loose: pricing copy doubles as the feature flag, so
    ``has_feature(tier, "warm intro")`` is true for Fundraise Pro.
    """
    if not feature:
        return False
    needle = feature.lower()
    return any(needle in description.lower() for description in get_tier(tier_id, role).features)
