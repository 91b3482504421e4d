"""Entitlement, quota and relationship lifecycle engine for the matchmaking platform."""

from dealflow.domain.entities import Account, Provider, Seeker
from dealflow.domain.pricing import Region, format_price
from dealflow.domain.tiers import UNBOUNDED, Role, TierId, get_quota, get_tier, has_feature
from dealflow.session import EntitlementSession, open_session

__all__ = [
    "UNBOUNDED",
    "Account",
    "EntitlementSession",
    "Provider",
    "Region",
    "Role",
    "Seeker",
    "TierId",
    "format_price",
    "get_quota",
    "get_tier",
    "has_feature",
    "open_session",
]
