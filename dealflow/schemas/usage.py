"""Usage ledger schemas."""

from pydantic import BaseModel, ConfigDict, Field


class UsageSnapshot(BaseModel):
    """Point-in-time view of an account's metered usage.

    Serialises to the persisted shape
    ``{profileViews, contacts, viewedIds, contactedIds}`` via ``by_alias``.
    """

    model_config = ConfigDict(populate_by_name=True)

    profile_views: int = Field(default=0, alias="profileViews")
    contacts: int = 0
    viewed_ids: list[str] = Field(default_factory=list, alias="viewedIds")
    contacted_ids: list[str] = Field(default_factory=list, alias="contactedIds")


class UsageMeter(BaseModel):
    """One bar of the plan-usage widget."""

    metric: str
    label: str
    used: int
    limit: int | None  # None when unbounded
    remaining: int | None
    percentage: float
    unbounded: bool
