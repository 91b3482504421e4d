"""Account and entity models.

Providers (investors) and seekers (startups) are distinct shapes that share the
handful of fields the entitlement gate reads. They are modelled as a tagged
union discriminated on ``kind`` so callers never rely on two dict shapes
happening to line up.
"""

from typing import Annotated, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from dealflow.domain.pricing import DEFAULT_REGION, Region
from dealflow.domain.tiers import Role, TierId


@runtime_checkable
class EntitlementSubject(Protocol):
    """Fields the entitlement gate needs from any account-backed entity."""

    id: str
    tier_id: TierId | None
    region: Region


class Account(BaseModel):
    """The signed-in account. Exactly one tier and region are active at a time."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    tier_id: TierId | None = None
    region: Region = DEFAULT_REGION


class Provider(BaseModel):
    """Capital provider profile (investor)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["provider"] = "provider"
    id: str
    name: str
    tier_id: TierId | None = None
    region: Region = DEFAULT_REGION
    firm: str | None = None
    ticket_size_min: int | None = None
    ticket_size_max: int | None = None
    sectors: tuple[str, ...] = ()


class Seeker(BaseModel):
    """Venture profile (startup) raising capital."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["seeker"] = "seeker"
    id: str
    name: str
    tier_id: TierId | None = None
    region: Region = DEFAULT_REGION
    stage: str | None = None
    sector: str | None = None
    raise_amount: int | None = None


Entity = Annotated[Provider | Seeker, Field(discriminator="kind")]

_entity_adapter: TypeAdapter[Provider | Seeker] = TypeAdapter(Entity)


def parse_entity(data: dict) -> Provider | Seeker:
    """Validate a raw profile payload into the matching variant by its ``kind`` tag."""
    return _entity_adapter.validate_python(data)


def counterpart_role(role: Role) -> Role | None:
    """Role whose profiles an account browses (providers browse seekers and vice versa)."""
    if role == Role.PROVIDER:
        return Role.SEEKER
    if role == Role.SEEKER:
        return Role.PROVIDER
    return None
