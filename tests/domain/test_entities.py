"""Tests for the account and entity models."""

import pytest
from pydantic import ValidationError

from dealflow.domain.entities import (
    Account,
    EntitlementSubject,
    Provider,
    Seeker,
    counterpart_role,
    parse_entity,
)
from dealflow.domain.pricing import Region
from dealflow.domain.tiers import Role, TierId

pytestmark = pytest.mark.unit


def test_parse_entity_selects_provider_variant():
    entity = parse_entity({"kind": "provider", "id": "inv-1", "name": "Acme Capital", "tier_id": "investor_pro"})
    assert isinstance(entity, Provider)
    assert entity.tier_id == TierId.INVESTOR_PRO


def test_parse_entity_selects_seeker_variant():
    entity = parse_entity({"kind": "seeker", "id": "st-1", "name": "Rocket", "region": "UAE"})
    assert isinstance(entity, Seeker)
    assert entity.region == Region.UAE


def test_parse_entity_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        parse_entity({"kind": "operator", "id": "x", "name": "x"})


def test_both_variants_satisfy_entitlement_subject():
    assert isinstance(Provider(id="a", name="A"), EntitlementSubject)
    assert isinstance(Seeker(id="b", name="B"), EntitlementSubject)


def test_account_defaults_to_india():
    account = Account(id="acc-1", role=Role.SEEKER)
    assert account.region == Region.INDIA
    assert account.tier_id is None


def test_counterpart_role():
    assert counterpart_role(Role.PROVIDER) == Role.SEEKER
    assert counterpart_role(Role.SEEKER) == Role.PROVIDER
    assert counterpart_role(Role.OPERATOR) is None
