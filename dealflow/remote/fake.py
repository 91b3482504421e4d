"""In-memory authoritative test doubles for the remote contracts.

Scenario-based, like the rest of the engine's fakes:
- happy_path: behaves like the real service, including conflict arbitration
- unavailable: every call raises RemoteUnavailableError

The scenario can be switched mid-test by assigning ``.scenario``.
"""

import uuid
from collections.abc import Callable
from datetime import UTC, datetime

from dealflow.core.exceptions import AlreadyExistsError, NotFoundError, RemoteUnavailableError
from dealflow.schemas.relationships import ConnectionRecord

VALID_SCENARIOS = {"happy_path", "unavailable"}


def _check_scenario(scenario: str) -> None:
    if scenario not in VALID_SCENARIOS:
        raise ValueError(f"Unknown scenario: {scenario}. Valid scenarios: {VALID_SCENARIOS}")


class InMemoryRelationshipService:
    """Dict-backed relationship service enforcing one record per unordered pair."""

    def __init__(self, scenario: str = "happy_path", clock: Callable[[], datetime] | None = None):
        _check_scenario(scenario)
        self.scenario = scenario
        self.clock = clock or (lambda: datetime.now(UTC))
        self.records: dict[str, ConnectionRecord] = {}
        self.calls: list[tuple[str, tuple]] = []

    def _enter(self, operation: str, *args) -> None:
        self.calls.append((operation, args))
        if self.scenario == "unavailable":
            raise RemoteUnavailableError("Relationship service is unavailable. Please try again.")

    def _find_pair(self, account_a: str, account_b: str) -> ConnectionRecord | None:
        for record in self.records.values():
            if {record.initiator_id, record.recipient_id} == {account_a, account_b}:
                return record
        return None

    def _require(self, connection_id: str) -> ConnectionRecord:
        record = self.records.get(connection_id)
        if record is None:
            raise NotFoundError("Connection no longer exists")
        return record

    async def create_connection(self, initiator_id: str, recipient_id: str) -> str:
        self._enter("create_connection", initiator_id, recipient_id)

        existing = self._find_pair(initiator_id, recipient_id)
        if existing is not None:
            if existing.status in ("pending", "accepted"):
                raise AlreadyExistsError("A connection already exists between these accounts")
            # Rejected leftovers are cleared so the pair can start over
            del self.records[existing.id]

        connection_id = str(uuid.uuid4())
        self.records[connection_id] = ConnectionRecord(
            id=connection_id,
            initiator_id=initiator_id,
            recipient_id=recipient_id,
            status="pending",
            created_at=self.clock(),
        )
        return connection_id

    async def get_connection(self, account_a: str, account_b: str) -> ConnectionRecord | None:
        self._enter("get_connection", account_a, account_b)
        record = self._find_pair(account_a, account_b)
        return record.model_copy() if record else None

    async def update_connection_status(self, connection_id: str, status: str) -> None:
        self._enter("update_connection_status", connection_id, status)
        if status not in ("accepted", "rejected"):
            raise ValueError(f"Unsupported connection status: {status}")
        record = self._require(connection_id)
        self.records[connection_id] = record.model_copy(update={"status": status})

    async def mark_deal_closed(self, connection_id: str) -> None:
        self._enter("mark_deal_closed", connection_id)
        record = self._require(connection_id)
        if record.status != "accepted":
            raise NotFoundError("No accepted connection to close a deal on")
        if record.deal_closed:
            return
        self.records[connection_id] = record.model_copy(
            update={"deal_closed": True, "deal_closed_at": self.clock()}
        )

    async def delete_connection(self, connection_id: str) -> None:
        self._enter("delete_connection", connection_id)
        self._require(connection_id)
        del self.records[connection_id]

    async def list_connections(self, account_id: str) -> list[ConnectionRecord]:
        self._enter("list_connections", account_id)
        return [
            record.model_copy()
            for record in self.records.values()
            if account_id in (record.initiator_id, record.recipient_id)
        ]


class InMemorySubscriptionStore:
    """Dict-backed subscription record store."""

    def __init__(self, tiers: dict[str, str] | None = None, scenario: str = "happy_path"):
        _check_scenario(scenario)
        self.scenario = scenario
        self.tiers: dict[str, str] = dict(tiers or {})

    def _enter(self) -> None:
        if self.scenario == "unavailable":
            raise RemoteUnavailableError("Subscription service is unavailable. Please try again.")

    async def get_tier(self, account_id: str) -> str | None:
        self._enter()
        return self.tiers.get(account_id)

    async def set_tier(self, account_id: str, tier_id: str) -> None:
        self._enter()
        self.tiers[account_id] = tier_id
