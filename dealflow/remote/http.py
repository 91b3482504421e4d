"""HTTP clients for a PostgREST-style backend.

Connections live in a ``connections`` table with columns
``id, sender_id, receiver_id, status, deal_closed, deal_closed_at, created_at``;
subscription tiers live in ``user_settings`` rows keyed by
``(user_id, key="subscription_tier")``.

A unique index on the unordered pair is expected server-side so concurrent
inserts for the same pair fail with 409, which maps to AlreadyExistsError.
"""

from datetime import UTC, datetime

import httpx
import structlog

from dealflow.core.config import get_settings
from dealflow.core.exceptions import (
    AlreadyExistsError,
    DealflowError,
    NotAuthorizedError,
    NotFoundError,
    RemoteUnavailableError,
)
from dealflow.schemas.relationships import ConnectionRecord

logger = structlog.get_logger(__name__)

_CONNECTION_COLUMNS = "id,status,sender_id,receiver_id,deal_closed,deal_closed_at,created_at"


class _PostgrestClient:
    """Shared request plumbing and error mapping."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        """Initialize the client.

        Args:
            base_url: REST root (e.g. https://xyz.example.co/rest/v1); defaults to settings
            api_key: Service key sent as ``apikey`` and bearer token; defaults to settings
            transport: Optional httpx transport (tests pass httpx.MockTransport)
            timeout: Per-request timeout in seconds, owned by the transport layer
        """
        settings = get_settings()
        self.base_url = (base_url or settings.relationship_api_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.relationship_api_key
        self.transport = transport
        self.timeout = timeout

    def _headers(self, prefer: str = "return=representation") -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
            "Prefer": prefer,
        }

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        data: dict | None = None,
        prefer: str = "return=representation",
    ) -> list[dict]:
        """Make a request and return the JSON rows.

        Raises:
            AlreadyExistsError: 409 conflict
            NotFoundError: 404
            NotAuthorizedError: 401 / 403
            RemoteUnavailableError: transport failure, 5xx or any other error status
        """
        if not self.base_url:
            raise RemoteUnavailableError("Relationship service is not configured")

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.request(
                    method,
                    f"{self.base_url}{path}",
                    params=params,
                    json=data,
                    headers=self._headers(prefer),
                )
        except httpx.HTTPError as exc:
            logger.warning("remote_request_failed", method=method, path=path, error=str(exc))
            raise RemoteUnavailableError("Could not reach the server. Please try again.") from exc

        if response.status_code >= 400:
            raise self._map_error(response)

        if response.status_code == 204 or not response.content:
            return []

        try:
            body = response.json()
        except ValueError as exc:
            logger.warning("remote_response_malformed", method=method, path=path, error=str(exc))
            raise RemoteUnavailableError("The server sent an unreadable response. Please try again.") from exc
        return body if isinstance(body, list) else [body]

    @staticmethod
    def _map_error(response: httpx.Response) -> DealflowError:
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = None
        message = (body.get("message") if isinstance(body, dict) else None) or response.text

        logger.warning("remote_request_rejected", status_code=status, message=message)

        if status == 409:
            return AlreadyExistsError("A connection already exists between these accounts")
        if status == 404:
            return NotFoundError("Connection no longer exists")
        if status in (401, 403):
            return NotAuthorizedError("You are not allowed to perform this action")
        return RemoteUnavailableError(f"Server error ({status}): {message}")


def _quote(value: str) -> str:
    """Quote a value for a PostgREST logical filter so reserved characters stay literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _pair_filter(account_a: str, account_b: str) -> str:
    a, b = _quote(account_a), _quote(account_b)
    return f"(and(sender_id.eq.{a},receiver_id.eq.{b}),and(sender_id.eq.{b},receiver_id.eq.{a}))"


def _to_record(row: dict) -> ConnectionRecord:
    try:
        return ConnectionRecord(
            id=str(row["id"]),
            initiator_id=row["sender_id"],
            recipient_id=row["receiver_id"],
            status=row["status"],
            deal_closed=bool(row.get("deal_closed")),
            deal_closed_at=row.get("deal_closed_at"),
            created_at=row.get("created_at"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("remote_row_malformed", error=str(exc))
        raise RemoteUnavailableError("The server sent an incomplete connection. Please try again.") from exc


class HttpRelationshipService(_PostgrestClient):
    """RelationshipService backed by the ``connections`` table."""

    def __init__(self, *args, table: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.path = f"/{table or get_settings().relationship_table}"

    async def create_connection(self, initiator_id: str, recipient_id: str) -> str:
        existing = await self.get_connection(initiator_id, recipient_id)
        if existing is not None:
            if existing.status in ("pending", "accepted"):
                raise AlreadyExistsError("A connection already exists between these accounts")
            # Recipients can't update a rejected row they didn't send; delete and re-insert
            await self.delete_connection(existing.id)

        rows = await self._request(
            "POST",
            self.path,
            data={"sender_id": initiator_id, "receiver_id": recipient_id, "status": "pending"},
        )
        if not rows or not isinstance(rows[0], dict) or "id" not in rows[0]:
            raise RemoteUnavailableError("Server did not return the new connection")
        return str(rows[0]["id"])

    async def get_connection(self, account_a: str, account_b: str) -> ConnectionRecord | None:
        rows = await self._request(
            "GET",
            self.path,
            params={"select": _CONNECTION_COLUMNS, "or": _pair_filter(account_a, account_b)},
        )
        return _to_record(rows[0]) if rows else None

    async def update_connection_status(self, connection_id: str, status: str) -> None:
        rows = await self._request(
            "PATCH",
            self.path,
            params={"id": f"eq.{connection_id}"},
            data={"status": status},
        )
        if not rows:
            raise NotFoundError("Connection no longer exists")

    async def mark_deal_closed(self, connection_id: str) -> None:
        rows = await self._request(
            "PATCH",
            self.path,
            params={"id": f"eq.{connection_id}", "status": "eq.accepted"},
            data={"deal_closed": True, "deal_closed_at": datetime.now(UTC).isoformat()},
        )
        if not rows:
            raise NotFoundError("No accepted connection to close a deal on")

    async def delete_connection(self, connection_id: str) -> None:
        rows = await self._request("DELETE", self.path, params={"id": f"eq.{connection_id}"})
        if not rows:
            raise NotFoundError("Connection no longer exists")

    async def list_connections(self, account_id: str) -> list[ConnectionRecord]:
        rows = await self._request(
            "GET",
            self.path,
            params={
                "select": _CONNECTION_COLUMNS,
                "or": f"(sender_id.eq.{_quote(account_id)},receiver_id.eq.{_quote(account_id)})",
            },
        )
        return [_to_record(row) for row in rows]


class HttpSubscriptionStore(_PostgrestClient):
    """SubscriptionStore backed by ``user_settings`` rows."""

    SETTING_KEY = "subscription_tier"

    async def get_tier(self, account_id: str) -> str | None:
        rows = await self._request(
            "GET",
            "/user_settings",
            params={"select": "value", "user_id": f"eq.{account_id}", "key": f"eq.{self.SETTING_KEY}"},
        )
        if not rows:
            return None
        try:
            return rows[0]["value"]
        except (KeyError, TypeError) as exc:
            raise RemoteUnavailableError("The server sent an incomplete setting. Please try again.") from exc

    async def set_tier(self, account_id: str, tier_id: str) -> None:
        await self._request(
            "POST",
            "/user_settings",
            params={"on_conflict": "user_id,key"},
            data={"user_id": account_id, "key": self.SETTING_KEY, "value": tier_id},
            prefer="resolution=merge-duplicates,return=representation",
        )
