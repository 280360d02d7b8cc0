"""Tedee cloud API client.

API docs: https://api.tedee.com/swagger/index.html
"""

import logging
from typing import Any

import httpx

from config import SecretsConfig
from models.lock import (
    LockDetails,
    LockState,
    Operation,
    OperationType,
    UnlockMode,
    parse_lock_state,
)
from utils.errors import DEFAULT_API_TIMEOUT, ResponseError, UnknownStateError

logger = logging.getLogger(__name__)

TEDEE_API_BASE = "https://api.tedee.com/api/v1.17"


class TedeeClient:
    """Client for the Tedee REST API.

    Every response is wrapped in an envelope
    ``{"success": bool, "result": ..., "errorMessages": [...]}``; any failure
    to obtain a successful envelope raises ResponseError.
    """

    def __init__(
        self,
        personal_key: str | None = None,
        access_token: str | None = None,
        api_url: str = TEDEE_API_BASE,
        timeout: float = DEFAULT_API_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not personal_key and not access_token:
            raise ValueError("A Tedee personal_key or access_token is required")

        self._personal_key = personal_key
        self._access_token = access_token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_headers(self) -> dict[str, str]:
        """Get API headers."""
        if self._personal_key:
            authorization = f"PersonalKey {self._personal_key}"
        else:
            authorization = f"Bearer {self._access_token}"
        return {
            "Authorization": authorization,
            "Accept": "application/json",
        }

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client exists."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._api_url,
                headers=self._get_headers(),
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        json_data: dict[str, Any] | None = None,
    ) -> Any:
        """Make an API request and return the envelope's result."""
        client = await self._ensure_client()

        try:
            response = await client.request(method, path, json=json_data)
        except httpx.RequestError as e:
            logger.error(f"Tedee request error for {method} {path}: {e}")
            raise ResponseError(f"Request failed: {e}") from e

        if response.status_code == 401:
            logger.error(f"Tedee API rejected credentials for {method} {path}")
            raise ResponseError("Unauthorized", status_code=401)
        if response.status_code == 404:
            logger.error(f"Tedee API resource not found: {method} {path}")
            raise ResponseError("Not found", status_code=404)
        if response.is_error:
            logger.error(f"Tedee API error for {method} {path}: {response.status_code} {response.text}")
            raise ResponseError(
                f"HTTP {response.status_code}", status_code=response.status_code
            )

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Tedee API returned invalid JSON for {method} {path}")
            raise ResponseError("Invalid JSON response") from e

        if not isinstance(body, dict):
            logger.error(f"Tedee API returned a non-object response for {method} {path}")
            raise ResponseError("Response is not an object")

        if body.get("success") is False:
            messages = body.get("errorMessages") or []
            logger.error(f"Tedee API reported failure for {method} {path}: {messages}")
            raise ResponseError("; ".join(str(m) for m in messages) or "Request unsuccessful")

        logger.debug(f"Tedee {method} {path} response: {body}")
        return body.get("result")

    # Queries

    async def get_lock(self, device_id: int) -> LockDetails:
        """Fetch a lock with settings and revision."""
        logger.debug(f"Fetching lock {device_id}")
        result = await self._request("GET", f"/my/lock/{device_id}")
        return LockDetails.from_api(result)

    async def get_locks(self) -> list[LockDetails]:
        """Fetch all locks of the account with details."""
        logger.debug("Fetching all locks")
        result = await self._request("GET", "/my/lock")
        return self._parse_lock_list(result)

    async def get_locks_sync(self) -> list[LockDetails]:
        """Fetch the live properties of all locks."""
        result = await self._request("GET", "/my/lock/sync")
        return self._parse_lock_list(result)

    async def get_lock_details(self, device_id: int) -> LockDetails:
        """Fetch the live properties of a single lock."""
        result = await self._request("GET", f"/my/lock/{device_id}/sync")
        return LockDetails.from_api(result)

    async def get_state(self, device_id: int) -> LockState:
        """Fetch the current state of a lock.

        Raises:
            UnknownStateError: If the state is absent or unrecognized
        """
        result = await self._request("GET", f"/my/lock/{device_id}/sync")
        if not isinstance(result, dict):
            raise ResponseError(f"Malformed lock sync result: {result!r}")

        properties = result.get("lockProperties")
        if not isinstance(properties, dict):
            raise UnknownStateError(None)
        return parse_lock_state(properties.get("state"))

    async def get_operation(self, operation_id: str) -> Operation:
        """Fetch a command operation by id."""
        if not operation_id:
            logger.error("Operation ID is blank")
            raise ResponseError("Operation ID is blank")

        result = await self._request("GET", f"/my/device/operation/{operation_id}")
        return Operation.from_api(result)

    def _parse_lock_list(self, result: Any) -> list[LockDetails]:
        """Parse a list of lock records, skipping entries with unknown states."""
        if not isinstance(result, list):
            raise ResponseError(f"Expected a list of locks, got {type(result).__name__}")

        locks = []
        for entry in result:
            try:
                locks.append(LockDetails.from_api(entry))
            except UnknownStateError as e:
                lock_id = entry.get("id") if isinstance(entry, dict) else None
                logger.warning(f"Skipping lock {lock_id}: {e.detail}")
        return locks

    # Commands

    async def submit_command(
        self,
        device_id: int,
        operation_type: OperationType,
        mode: UnlockMode | None = None,
    ) -> str:
        """Send a lock command and return the operation id."""
        payload: dict[str, Any] = {"deviceId": device_id}

        if operation_type == OperationType.CLOSE:
            path = "/my/lock/close"
        elif operation_type == OperationType.OPEN:
            path = "/my/lock/open"
            payload["openParameter"] = int(mode if mode is not None else UnlockMode.DEFAULT)
        elif operation_type == OperationType.PULL:
            path = "/my/lock/pull-spring"
        else:
            raise ValueError(f"Unsupported operation type: {operation_type}")

        logger.info(f"Sending {operation_type.name.lower()} for lock {device_id}")
        result = await self._request("POST", path, json_data=payload)

        if not isinstance(result, dict) or not result.get("operationId"):
            logger.error(f"No operation id in {operation_type.name.lower()} response: {result}")
            raise ResponseError("Missing operation id")

        return str(result["operationId"])

    async def update_lock_settings(self, device_id: int, device_settings: dict[str, Any]) -> None:
        """Update lock settings, using the current revision."""
        lock = await self.get_lock(device_id)

        logger.info(f"Updating lock settings {device_id}: {device_settings}")
        await self._request(
            "PATCH",
            "/my/lock",
            json_data={
                "id": device_id,
                "revision": lock.revision,
                "deviceSettings": device_settings,
            },
        )


def create_client(secrets: SecretsConfig, **kwargs: Any) -> TedeeClient:
    """Create a Tedee client from the secrets file."""
    tedee = secrets.tedee
    return TedeeClient(
        personal_key=tedee.get("personal_key"),
        access_token=tedee.get("access_token"),
        api_url=tedee.get("api_url", TEDEE_API_BASE),
        **kwargs,
    )
