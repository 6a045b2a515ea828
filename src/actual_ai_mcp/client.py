"""Async client for the Actual Budget REST API (actual-http-api)."""

import logging
from typing import Any

import httpx


logger = logging.getLogger(__name__)


class ActualAPIError(Exception):
    """Error while talking to the Actual Budget API."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ActualClient:
    """Client for one budget file served by actual-http-api."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        budget_sync_id: str,
        encryption_password: str | None = None,
        timeout: float = 30.0,
    ):
        """Initialize client.

        Args:
            base_url: API root, e.g. "http://localhost:5007/v1".
            api_key: Value for the x-api-key header.
            budget_sync_id: Sync ID of the budget file.
            encryption_password: Password for end-to-end encrypted budgets.
            timeout: Request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.budget_sync_id = budget_sync_id
        self.encryption_password = encryption_password
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {
            "x-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        if self.encryption_password:
            headers["budget-encryption-password"] = self.encryption_password
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request for this budget and return the "data" member.

        Raises:
            ActualAPIError: On transport errors, non-2xx status or invalid JSON.
        """
        url = f"{self.base_url}/budgets/{self.budget_sync_id}{path}"
        logger.debug("%s %s params=%s", method, path, params)

        async with httpx.AsyncClient() as client:
            try:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=self._headers(),
                    timeout=self.timeout,
                )
            except httpx.HTTPError as e:
                raise ActualAPIError(f"HTTP error during {method} {path}: {e}") from e

        if not 200 <= response.status_code < 300:
            raise ActualAPIError(
                f"API returned status {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ActualAPIError(f"Invalid JSON response: {e}") from e

        if isinstance(payload, dict):
            return payload.get("data")
        return payload

    async def get_month(self, month: str) -> dict[str, Any]:
        """Budget month with its category groups (month as YYYY-MM)."""
        return await self._request("GET", f"/months/{month}")

    async def get_accounts(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/accounts") or []

    async def get_account_balance(self, account_id: str) -> int | None:
        return await self._request("GET", f"/accounts/{account_id}/balance")

    async def get_transactions(
        self,
        account_id: str,
        since_date: str,
        until_date: str | None = None,
    ) -> list[dict[str, Any]]:
        """Transactions of one account between two ISO dates (inclusive)."""
        params = {"since_date": since_date}
        if until_date:
            params["until_date"] = until_date
        return await self._request("GET", f"/accounts/{account_id}/transactions", params=params) or []

    async def add_transaction(self, account_id: str, transaction: dict[str, Any]) -> Any:
        return await self._request(
            "POST",
            f"/accounts/{account_id}/transactions",
            json={"transaction": transaction},
        )

    async def get_payees(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/payees") or []

    async def create_payee(self, payee: dict[str, Any]) -> str:
        """Create a payee and return its new id."""
        payee_id = await self._request("POST", "/payees", json={"payee": payee})
        logger.info("Created payee %r (%s)", payee.get("name"), payee_id)
        return payee_id

    async def get_categories(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/categories") or []

    async def get_category_groups(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/categorygroups") or []

    async def get_schedules(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/schedules") or []
