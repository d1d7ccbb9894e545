import asyncio
import logging
from typing import Any, Optional

import httpx

from app.common.exceptions import LedgerServiceError
from app.config import settings

from .base import ConnectionResult, LedgerBalance, TrustAccountSummary, TrustLedgerClient

logger = logging.getLogger(__name__)

SOURCE_TAG = "iolta_account_manager"


class CaseDevLedgerClient(TrustLedgerClient):
    """Case.dev Payments API: one sub-account per matter under the firm's trust account."""

    def __init__(
        self,
        api_key: str,
        trust_account_id: Optional[str] = None,
        operating_account_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.trust_account_id = trust_account_id
        self.operating_account_id = operating_account_id
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.ledger_api_base,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "X-API-Version": settings.ledger_api_version,
            },
            timeout=timeout or settings.ledger_timeout_seconds,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.trust_account_id)

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise LedgerServiceError(f"Trust ledger request timed out: {path}", "TIMEOUT") from exc
        except httpx.HTTPError as exc:
            raise LedgerServiceError(f"Trust ledger unreachable: {exc}", "NETWORK_ERROR") from exc

        if resp.is_error:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            raise LedgerServiceError(
                body.get("message") or resp.reason_phrase,
                ledger_code=body.get("code") or "UNKNOWN_ERROR",
                ledger_status=resp.status_code,
                details=body.get("details"),
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise LedgerServiceError(
                f"Trust ledger returned a non-JSON response: {path}", "INVALID_RESPONSE", resp.status_code
            ) from exc
        if not isinstance(data, dict):
            raise LedgerServiceError(
                f"Trust ledger returned an unexpected response: {path}", "INVALID_RESPONSE", resp.status_code
            )
        return data

    @staticmethod
    def _id(data: dict, path: str) -> str:
        value = data.get("id")
        if not value or not isinstance(value, str):
            raise LedgerServiceError(f"Trust ledger response has no id: {path}", "INVALID_RESPONSE")
        return value

    def _require(self, value: Optional[str], label: str) -> str:
        if not value:
            raise LedgerServiceError(f"{label} not configured", "CONFIGURATION_ERROR", 400)
        return value

    @staticmethod
    def _to_balance(data: dict, account_id: str) -> LedgerBalance:
        if "balance" not in data:
            raise LedgerServiceError(f"Trust ledger balance missing for account {account_id}", "INVALID_RESPONSE")
        try:
            return LedgerBalance(
                account_id=data.get("account_id", account_id),
                balance_cents=int(data["balance"]),
                available_cents=int(data.get("available_balance", 0)),
                pending_cents=int(data.get("pending_balance", 0)),
            )
        except (TypeError, ValueError) as exc:
            raise LedgerServiceError(
                f"Trust ledger balance malformed for account {account_id}", "INVALID_RESPONSE"
            ) from exc

    async def create_sub_account(
        self, name: str, matter_id: str, client_id: str, matter_number: Optional[str] = None
    ) -> Optional[str]:
        parent = self._require(self.trust_account_id, "Trust account ID")
        data = await self._request(
            "POST",
            "/accounts",
            json={
                "name": name,
                "type": "sub_account",
                "parent_account_id": parent,
                "currency": "USD",
                "metadata": {
                    "matter_id": matter_id,
                    "client_id": client_id,
                    "matter_number": matter_number or "",
                    "source": SOURCE_TAG,
                },
            },
        )
        return self._id(data, "/accounts")

    async def get_account_balance(self, account_id: str) -> Optional[LedgerBalance]:
        data = await self._request("GET", f"/accounts/{account_id}/balance")
        return self._to_balance(data, account_id)

    async def create_charge(
        self,
        account_id: str,
        amount_cents: int,
        description: str,
        payor: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> Optional[str]:
        data = await self._request(
            "POST",
            "/charges",
            json={
                "account_id": account_id,
                "amount": amount_cents,
                "currency": "USD",
                "description": description,
                "party_id": payor,
                "reference": reference,
                "metadata": {"source": SOURCE_TAG, "type": "trust_deposit"},
            },
        )
        return self._id(data, "/charges")

    async def create_disbursement(
        self,
        account_id: str,
        amount_cents: int,
        description: str,
        payee: Optional[str] = None,
        check_number: Optional[str] = None,
    ) -> Optional[str]:
        operating = self._require(self.operating_account_id, "Operating account ID")
        data = await self._request(
            "POST",
            "/transfers",
            json={
                "from_account_id": account_id,
                "to_account_id": operating,
                "amount": amount_cents,
                "description": description,
                "requires_approval": True,
                "metadata": {
                    "source": SOURCE_TAG,
                    "type": "disbursement_to_operating",
                    "payee": payee or "",
                    "check_number": check_number or "",
                },
            },
        )
        return self._id(data, "/transfers")

    async def create_hold(self, account_id: str, amount_cents: int, hold_type: str, description: str) -> Optional[str]:
        data = await self._request(
            "POST",
            "/holds",
            json={
                "account_id": account_id,
                "amount": amount_cents,
                "type": hold_type,
                "description": description,
                "metadata": {"source": SOURCE_TAG},
            },
        )
        return self._id(data, "/holds")

    async def release_hold(self, hold_id: str, reason: str) -> None:
        await self._request("POST", f"/holds/{hold_id}/release", json={"reason": reason})

    async def list_sub_accounts(self) -> list[dict]:
        parent = self._require(self.trust_account_id, "Trust account ID")
        data = await self._request("GET", "/accounts", params={"type": "sub_account", "parent_account_id": parent})
        accounts = data.get("accounts") or []
        if not isinstance(accounts, list):
            raise LedgerServiceError("Trust ledger returned a malformed account list", "INVALID_RESPONSE")
        return [acc for acc in accounts if isinstance(acc, dict) and acc.get("id")]

    async def test_connection(self) -> ConnectionResult:
        if not self.api_key:
            return ConnectionResult(success=False, message="API key not configured")
        try:
            if self.trust_account_id:
                await self._request("GET", f"/accounts/{self.trust_account_id}")
                return ConnectionResult(success=True, message="Connected to trust ledger")
            await self._request("GET", "/health")
            return ConnectionResult(success=True, message="API key valid, trust account not configured")
        except LedgerServiceError as exc:
            logger.warning("Trust ledger connection test failed: %s", exc.message)
            return ConnectionResult(success=False, message=f"API Error: {exc.message} ({exc.ledger_code})")

    async def get_trust_account_summary(self) -> Optional[TrustAccountSummary]:
        parent = self._require(self.trust_account_id, "Trust account ID")
        trust_balance, accounts = await asyncio.gather(
            self.get_account_balance(parent),
            self.list_sub_accounts(),
        )
        balances = await asyncio.gather(*(self.get_account_balance(acc["id"]) for acc in accounts))
        sub_accounts = [
            {
                "id": acc["id"],
                "name": acc.get("name"),
                "metadata": acc.get("metadata") or {},
                "balance_cents": bal.balance_cents,
                "available_cents": bal.available_cents,
            }
            for acc, bal in zip(accounts, balances)
        ]
        return TrustAccountSummary(
            trust_account=trust_balance,
            sub_accounts=sub_accounts,
            total_balance_cents=sum(b.balance_cents for b in balances),
            total_available_cents=sum(b.available_cents for b in balances),
        )

    async def aclose(self) -> None:
        await self._client.aclose()
