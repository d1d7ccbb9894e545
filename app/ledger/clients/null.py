from typing import Optional

from .base import ConnectionResult, LedgerBalance, TrustAccountSummary, TrustLedgerClient


class NullTrustLedgerClient(TrustLedgerClient):
    """Stand-in used when no ledger API key is configured. Every call is a no-op."""

    @property
    def is_configured(self) -> bool:
        return False

    async def create_sub_account(
        self, name: str, matter_id: str, client_id: str, matter_number: Optional[str] = None
    ) -> Optional[str]:
        return None

    async def get_account_balance(self, account_id: str) -> Optional[LedgerBalance]:
        return None

    async def create_charge(self, account_id, amount_cents, description, payor=None, reference=None) -> Optional[str]:
        return None

    async def create_disbursement(
        self, account_id, amount_cents, description, payee=None, check_number=None
    ) -> Optional[str]:
        return None

    async def create_hold(self, account_id, amount_cents, hold_type, description) -> Optional[str]:
        return None

    async def release_hold(self, hold_id: str, reason: str) -> None:
        return None

    async def list_sub_accounts(self) -> list[dict]:
        return []

    async def test_connection(self) -> ConnectionResult:
        return ConnectionResult(success=False, message="API key not configured")

    async def get_trust_account_summary(self) -> Optional[TrustAccountSummary]:
        return None
