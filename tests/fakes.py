"""
Test doubles for the external collaborators: the trust ledger and the
document extraction model.
"""

import itertools
import json
from typing import Optional

from app.common.exceptions import LedgerServiceError
from app.documents.extractor import parse_matter_output
from app.documents.schemas import ExtractedDocument, ExtractedMatterDocument
from app.ledger.clients import ConnectionResult, LedgerBalance, TrustAccountSummary, TrustLedgerClient


class FakeLedger(TrustLedgerClient):
    """Trust ledger double keeping balances in memory.

    Flip the ``fail_*`` flags to make the matching calls raise
    ``LedgerServiceError``.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self.balances: dict[str, int] = {}
        self.holds: dict[str, tuple[str, int]] = {}
        self.calls: list[tuple] = []
        self.fail_balance = False
        self.fail_disbursements = False
        self.fail_charges = False
        self.fail_sub_accounts = False
        self.fail_holds = False

    def _next(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    @property
    def is_configured(self) -> bool:
        return True

    def held(self, account_id: str) -> int:
        return sum(amount for acct, amount in self.holds.values() if acct == account_id)

    async def create_sub_account(self, name, matter_id, client_id, matter_number=None) -> Optional[str]:
        self.calls.append(("create_sub_account", name))
        if self.fail_sub_accounts:
            raise LedgerServiceError("Sub-account creation failed", "SERVER_ERROR", 500)
        account_id = self._next("acct")
        self.balances[account_id] = 0
        return account_id

    async def get_account_balance(self, account_id: str) -> Optional[LedgerBalance]:
        self.calls.append(("get_account_balance", account_id))
        if self.fail_balance:
            raise LedgerServiceError("Ledger unreachable", "NETWORK_ERROR")
        balance = self.balances.get(account_id, 0)
        return LedgerBalance(account_id, balance, balance - self.held(account_id))

    async def create_charge(self, account_id, amount_cents, description, payor=None, reference=None):
        self.calls.append(("create_charge", account_id, amount_cents))
        if self.fail_charges:
            raise LedgerServiceError("Charge failed", "SERVER_ERROR", 500)
        self.balances[account_id] = self.balances.get(account_id, 0) + amount_cents
        return self._next("chg")

    async def create_disbursement(self, account_id, amount_cents, description, payee=None, check_number=None):
        self.calls.append(("create_disbursement", account_id, amount_cents))
        if self.fail_disbursements:
            raise LedgerServiceError("Transfer rejected", "SERVER_ERROR", 500)
        self.balances[account_id] = self.balances.get(account_id, 0) - amount_cents
        return self._next("trf")

    async def create_hold(self, account_id, amount_cents, hold_type, description):
        self.calls.append(("create_hold", account_id, amount_cents))
        if self.fail_holds:
            raise LedgerServiceError("Hold rejected", "SERVER_ERROR", 500)
        hold_id = self._next("hold")
        self.holds[hold_id] = (account_id, amount_cents)
        return hold_id

    async def release_hold(self, hold_id, reason) -> None:
        self.calls.append(("release_hold", hold_id))
        self.holds.pop(hold_id, None)

    async def list_sub_accounts(self) -> list[dict]:
        return [{"id": account_id, "name": account_id} for account_id in self.balances]

    async def test_connection(self) -> ConnectionResult:
        return ConnectionResult(success=True, message="Connected to trust ledger")

    async def get_trust_account_summary(self) -> Optional[TrustAccountSummary]:
        total = sum(self.balances.values())
        held = sum(amount for _, amount in self.holds.values())
        return TrustAccountSummary(
            trust_account=LedgerBalance("trust", total, total - held),
            sub_accounts=await self.list_sub_accounts(),
            total_balance_cents=total,
            total_available_cents=total - held,
        )


class FakeExtractor:
    def __init__(self, payload: dict):
        self.payload = payload
        self.seen: list[tuple[str, str]] = []

    async def extract(self, text: str, matter_name: str) -> ExtractedDocument:
        self.seen.append((text, matter_name))
        return ExtractedDocument.model_validate(self.payload)

    async def extract_matter(self, text: str) -> ExtractedMatterDocument:
        self.seen.append((text, ""))
        return parse_matter_output(json.dumps(self.payload))
