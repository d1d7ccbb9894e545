from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class LedgerBalance:
    account_id: str
    balance_cents: int
    available_cents: int
    pending_cents: int = 0

    @property
    def held_cents(self) -> int:
        return self.balance_cents - self.available_cents


@dataclass(frozen=True)
class ConnectionResult:
    success: bool
    message: str


@dataclass(frozen=True)
class TrustAccountSummary:
    trust_account: LedgerBalance
    sub_accounts: list[dict] = field(default_factory=list)
    total_balance_cents: int = 0
    total_available_cents: int = 0

    @property
    def total_held_cents(self) -> int:
        return self.total_balance_cents - self.total_available_cents


class TrustLedgerClient(ABC):
    """Capability interface for an external trust ledger that mirrors local activity.

    Write methods return the external id of the created object. Failures
    raise ``LedgerServiceError``; callers decide whether that is fatal.
    """

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        ...

    @abstractmethod
    async def create_sub_account(
        self, name: str, matter_id: str, client_id: str, matter_number: Optional[str] = None
    ) -> Optional[str]:
        ...

    @abstractmethod
    async def get_account_balance(self, account_id: str) -> Optional[LedgerBalance]:
        ...

    async def verify_available_funds(self, account_id: str, amount_cents: int) -> Optional[LedgerBalance]:
        """Return the ledger's balance for ``account_id``; compare against ``amount_cents`` at the call site."""
        return await self.get_account_balance(account_id)

    @abstractmethod
    async def create_charge(
        self,
        account_id: str,
        amount_cents: int,
        description: str,
        payor: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> Optional[str]:
        ...

    @abstractmethod
    async def create_disbursement(
        self,
        account_id: str,
        amount_cents: int,
        description: str,
        payee: Optional[str] = None,
        check_number: Optional[str] = None,
    ) -> Optional[str]:
        ...

    @abstractmethod
    async def create_hold(self, account_id: str, amount_cents: int, hold_type: str, description: str) -> Optional[str]:
        ...

    @abstractmethod
    async def release_hold(self, hold_id: str, reason: str) -> None:
        ...

    @abstractmethod
    async def list_sub_accounts(self) -> list[dict]:
        ...

    @abstractmethod
    async def test_connection(self) -> ConnectionResult:
        ...

    @abstractmethod
    async def get_trust_account_summary(self) -> Optional[TrustAccountSummary]:
        ...

    async def aclose(self) -> None:
        return None
