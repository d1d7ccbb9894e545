from app.config import settings
from app.ledger.clients.base import ConnectionResult, LedgerBalance, TrustAccountSummary, TrustLedgerClient
from app.ledger.clients.casedev import CaseDevLedgerClient
from app.ledger.clients.null import NullTrustLedgerClient

__all__ = [
    "CaseDevLedgerClient",
    "ConnectionResult",
    "LedgerBalance",
    "NullTrustLedgerClient",
    "TrustAccountSummary",
    "TrustLedgerClient",
    "build_ledger_client",
]


def build_ledger_client(trust_account_id: str | None, operating_account_id: str | None) -> TrustLedgerClient:
    if not settings.ledger_api_key:
        return NullTrustLedgerClient()
    return CaseDevLedgerClient(
        api_key=settings.ledger_api_key,
        trust_account_id=trust_account_id,
        operating_account_id=operating_account_id,
    )
