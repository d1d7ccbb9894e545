from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.ledger.clients import TrustLedgerClient, build_ledger_client
from app.settings.service import TrustContext, load_trust_context


async def get_trust_context(db: Annotated[AsyncSession, Depends(get_db)]) -> TrustContext:
    return await load_trust_context(db)


async def get_ledger_client(
    context: Annotated[TrustContext, Depends(get_trust_context)],
) -> AsyncGenerator[TrustLedgerClient, None]:
    client = build_ledger_client(context.external_trust_account_id, context.external_operating_account_id)
    try:
        yield client
    finally:
        await client.aclose()


TrustContextDep = Annotated[TrustContext, Depends(get_trust_context)]
LedgerDep = Annotated[TrustLedgerClient, Depends(get_ledger_client)]
