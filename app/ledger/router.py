from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.service import create_audit_log, request_origin
from app.database import get_db
from app.dependencies import LedgerDep, TrustContextDep
from app.ledger.schemas import (
    ConnectionTestResponse,
    LedgerStatusResponse,
    SyncRequest,
    SyncResponse,
    SyncStatusResponse,
)
from app.ledger.service import get_ledger_status, get_sync_status, sync_matters, check_ledger_connection

router = APIRouter()


@router.get("/status", response_model=LedgerStatusResponse)
async def ledger_status(context: TrustContextDep, ledger: LedgerDep):
    return await get_ledger_status(context, ledger)


@router.post("/test", response_model=ConnectionTestResponse)
async def ledger_test(ledger: LedgerDep):
    return await check_ledger_connection(ledger)


@router.get("/sync", response_model=SyncStatusResponse)
async def ledger_sync_status(db: Annotated[AsyncSession, Depends(get_db)], ledger: LedgerDep):
    return await get_sync_status(db, ledger)


@router.post("/sync", response_model=SyncResponse)
async def ledger_sync(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    ledger: LedgerDep,
    data: Annotated[Optional[SyncRequest], Body()] = None,
):
    if not ledger.is_configured:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Trust ledger integration not configured")

    results = await sync_matters(db, ledger, data.matter_id if data else None)
    if not results:
        return SyncResponse(success=True, message="No matters require syncing", synced=0)

    for result in results:
        if result.success:
            await create_audit_log(
                db, "matter", result.matter_id, "ledger_sync",
                details={"external_account_id": result.external_account_id},
                **request_origin(request),
            )

    synced = sum(1 for r in results if r.success)
    failed = len(results) - synced
    message = f"Synced {synced} matters" + (f", {failed} failed" if failed else "")
    return SyncResponse(success=failed == 0, message=message, synced=synced, failed=failed, results=results)
