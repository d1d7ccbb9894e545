import uuid
from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.service import create_audit_log, request_origin
from app.common.pagination import PaginatedResponse
from app.database import get_db
from app.dependencies import LedgerDep
from app.trust.balance import release_hold
from app.trust.models import HoldStatus, TransactionType
from app.trust.schemas import (
    HoldCreate,
    HoldReleaseRequest,
    HoldReleaseResponse,
    HoldResponse,
    HoldUpdate,
    TransactionCreate,
    TransactionListItem,
    TransactionResponse,
)
from app.trust.service import (
    cancel_hold,
    create_hold,
    create_transaction,
    get_hold,
    get_holds,
    get_transaction,
    get_transactions,
    update_hold,
)

transactions_router = APIRouter()
holds_router = APIRouter()


# --- Transactions ---


@transactions_router.get("", response_model=PaginatedResponse)
async def list_transactions(
    db: Annotated[AsyncSession, Depends(get_db)],
    matter_id: Optional[uuid.UUID] = None,
    type: Optional[TransactionType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = 1,
    page_size: int = 50,
):
    rows, total = await get_transactions(db, matter_id, type, start_date, end_date, page, page_size)
    items = []
    for txn, running_balance in rows:
        item = TransactionListItem(
            **TransactionResponse.model_validate(txn).model_dump(),
            matter_name=txn.matter.name,
            matter_number=txn.matter.matter_number,
            client_id=txn.matter.client_id,
            client_name=txn.matter.client.name if txn.matter.client else None,
            running_balance_cents=running_balance,
        )
        items.append(item.model_dump())
    return PaginatedResponse.create(items=items, total=total, page=page, page_size=page_size)


@transactions_router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction_detail(
    transaction_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    transaction = await get_transaction(db, transaction_id)
    if transaction is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return transaction


@transactions_router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_new_transaction(
    data: TransactionCreate,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    ledger: LedgerDep,
):
    transaction = await create_transaction(db, data, ledger)
    await create_audit_log(
        db, "transaction", transaction.id, "create",
        details={
            "type": transaction.type.value,
            "amount_cents": transaction.amount_cents,
            "description": transaction.description,
            "matter_id": str(transaction.matter_id),
            "matter_name": transaction.matter_name,
            "payee": transaction.payee,
            "payor": transaction.payor,
            "check_number": transaction.check_number,
            "external_transaction_id": transaction.external_transaction_id,
        },
        **request_origin(request),
    )
    return transaction


# --- Holds ---


@holds_router.get("", response_model=PaginatedResponse)
async def list_holds(
    db: Annotated[AsyncSession, Depends(get_db)],
    matter_id: Optional[uuid.UUID] = None,
    status: Optional[HoldStatus] = None,
    page: int = 1,
    page_size: int = 50,
):
    holds, total = await get_holds(db, matter_id, status, page, page_size)
    items = [HoldResponse.model_validate(h).model_dump() for h in holds]
    return PaginatedResponse.create(items=items, total=total, page=page, page_size=page_size)


@holds_router.get("/{hold_id}", response_model=HoldResponse)
async def get_hold_detail(
    hold_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    hold = await get_hold(db, hold_id)
    if hold is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hold not found")
    return hold


@holds_router.post("", response_model=HoldResponse, status_code=status.HTTP_201_CREATED)
async def create_new_hold(
    data: HoldCreate,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    ledger: LedgerDep,
):
    hold = await create_hold(db, data, ledger)
    await create_audit_log(
        db, "hold", hold.id, "create",
        details={
            "type": hold.type.value,
            "amount_cents": hold.amount_cents,
            "description": hold.description,
            "matter_id": str(hold.matter_id),
            "matter_name": hold.matter_name,
            "external_hold_id": hold.external_hold_id,
        },
        **request_origin(request),
    )
    return hold


@holds_router.put("/{hold_id}", response_model=HoldResponse)
async def update_existing_hold(
    hold_id: uuid.UUID,
    data: HoldUpdate,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    ledger: LedgerDep,
):
    existing = await get_hold(db, hold_id)
    if existing is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hold not found")
    previous_status = existing.status

    hold, release = await update_hold(db, hold_id, data, ledger)
    await create_audit_log(
        db, "hold", hold_id, release.action if release else "update",
        details={
            "previous_status": previous_status.value,
            "new_status": hold.status.value,
            "description": data.description,
            "release_reason": data.release_reason,
            "amount_cents": hold.amount_cents,
        },
        **request_origin(request),
    )
    return hold


@holds_router.delete("/{hold_id}", response_model=HoldResponse)
async def cancel_existing_hold(
    hold_id: uuid.UUID,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    ledger: LedgerDep,
):
    hold = await cancel_hold(db, hold_id, ledger)
    await create_audit_log(
        db, "hold", hold_id, "cancel",
        details={"amount_cents": hold.amount_cents, "type": hold.type.value, "matter_name": hold.matter_name},
        **request_origin(request),
    )
    return hold


@holds_router.post("/{hold_id}/release", response_model=HoldReleaseResponse)
async def release_existing_hold(
    hold_id: uuid.UUID,
    data: HoldReleaseRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    ledger: LedgerDep,
):
    original = await get_hold(db, hold_id)
    if original is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hold not found")
    original_amount = original.amount_cents

    release = await release_hold(
        db, hold_id, data.release_amount_cents, data.release_reason, data.released_by, ledger
    )
    await create_audit_log(
        db, "hold", hold_id, release.action,
        details={
            "original_amount_cents": original_amount,
            "released_cents": release.released_cents,
            "remaining_cents": release.remaining_cents,
            "type": release.hold.type.value,
            "release_reason": data.release_reason,
            "released_by": data.released_by,
            "matter_name": release.hold.matter_name,
            "external_hold_id": release.hold.external_hold_id,
            "ledger_synced": release.ledger_synced,
        },
        **request_origin(request),
    )
    return HoldReleaseResponse(
        **HoldResponse.model_validate(release.hold).model_dump(),
        released_cents=release.released_cents,
        remaining_cents=release.remaining_cents,
        is_partial=release.is_partial,
    )
