import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.service import create_audit_log, request_origin
from app.common.audit import get_changes
from app.common.pagination import PaginatedResponse
from app.database import get_db
from app.dependencies import LedgerDep
from app.matters.models import MatterStatus
from app.matters.schemas import MatterCreate, MatterDetailResponse, MatterListItem, MatterResponse, MatterUpdate
from app.matters.service import create_matter, get_matter, get_matter_activity, get_matters, update_matter
from app.trust.balance import close_matter, get_matter_balance, get_matter_balances
from app.trust.schemas import HoldResponse, TransactionResponse

router = APIRouter()

TRACKED_FIELDS = ["name", "description", "status", "practice_area", "responsible_attorney"]


@router.get("", response_model=PaginatedResponse)
async def list_matters(
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = 1,
    page_size: int = 25,
    search: Optional[str] = None,
    status: Optional[MatterStatus] = None,
    client_id: Optional[uuid.UUID] = None,
):
    matters, total = await get_matters(db, page, page_size, search, status, client_id)
    balances = await get_matter_balances(db, [m.id for m in matters])
    items = []
    for m in matters:
        balance = balances[m.id]
        item = MatterListItem(
            **MatterResponse.model_validate(m).model_dump(),
            client_name=m.client.name if m.client else None,
            balance_cents=balance.balance_cents,
            held_cents=balance.held_cents,
            available_cents=balance.available_cents,
        )
        items.append(item.model_dump())
    return PaginatedResponse.create(items=items, total=total, page=page, page_size=page_size)


@router.get("/{matter_id}", response_model=MatterDetailResponse)
async def get_matter_detail(
    matter_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    matter = await get_matter(db, matter_id)
    if matter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Matter not found")

    balance = await get_matter_balance(db, matter.id)
    transactions, holds = await get_matter_activity(db, matter.id)
    return MatterDetailResponse(
        **MatterResponse.model_validate(matter).model_dump(),
        client_name=matter.client.name if matter.client else None,
        **balance.as_dict(),
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        holds=[HoldResponse.model_validate(h) for h in holds],
    )


@router.post("", response_model=MatterResponse, status_code=status.HTTP_201_CREATED)
async def create_new_matter(
    data: MatterCreate,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    ledger: LedgerDep,
):
    matter, new_client = await create_matter(db, data, ledger)
    origin = request_origin(request)
    if new_client is not None:
        await create_audit_log(
            db, "client", new_client.id, "create",
            details={"name": new_client.name, "email": new_client.email, "created_with_matter": str(matter.id)},
            **origin,
        )
    await create_audit_log(
        db, "matter", matter.id, "create",
        details={
            "name": matter.name,
            "matter_number": matter.matter_number,
            "client_id": str(matter.client_id),
            "practice_area": matter.practice_area,
            "responsible_attorney": matter.responsible_attorney,
            "external_account_id": matter.external_account_id,
        },
        **origin,
    )
    return matter


@router.put("/{matter_id}", response_model=MatterResponse)
async def update_existing_matter(
    matter_id: uuid.UUID,
    data: MatterUpdate,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    matter = await get_matter(db, matter_id)
    if matter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Matter not found")

    before = {field: getattr(matter, field) for field in TRACKED_FIELDS}
    updated = await update_matter(db, matter_id, data)
    await create_audit_log(
        db, "matter", matter_id, "update",
        details={"changes": get_changes(before, data.model_dump(exclude_unset=True), TRACKED_FIELDS)},
        **request_origin(request),
    )
    return updated


@router.delete("/{matter_id}", response_model=MatterResponse)
async def close_existing_matter(
    matter_id: uuid.UUID,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    matter = await get_matter(db, matter_id)
    if matter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Matter not found")
    previous_status = matter.status

    closed = await close_matter(db, matter_id)
    await create_audit_log(
        db, "matter", matter_id, "close",
        details={"previous_status": previous_status.value, "name": closed.name},
        **request_origin(request),
    )
    return closed
