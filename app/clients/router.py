import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.service import create_audit_log, request_origin
from app.clients.models import ClientStatus
from app.clients.schemas import ClientCreate, ClientDetailResponse, ClientMatterSummary, ClientResponse, ClientUpdate
from app.clients.service import archive_client, create_client, get_client, get_clients, update_client
from app.common.audit import get_changes
from app.common.pagination import PaginatedResponse
from app.database import get_db
from app.trust.balance import get_matter_balances

router = APIRouter()

TRACKED_FIELDS = ["name", "email", "phone", "address", "notes", "status"]


@router.get("", response_model=PaginatedResponse)
async def list_clients(
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = 1,
    page_size: int = 25,
    search: Optional[str] = None,
    status: Optional[ClientStatus] = None,
):
    clients, total = await get_clients(db, page, page_size, search, status)
    items = [ClientResponse.model_validate(c).model_dump() for c in clients]
    return PaginatedResponse.create(items=items, total=total, page=page, page_size=page_size)


@router.get("/{client_id}", response_model=ClientDetailResponse)
async def get_client_detail(
    client_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await get_client(db, client_id)
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    balances = await get_matter_balances(db, [m.id for m in client.matters])
    matters = [
        ClientMatterSummary(
            id=m.id,
            name=m.name,
            matter_number=m.matter_number,
            status=m.status.value,
            balance_cents=balances[m.id].balance_cents,
            available_cents=balances[m.id].available_cents,
        )
        for m in client.matters
    ]
    return ClientDetailResponse(
        **ClientResponse.model_validate(client).model_dump(),
        matters=matters,
        total_balance_cents=sum(m.balance_cents for m in matters),
    )


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_new_client(
    data: ClientCreate,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await create_client(db, data)
    await create_audit_log(
        db, "client", client.id, "create",
        details={"name": client.name, "email": client.email},
        **request_origin(request),
    )
    return client


@router.put("/{client_id}", response_model=ClientResponse)
async def update_existing_client(
    client_id: uuid.UUID,
    data: ClientUpdate,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await get_client(db, client_id)
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    before = {field: getattr(client, field) for field in TRACKED_FIELDS}
    updated = await update_client(db, client, data)
    await create_audit_log(
        db, "client", client_id, "update",
        details={"changes": get_changes(before, data.model_dump(exclude_unset=True), TRACKED_FIELDS)},
        **request_origin(request),
    )
    return updated


@router.delete("/{client_id}", response_model=ClientResponse)
async def archive_existing_client(
    client_id: uuid.UUID,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await get_client(db, client_id)
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    archived = await archive_client(db, client)
    await create_audit_log(
        db, "client", client_id, "delete",
        details={"name": client.name, "soft_delete": True},
        **request_origin(request),
    )
    return archived
