import uuid
from datetime import date
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients.models import Client
from app.clients.service import create_client, get_client
from app.common.exceptions import NotFoundError
from app.common.pagination import fetch_page
from app.ledger.clients import TrustLedgerClient
from app.ledger.service import create_matter_sub_account
from app.matters.models import Matter, MatterStatus
from app.matters.schemas import MatterCreate, MatterUpdate
from app.trust.balance import close_matter, lock_matter
from app.trust.models import Hold, Transaction


async def get_matters(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 25,
    search: Optional[str] = None,
    status: Optional[MatterStatus] = None,
    client_id: Optional[uuid.UUID] = None,
) -> tuple[list[Matter], int]:
    query = select(Matter)
    count_query = select(func.count(Matter.id))

    if search:
        search_filter = or_(
            Matter.name.ilike(f"%{search}%"),
            Matter.matter_number.ilike(f"%{search}%"),
            Matter.description.ilike(f"%{search}%"),
        )
        query = query.where(search_filter)
        count_query = count_query.where(search_filter)

    if status:
        query = query.where(Matter.status == status)
        count_query = count_query.where(Matter.status == status)

    if client_id:
        query = query.where(Matter.client_id == client_id)
        count_query = count_query.where(Matter.client_id == client_id)

    return await fetch_page(db, query.order_by(Matter.created_at.desc()), count_query, page, page_size)


async def get_matter(db: AsyncSession, matter_id: uuid.UUID) -> Optional[Matter]:
    result = await db.execute(select(Matter).where(Matter.id == matter_id))
    return result.scalar_one_or_none()


async def next_matter_number(db: AsyncSession, year: Optional[int] = None) -> str:
    """Next ``YYYY-NNNN`` number for the year."""
    year = year or date.today().year
    result = await db.execute(select(Matter.matter_number).where(Matter.matter_number.like(f"{year}-%")))
    used = []
    for number in result.scalars().all():
        suffix = number.split("-", 1)[1]
        if suffix.isdigit():
            used.append(int(suffix))
    return f"{year}-{max(used, default=0) + 1:04d}"


async def create_matter(
    db: AsyncSession, data: MatterCreate, ledger: Optional[TrustLedgerClient] = None
) -> tuple[Matter, Optional[Client]]:
    """Create a matter, and its client first when ``new_client`` is given.

    Returns the matter and the client created inline, if any.
    """
    new_client = None
    if data.client_id is not None:
        client = await get_client(db, data.client_id)
        if client is None:
            raise NotFoundError("Client", data.client_id)
    else:
        client = new_client = await create_client(db, data.new_client)

    matter = Matter(
        client_id=client.id,
        name=data.name,
        matter_number=await next_matter_number(db),
        description=data.description,
        status=data.status,
        practice_area=data.practice_area,
        responsible_attorney=data.responsible_attorney,
        open_date=data.open_date or date.today(),
    )
    db.add(matter)
    await db.flush()

    if ledger is not None:
        matter.external_account_id = await create_matter_sub_account(matter, client.name, ledger)
        await db.flush()

    await db.refresh(matter)
    return matter, new_client


async def update_matter(db: AsyncSession, matter_id: uuid.UUID, data: MatterUpdate) -> Matter:
    """Apply edits. Closing goes through the zero-balance rule; reopening clears the close date."""
    matter = await lock_matter(db, matter_id)
    values = data.model_dump(exclude_unset=True)
    new_status = values.pop("status", None)

    for field, value in values.items():
        setattr(matter, field, value)
    await db.flush()

    if new_status == MatterStatus.closed:
        return await close_matter(db, matter.id)
    if new_status is not None and new_status != matter.status:
        matter.status = new_status
        matter.close_date = None
        await db.flush()

    await db.refresh(matter)
    return matter


async def get_matter_activity(db: AsyncSession, matter_id: uuid.UUID) -> tuple[list[Transaction], list[Hold]]:
    transactions = await db.execute(
        select(Transaction)
        .where(Transaction.matter_id == matter_id)
        .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
    )
    holds = await db.execute(select(Hold).where(Hold.matter_id == matter_id).order_by(Hold.created_at.desc()))
    return list(transactions.scalars().all()), list(holds.scalars().all())
