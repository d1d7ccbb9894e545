import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients.models import Client, ClientStatus
from app.clients.schemas import ClientCreate, ClientUpdate
from app.common.pagination import fetch_page


async def get_clients(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 25,
    search: Optional[str] = None,
    status: Optional[ClientStatus] = None,
) -> tuple[list[Client], int]:
    query = select(Client)
    count_query = select(func.count(Client.id))

    if search:
        search_filter = or_(
            Client.name.ilike(f"%{search}%"),
            Client.email.ilike(f"%{search}%"),
            Client.phone.ilike(f"%{search}%"),
        )
        query = query.where(search_filter)
        count_query = count_query.where(search_filter)

    if status:
        query = query.where(Client.status == status)
        count_query = count_query.where(Client.status == status)

    return await fetch_page(db, query.order_by(Client.name.asc()), count_query, page, page_size)


async def get_client(db: AsyncSession, client_id: uuid.UUID) -> Optional[Client]:
    result = await db.execute(select(Client).where(Client.id == client_id))
    return result.scalar_one_or_none()


async def create_client(db: AsyncSession, data: ClientCreate) -> Client:
    client = Client(**data.model_dump())
    db.add(client)
    await db.flush()
    await db.refresh(client)
    return client


async def update_client(db: AsyncSession, client: Client, data: ClientUpdate) -> Client:
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(client, field, value)
    await db.flush()
    await db.refresh(client)
    return client


async def archive_client(db: AsyncSession, client: Client) -> Client:
    """Soft delete: clients with trust history are never removed."""
    client.status = ClientStatus.archived
    await db.flush()
    await db.refresh(client)
    return client
