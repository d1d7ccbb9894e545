"""
Service-level tests for the balance arithmetic in ``app.trust.balance``.
"""

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients.models import Client
from app.common.exceptions import (
    HoldStateError,
    InsufficientFundsError,
    InvalidAmountError,
    MatterBalanceError,
    NotFoundError,
)
from app.matters.models import Matter, MatterStatus
from app.trust.balance import (
    can_create_hold,
    can_disburse,
    close_matter,
    compute_active_holds,
    compute_available,
    compute_balance,
    get_matter_balances,
    release_hold,
    validate_amount,
)
from app.trust.models import Hold, HoldStatus, HoldType, Transaction, TransactionType
from app.trust.schemas import HoldCreate, TransactionCreate
from app.trust.service import create_hold, create_transaction


async def _matter(db: AsyncSession, number: str = "2026-0001") -> Matter:
    client = Client(name="Service Client")
    db.add(client)
    await db.flush()
    matter = Matter(client_id=client.id, name="Service Matter", matter_number=number)
    db.add(matter)
    await db.flush()
    return matter


def _txn(matter: Matter, type: TransactionType, amount_cents: int) -> Transaction:
    return Transaction(matter_id=matter.id, type=type, amount_cents=amount_cents, description="test")


def _hold(matter: Matter, amount_cents: int, status: HoldStatus = HoldStatus.active) -> Hold:
    return Hold(matter_id=matter.id, amount_cents=amount_cents, type=HoldType.retainer, description="test", status=status)


class TestValidateAmount:
    @pytest.mark.parametrize("amount", [1, 100_000_000])
    def test_accepts_bounds(self, amount):
        validate_amount(amount)

    @pytest.mark.parametrize("amount", [0, -1, 100_000_001])
    def test_rejects_out_of_range(self, amount):
        with pytest.raises(InvalidAmountError):
            validate_amount(amount)

    def test_label_in_message(self):
        with pytest.raises(InvalidAmountError, match="Hold amount must be greater than 0"):
            validate_amount(0, "Hold amount")


class TestComputeBalance:
    async def test_empty_matter(self, db_session: AsyncSession):
        matter = await _matter(db_session)
        assert await compute_balance(db_session, matter.id) == 0
        assert await compute_available(db_session, matter.id) == 0

    async def test_balance_and_holds(self, db_session: AsyncSession):
        matter = await _matter(db_session)
        db_session.add_all([
            _txn(matter, TransactionType.deposit, 100_000),
            _txn(matter, TransactionType.disbursement, 25_000),
            _hold(matter, 10_000),
            _hold(matter, 5_000, HoldStatus.released),
            _hold(matter, 7_000, HoldStatus.cancelled),
        ])
        await db_session.flush()

        assert await compute_balance(db_session, matter.id) == 75_000
        assert await compute_active_holds(db_session, matter.id) == 10_000
        assert await compute_available(db_session, matter.id) == 65_000
        assert await can_disburse(db_session, matter.id, 65_000)
        assert not await can_disburse(db_session, matter.id, 65_001)
        assert await can_create_hold(db_session, matter.id, 65_000)
        assert not await can_create_hold(db_session, matter.id, 65_001)

    async def test_grouped_balances(self, db_session: AsyncSession):
        first = await _matter(db_session, "2026-0001")
        second = await _matter(db_session, "2026-0002")
        db_session.add_all([
            _txn(first, TransactionType.deposit, 3_000),
            _hold(first, 1_000),
        ])
        await db_session.flush()

        balances = await get_matter_balances(db_session, [first.id, second.id])
        assert balances[first.id].as_dict() == {
            "deposits_cents": 3_000,
            "disbursements_cents": 0,
            "balance_cents": 3_000,
            "held_cents": 1_000,
            "available_cents": 2_000,
        }
        assert balances[second.id].balance_cents == 0
        assert await get_matter_balances(db_session, []) == {}


class TestServiceRules:
    async def test_scenario_deposit_hold_disburse(self, db_session: AsyncSession):
        matter = await _matter(db_session)
        await create_transaction(
            db_session,
            TransactionCreate(matter_id=matter.id, type="deposit", amount_cents=100_000, description="Retainer"),
        )
        await create_hold(
            db_session,
            HoldCreate(matter_id=matter.id, amount_cents=30_000, type="retainer", description="Pending fees"),
        )

        with pytest.raises(InsufficientFundsError) as exc_info:
            await create_transaction(
                db_session,
                TransactionCreate(matter_id=matter.id, type="disbursement", amount_cents=75_000, description="Too much"),
            )
        assert exc_info.value.shortfall_cents == 5_000
        assert exc_info.value.available_cents == 70_000

        await create_transaction(
            db_session,
            TransactionCreate(matter_id=matter.id, type="disbursement", amount_cents=70_000, description="Payout"),
        )
        assert await compute_balance(db_session, matter.id) == 30_000
        assert await compute_available(db_session, matter.id) == 0

    async def test_unknown_matter(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await create_transaction(
                db_session,
                TransactionCreate(matter_id=uuid.uuid4(), type="deposit", amount_cents=1, description="x"),
            )

    async def test_release_hold_partial_then_full(self, db_session: AsyncSession):
        matter = await _matter(db_session)
        db_session.add(_txn(matter, TransactionType.deposit, 10_000))
        hold = _hold(matter, 6_000)
        db_session.add(hold)
        await db_session.flush()

        partial = await release_hold(db_session, hold.id, 2_000, reason="Part")
        assert partial.is_partial
        assert partial.action == "partial_release"
        assert partial.hold.amount_cents == 4_000
        assert partial.hold.status == HoldStatus.active

        full = await release_hold(db_session, hold.id, reason="Rest")
        assert full.released_cents == 4_000
        assert full.action == "release"
        assert full.hold.status == HoldStatus.released
        assert full.hold.released_at is not None

        with pytest.raises(HoldStateError):
            await release_hold(db_session, hold.id, reason="Again")

    async def test_close_matter(self, db_session: AsyncSession):
        matter = await _matter(db_session)
        db_session.add(_txn(matter, TransactionType.deposit, 500))
        await db_session.flush()

        with pytest.raises(MatterBalanceError) as exc_info:
            await close_matter(db_session, matter.id)
        assert exc_info.value.balance_cents == 500

        db_session.add(_txn(matter, TransactionType.disbursement, 500))
        await db_session.flush()
        closed = await close_matter(db_session, matter.id)
        assert closed.status == MatterStatus.closed
        assert closed.close_date is not None
