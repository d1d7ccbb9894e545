"""
Tests for matter endpoints.

Covers matter numbering, inline client creation, list balances, the detail
view, and the zero-balance close rule.
"""

import re
import uuid
from datetime import date

from httpx import AsyncClient

from tests.factories import MatterFactory, create_hold, create_matter, deposit, disburse, matter_detail, post_transaction
from tests.fakes import FakeLedger


class TestCreateMatter:
    """POST /api/matters"""

    async def test_create_matter_for_existing_client(self, client: AsyncClient, sample_client: dict):
        resp = await client.post("/api/matters", json=MatterFactory(client_id=sample_client["id"]))
        assert resp.status_code == 201
        body = resp.json()
        assert body["client_id"] == sample_client["id"]
        assert body["status"] == "open"
        assert body["open_date"] == str(date.today())
        assert body["external_account_id"] is None

    async def test_matter_numbers_are_sequential_per_year(self, client: AsyncClient, sample_client: dict):
        first = await create_matter(client, sample_client["id"])
        second = await create_matter(client, sample_client["id"])
        year = date.today().year
        assert re.fullmatch(r"\d{4}-\d{4}", first["matter_number"])
        assert first["matter_number"] == f"{year}-0001"
        assert second["matter_number"] == f"{year}-0002"

    async def test_create_matter_with_new_client(self, client: AsyncClient):
        data = MatterFactory(new_client={"name": "Inline Client", "email": "inline@example.com"})
        resp = await client.post("/api/matters", json=data)
        assert resp.status_code == 201

        clients = (await client.get("/api/clients", params={"search": "Inline"})).json()
        assert clients["total"] == 1
        assert resp.json()["client_id"] == clients["items"][0]["id"]

    async def test_create_matter_requires_a_client(self, client: AsyncClient):
        resp = await client.post("/api/matters", json=MatterFactory())
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid input"

    async def test_create_matter_for_unknown_client(self, client: AsyncClient):
        resp = await client.post("/api/matters", json=MatterFactory(client_id=str(uuid.uuid4())))
        assert resp.status_code == 404
        assert resp.json()["code"] == "NOT_FOUND"
        assert resp.json()["error"] == "Client not found"

    async def test_cannot_create_closed_matter(self, client: AsyncClient, sample_client: dict):
        resp = await client.post("/api/matters", json=MatterFactory(client_id=sample_client["id"], status="closed"))
        assert resp.status_code == 400

    async def test_mirrored_matter_gets_sub_account(
        self, client: AsyncClient, sample_client: dict, fake_ledger: FakeLedger
    ):
        matter = await create_matter(client, sample_client["id"], name="Mirrored")
        assert matter["external_account_id"] == "acct_1"
        assert fake_ledger.calls[0] == ("create_sub_account", "Alice Example - Mirrored")

    async def test_sub_account_failure_does_not_block_matter(
        self, client: AsyncClient, sample_client: dict, fake_ledger: FakeLedger
    ):
        fake_ledger.fail_sub_accounts = True
        matter = await create_matter(client, sample_client["id"])
        assert matter["external_account_id"] is None


class TestListMatters:
    """GET /api/matters"""

    async def test_list_includes_balances(self, client: AsyncClient, sample_matter: dict):
        await deposit(client, sample_matter["id"], 50_000)
        await create_hold(client, sample_matter["id"], 20_000)

        resp = await client.get("/api/matters")
        assert resp.status_code == 200
        item = resp.json()["items"][0]
        assert item["client_name"] == "Alice Example"
        assert item["balance_cents"] == 50_000
        assert item["held_cents"] == 20_000
        assert item["available_cents"] == 30_000

    async def test_filter_by_client_and_status(self, client: AsyncClient, sample_client: dict, sample_matter: dict):
        other = (await client.post("/api/clients", json={"name": "Bob Other"})).json()
        await create_matter(client, other["id"])

        resp = await client.get("/api/matters", params={"client_id": sample_client["id"]})
        assert resp.json()["total"] == 1
        assert resp.json()["items"][0]["id"] == sample_matter["id"]

        resp = await client.get("/api/matters", params={"status": "closed"})
        assert resp.json()["total"] == 0


class TestMatterDetail:
    """GET /api/matters/{matter_id}"""

    async def test_detail_includes_totals_and_activity(self, client: AsyncClient, sample_matter: dict):
        await deposit(client, sample_matter["id"], 80_000)
        await disburse(client, sample_matter["id"], 15_000)
        await create_hold(client, sample_matter["id"], 10_000, type="escrow")

        body = await matter_detail(client, sample_matter["id"])
        assert body["deposits_cents"] == 80_000
        assert body["disbursements_cents"] == 15_000
        assert body["balance_cents"] == 65_000
        assert body["held_cents"] == 10_000
        assert body["available_cents"] == 55_000
        assert len(body["transactions"]) == 2
        assert body["holds"][0]["type"] == "escrow"

    async def test_detail_for_missing_matter(self, client: AsyncClient):
        resp = await client.get(f"/api/matters/{uuid.uuid4()}")
        assert resp.status_code == 404


class TestCloseMatter:
    """DELETE /api/matters/{matter_id} and PUT with status closed"""

    async def test_cannot_close_with_balance(self, client: AsyncClient, sample_matter: dict):
        await deposit(client, sample_matter["id"], 1_000)

        resp = await client.delete(f"/api/matters/{sample_matter['id']}")
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "MATTER_BALANCE_NOT_ZERO"
        assert body["balance_cents"] == 1_000
        assert "$10.00" in body["error"]

    async def test_put_closed_goes_through_balance_rule(self, client: AsyncClient, sample_matter: dict):
        await deposit(client, sample_matter["id"], 1_000)
        resp = await client.put(f"/api/matters/{sample_matter['id']}", json={"status": "closed"})
        assert resp.status_code == 400

        detail = await matter_detail(client, sample_matter["id"])
        assert detail["status"] == "open"

    async def test_close_zero_balance_matter(self, client: AsyncClient, sample_matter: dict):
        await deposit(client, sample_matter["id"], 1_000)
        await disburse(client, sample_matter["id"], 1_000)

        resp = await client.delete(f"/api/matters/{sample_matter['id']}")
        assert resp.status_code == 200
        assert resp.json()["status"] == "closed"
        assert resp.json()["close_date"] == str(date.today())

    async def test_closed_matter_rejects_transactions_and_holds(self, client: AsyncClient, sample_matter: dict):
        await client.delete(f"/api/matters/{sample_matter['id']}")

        resp = await post_transaction(client, sample_matter["id"], "deposit", 500)
        assert resp.status_code == 400
        assert resp.json()["code"] == "MATTER_CLOSED"

        resp = await client.post(
            "/api/holds",
            json={"matter_id": sample_matter["id"], "amount_cents": 100, "type": "retainer", "description": "x"},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "MATTER_CLOSED"

    async def test_reopen_clears_close_date(self, client: AsyncClient, sample_matter: dict):
        await client.delete(f"/api/matters/{sample_matter['id']}")

        resp = await client.put(f"/api/matters/{sample_matter['id']}", json={"status": "open"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "open"
        assert resp.json()["close_date"] is None

    async def test_update_matter_fields(self, client: AsyncClient, sample_matter: dict):
        resp = await client.put(
            f"/api/matters/{sample_matter['id']}", json={"responsible_attorney": "B. Barrister"}
        )
        assert resp.status_code == 200
        assert resp.json()["responsible_attorney"] == "B. Barrister"
        assert resp.json()["matter_number"] == sample_matter["matter_number"]
