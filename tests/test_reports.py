"""
Tests for the compliance reports: monthly trust, client ledger,
three-way reconciliation, report history, and the CSV export.
"""

import uuid
from datetime import date

import pytest_asyncio
from httpx import AsyncClient

from tests.factories import create_client, create_hold, create_matter, deposit, disburse


@pytest_asyncio.fixture
async def activity(client: AsyncClient, sample_client: dict, sample_matter: dict) -> dict:
    """January deposit, February disbursement and deposit, one active hold."""
    await deposit(client, sample_matter["id"], 100_000, transaction_date=date(2025, 1, 15), payor="Alice Example")
    await disburse(client, sample_matter["id"], 20_000, transaction_date=date(2025, 2, 10), payee="Court Clerk")
    await deposit(client, sample_matter["id"], 5_000, transaction_date=date(2025, 2, 20))
    await create_hold(client, sample_matter["id"], 10_000)
    return sample_matter


class TestMonthlyTrustReport:
    async def test_february(self, client: AsyncClient, activity: dict):
        resp = await client.post("/api/reports/monthly-trust", json={"start_date": "2025-02-01", "end_date": "2025-02-28"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["firm"]["firm_name"] == "Law Firm"
        assert body["opening_balance_cents"] == 100_000
        assert body["period_deposits_cents"] == 5_000
        assert body["period_disbursements_cents"] == 20_000
        assert body["closing_balance_cents"] == 85_000
        assert body["total_active_holds_cents"] == 10_000
        assert body["available_balance_cents"] == 75_000
        assert [t["running_balance_cents"] for t in body["transactions"]] == [80_000, 85_000]
        assert body["transactions"][0]["payee"] == "Court Clerk"

        summary = body["matter_summaries"][0]
        assert summary["matter_number"] == activity["matter_number"]
        assert summary["balance_cents"] == 85_000
        assert summary["available_cents"] == 75_000

    async def test_empty_period(self, client: AsyncClient, activity: dict):
        resp = await client.get("/api/reports/monthly-trust", params={"start_date": "2024-01-01", "end_date": "2024-01-31"})
        body = resp.json()
        assert body["opening_balance_cents"] == 0
        assert body["closing_balance_cents"] == 0
        assert body["transactions"] == []
        assert body["matter_summaries"] == []

    async def test_uses_firm_settings(self, client: AsyncClient):
        await client.put("/api/settings", json={"firm_name": "Example Law LLP", "account_number": "000123456789"})
        body = (
            await client.get("/api/reports/monthly-trust", params={"start_date": "2025-01-01", "end_date": "2025-01-31"})
        ).json()
        assert body["firm"]["firm_name"] == "Example Law LLP"
        assert body["firm"]["account_number"] == "****6789"

    async def test_invalid_range(self, client: AsyncClient):
        preview = await client.get("/api/reports/monthly-trust", params={"start_date": "2025-02-01", "end_date": "2025-01-01"})
        assert preview.status_code == 400
        assert preview.json() == {"error": "start_date must be on or before end_date"}

        created = await client.post("/api/reports/monthly-trust", json={"start_date": "2025-02-01", "end_date": "2025-01-01"})
        assert created.status_code == 400

    async def test_preview_is_not_recorded(self, client: AsyncClient):
        await client.get("/api/reports/monthly-trust", params={"start_date": "2025-01-01", "end_date": "2025-01-31"})
        assert (await client.get("/api/reports/history")).json() == []


class TestClientLedgerReport:
    async def test_client_ledger(self, client: AsyncClient, sample_client: dict, activity: dict):
        other = await create_client(client, name="Bob Other")
        other_matter = await create_matter(client, other["id"])
        await deposit(client, other_matter["id"], 9_999)

        resp = await client.post("/api/reports/client-ledger", json={"client_id": sample_client["id"]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["client_name"] == "Alice Example"
        assert len(body["transactions"]) == 3
        assert body["closing_balance_cents"] == 85_000
        assert [m["matter_id"] for m in body["matters"]] == [activity["id"]]

    async def test_client_ledger_with_range(self, client: AsyncClient, sample_client: dict, activity: dict):
        resp = await client.post(
            "/api/reports/client-ledger",
            json={"client_id": sample_client["id"], "start_date": "2025-02-01", "end_date": "2025-02-15"},
        )
        body = resp.json()
        assert body["opening_balance_cents"] == 100_000
        assert body["period_disbursements_cents"] == 20_000
        assert body["closing_balance_cents"] == 80_000
        assert body["matters"][0]["balance_cents"] == 80_000

    async def test_unknown_client(self, client: AsyncClient):
        resp = await client.post("/api/reports/client-ledger", json={"client_id": str(uuid.uuid4())})
        assert resp.status_code == 404


class TestReconciliationReport:
    async def test_reconciled(self, client: AsyncClient, activity: dict):
        resp = await client.post("/api/reports/reconciliation", json={"bank_statement_balance_cents": 85_000})
        body = resp.json()
        assert body["as_of_date"] == str(date.today())
        assert body["trust_ledger_balance_cents"] == 85_000
        assert body["sum_of_client_ledgers_cents"] == 85_000
        assert body["ledger_to_bank_diff_cents"] == 0
        assert body["is_reconciled"] is True
        assert body["client_balances"][0]["client_name"] == "Alice Example"

    async def test_bank_mismatch(self, client: AsyncClient, activity: dict):
        body = (await client.post("/api/reports/reconciliation", json={"bank_statement_balance_cents": 80_000})).json()
        assert body["ledger_to_bank_diff_cents"] == 5_000
        assert body["is_reconciled"] is False

    async def test_without_bank_balance(self, client: AsyncClient, activity: dict):
        body = (await client.post("/api/reports/reconciliation", json={"as_of_date": "2025-01-31"})).json()
        assert body["trust_ledger_balance_cents"] == 100_000
        assert body["bank_balance_cents"] is None
        assert body["ledger_to_bank_diff_cents"] is None
        assert body["is_reconciled"] is True


class TestReportHistoryAndExport:
    async def test_history_and_audit(self, client: AsyncClient, sample_client: dict, activity: dict):
        await client.post("/api/reports/monthly-trust", json={"start_date": "2025-02-01", "end_date": "2025-02-28"})
        await client.post("/api/reports/client-ledger", json={"client_id": sample_client["id"]})
        await client.post("/api/reports/reconciliation", json={})

        history = (await client.get("/api/reports/history")).json()
        assert {h["report_type"] for h in history} == {"monthly_trust", "client_ledger", "reconciliation"}
        assert all(h["status"] == "completed" for h in history)

        exports = (await client.get("/api/audit", params={"action": "export"})).json()["logs"]
        assert len(exports) == 3
        assert all(log["entity_type"] == "report" for log in exports)

    async def test_csv_export(self, client: AsyncClient, activity: dict):
        resp = await client.get(
            "/api/reports/export/monthly-trust", params={"start_date": "2025-01-01", "end_date": "2025-02-28"}
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert 'filename="monthly-trust-2025-01-01-to-2025-02-28.csv"' in resp.headers["content-disposition"]

        lines = resp.text.splitlines()
        assert lines[0].startswith("transaction_date,matter_number,matter_name")
        assert len(lines) == 4
        assert lines[-1].endswith(",5000,85000")
