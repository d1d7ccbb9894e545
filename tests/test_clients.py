"""
Tests for the client CRUD endpoints.

Covers create, list with pagination/search/status, detail with matter
balances, update, and archive-on-delete.
"""

import uuid

from httpx import AsyncClient

from tests.factories import ClientFactory, create_client, create_matter, deposit


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

class TestCreateClient:
    """POST /api/clients"""

    async def test_create_client(self, client: AsyncClient):
        data = ClientFactory()
        resp = await client.post("/api/clients", json=data)
        assert resp.status_code == 201
        body = resp.json()
        assert body["name"] == data["name"]
        assert body["email"] == data["email"]
        assert body["status"] == "active"
        assert "id" in body

    async def test_create_client_requires_name(self, client: AsyncClient):
        resp = await client.post("/api/clients", json={"email": "nobody@example.com"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid input"

    async def test_create_client_rejects_bad_email(self, client: AsyncClient):
        resp = await client.post("/api/clients", json=ClientFactory(email="not-an-email"))
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------

class TestListClients:
    """GET /api/clients"""

    async def test_list_clients_with_pagination(self, client: AsyncClient):
        for _ in range(3):
            await create_client(client)

        resp = await client.get("/api/clients", params={"page": 1, "page_size": 2})
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 3
        assert len(body["items"]) == 2
        assert body["total_pages"] == 2

    async def test_list_clients_sorted_by_name(self, client: AsyncClient):
        await create_client(client, name="Zed Zulu")
        await create_client(client, name="Amy Alpha")

        resp = await client.get("/api/clients")
        names = [item["name"] for item in resp.json()["items"]]
        assert names == ["Amy Alpha", "Zed Zulu"]

    async def test_list_clients_with_search(self, client: AsyncClient):
        await create_client(client, name="Xylophonist Jones")
        await create_client(client, name="Other Person")

        resp = await client.get("/api/clients", params={"search": "xylo"})
        body = resp.json()
        assert body["total"] == 1
        assert body["items"][0]["name"] == "Xylophonist Jones"

    async def test_list_clients_with_status_filter(self, client: AsyncClient):
        await create_client(client, status="inactive")
        await create_client(client)

        resp = await client.get("/api/clients", params={"status": "inactive"})
        items = resp.json()["items"]
        assert len(items) == 1
        assert items[0]["status"] == "inactive"


# ---------------------------------------------------------------------------
# Get by ID
# ---------------------------------------------------------------------------

class TestGetClient:
    """GET /api/clients/{client_id}"""

    async def test_get_client_with_matter_balances(self, client: AsyncClient, sample_client: dict):
        first = await create_matter(client, sample_client["id"])
        second = await create_matter(client, sample_client["id"])
        await deposit(client, first["id"], 25_000)
        await deposit(client, second["id"], 5_000)

        resp = await client.get(f"/api/clients/{sample_client['id']}")
        assert resp.status_code == 200
        body = resp.json()
        assert len(body["matters"]) == 2
        assert body["total_balance_cents"] == 30_000
        balances = {m["id"]: m["balance_cents"] for m in body["matters"]}
        assert balances[first["id"]] == 25_000

    async def test_get_nonexistent_client(self, client: AsyncClient):
        resp = await client.get(f"/api/clients/{uuid.uuid4()}")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Client not found"}


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

class TestUpdateClient:
    """PUT /api/clients/{client_id}"""

    async def test_update_client(self, client: AsyncClient, sample_client: dict):
        resp = await client.put(f"/api/clients/{sample_client['id']}", json={"phone": "555-0199"})
        assert resp.status_code == 200
        assert resp.json()["phone"] == "555-0199"
        assert resp.json()["name"] == sample_client["name"]

    async def test_update_records_changes_in_audit(self, client: AsyncClient, sample_client: dict):
        await client.put(f"/api/clients/{sample_client['id']}", json={"name": "Alice Renamed"})

        resp = await client.get("/api/audit", params={"entity_type": "client", "action": "update"})
        log = resp.json()["logs"][0]
        assert log["entity_id"] == sample_client["id"]
        assert '"to": "Alice Renamed"' in log["details"]

    async def test_update_nonexistent_client(self, client: AsyncClient):
        resp = await client.put(f"/api/clients/{uuid.uuid4()}", json={"name": "Ghost"})
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Delete (archive)
# ---------------------------------------------------------------------------

class TestArchiveClient:
    """DELETE /api/clients/{client_id}"""

    async def test_delete_archives_client(self, client: AsyncClient, sample_client: dict):
        resp = await client.delete(f"/api/clients/{sample_client['id']}")
        assert resp.status_code == 200
        assert resp.json()["status"] == "archived"

        # Still retrievable; history is never removed.
        get_resp = await client.get(f"/api/clients/{sample_client['id']}")
        assert get_resp.status_code == 200
        assert get_resp.json()["status"] == "archived"
