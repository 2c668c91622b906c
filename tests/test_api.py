"""
Cemetery Records Service: API Tests
====================================

What:  End-to-end checks through the HTTP layer: bearer-token auth, admin
       gating, the shared error body, camelCase payloads, public endpoints
       and the request lifecycle as a client sees it.
How:   HTTPX AsyncClient over ASGITransport against the per-test database.
       Setup data is created through the API itself (as an admin) so every
       write goes through the same commit/rollback path as production.
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from cemetery.middleware.logging import level_for_status
from cemetery.models.request import RequestLog
from cemetery.services.request_service import SUBMITTED_LOG

GARDEN_OF_PEACE = {
    "name": "Garden of Peace",
    "clusterNumber": 1,
    "coordinates": {"latitude": 14.5995, "longitude": 120.9842},
}


async def create_cluster(client, admin) -> dict:
    response = await client.post("/api/clusters", json=GARDEN_OF_PEACE, headers=admin["headers"])
    assert response.status_code == 201, response.text
    return response.json()


async def create_grave(client, admin, cluster_id: str, plot: str = "A-001") -> dict:
    response = await client.post(
        "/api/graves",
        json={
            "clusterId": cluster_id,
            "deceasedName": "Jose Santos",
            "graveType": "Lawn",
            "plotNumber": plot,
            "graveExpirationDate": "2053-03-15",
        },
        headers=admin["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert "uptimeSeconds" in body

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"


class TestAccessLogLevel:
    @pytest.mark.parametrize(
        "status, level",
        [(200, logging.INFO), (302, logging.INFO), (404, logging.WARNING), (503, logging.ERROR)],
    )
    def test_level_follows_status(self, status, level):
        assert level_for_status(status) == level


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_token_is_401(self, test_client):
        response = await test_client.get("/api/requests/mine")
        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "unauthorized"
        assert body["requestId"]

    @pytest.mark.asyncio
    async def test_unknown_token_is_401(self, test_client):
        response = await test_client.get(
            "/api/requests/mine", headers={"Authorization": "Bearer not-a-real-token"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_non_admin_is_403(self, test_client, user):
        response = await test_client.get("/api/requests", headers=user["headers"])
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_banned_user_is_403(self, test_client, make_user):
        banned = await make_user("Carlos Mendoza", banned=True, ban_reason="Spam")
        response = await test_client.get("/api/requests/mine", headers=banned["headers"])
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_can_list_users(self, test_client, admin, user):
        response = await test_client.get("/api/users", headers=admin["headers"])
        assert response.status_code == 200
        assert {u["email"] for u in response.json()} == {"admin@example.com", "maria.santos@example.com"}


class TestUserAdministration:
    @pytest.mark.asyncio
    async def test_promoted_user_reaches_admin_routes(self, test_client, user, admin):
        before = await test_client.get("/api/users", headers=user["headers"])
        assert before.status_code == 403

        promoted = await test_client.patch(
            f"/api/users/{user['user'].id}/role", json={"role": "admin"}, headers=admin["headers"]
        )
        assert promoted.status_code == 200
        assert promoted.json()["role"] == "admin"

        after = await test_client.get("/api/users", headers=user["headers"])
        assert after.status_code == 200

    @pytest.mark.asyncio
    async def test_ban_applies_through_its_expiry_date(self, test_client, user, admin):
        today = datetime.now(timezone.utc).date()
        url = f"/api/users/{user['user'].id}/ban"

        banned = await test_client.post(
            url, json={"reason": "Spam", "expires": today.isoformat()}, headers=admin["headers"]
        )
        assert banned.json()["banExpires"] == today.isoformat()
        blocked = await test_client.get("/api/requests/mine", headers=user["headers"])
        assert blocked.status_code == 403

        yesterday = (today - timedelta(days=1)).isoformat()
        await test_client.post(url, json={"expires": yesterday}, headers=admin["headers"])
        lapsed = await test_client.get("/api/requests/mine", headers=user["headers"])
        assert lapsed.status_code == 200

    @pytest.mark.asyncio
    async def test_unban_restores_access(self, test_client, user, admin):
        await test_client.post(f"/api/users/{user['user'].id}/ban", json={}, headers=admin["headers"])
        assert (await test_client.get("/api/requests/mine", headers=user["headers"])).status_code == 403

        lifted = await test_client.post(f"/api/users/{user['user'].id}/unban", headers=admin["headers"])
        assert lifted.json()["banned"] is False
        assert lifted.json()["banReason"] is None
        assert (await test_client.get("/api/requests/mine", headers=user["headers"])).status_code == 200

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method, path, body",
        [
            ("PATCH", "/api/users/missing/role", {"role": "admin"}),
            ("POST", "/api/users/missing/ban", {"reason": "x"}),
            ("POST", "/api/users/missing/unban", None),
        ],
    )
    async def test_unknown_user_is_404(self, test_client, admin, method, path, body):
        response = await test_client.request(method, path, json=body, headers=admin["headers"])
        assert response.status_code == 404
        assert response.json()["details"] == {"resource": "user"}


class TestErrorBodies:
    @pytest.mark.asyncio
    async def test_not_found_shape(self, test_client, admin):
        response = await test_client.get("/api/graves/missing", headers=admin["headers"])
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["details"] == {"resource": "grave"}
        assert body["requestId"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_validation_error_names_field(self, test_client, admin):
        cluster = await create_cluster(test_client, admin)
        response = await test_client.post(
            "/api/graves",
            json={"clusterId": cluster["id"], "deceasedName": "X", "graveType": "Lawn", "plotNumber": " "},
            headers=admin["headers"],
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"] == {"field": "plotNumber"}


class TestPublicEndpoints:
    @pytest.mark.asyncio
    async def test_public_reads_need_no_token(self, test_client, admin):
        cluster = await create_cluster(test_client, admin)
        await create_grave(test_client, admin, cluster["id"])

        clusters = await test_client.get("/api/public/clusters")
        graves = await test_client.get(f"/api/public/clusters/{cluster['id']}/graves")
        instructions = await test_client.get(f"/api/public/clusters/{cluster['id']}/instructions")
        search = await test_client.get("/api/public/search", params={"query": "santos"})

        assert clusters.json()[0]["clusterNumber"] == 1
        assert graves.json()[0]["graveJson"]["plotNumber"] == "A-001"
        assert instructions.json() is None
        assert search.json()["total"] == 1
        assert search.json()["hasMore"] is False


class TestRequestLifecycle:
    @pytest.mark.asyncio
    async def test_garden_of_peace_flow(self, test_client, session_factory, user, admin):
        cluster = await create_cluster(test_client, admin)
        grave = await create_grave(test_client, admin, cluster["id"])

        created = await test_client.post(
            "/api/requests",
            json={
                "details": "Grave Maintenance Request",
                "priority": "high",
                "contactPhone": "+63 912 345 6789",
                "requestRelatedGrave": grave["id"],
            },
            headers=user["headers"],
        )
        assert created.status_code == 201, created.text
        request_id = created.json()["id"]
        assert created.json()["status"] == "pending"

        async with session_factory() as session:
            await session.execute(
                update(RequestLog)
                .where(RequestLog.request_id == request_id)
                .values(created_at=datetime.now(timezone.utc) - timedelta(minutes=5))
            )
            await session.commit()

        updated = await test_client.put(
            f"/api/requests/{request_id}/status",
            json={"status": "approved", "remark": "Approved by management"},
            headers=admin["headers"],
        )
        assert updated.status_code == 200, updated.text

        detail = (await test_client.get(f"/api/requests/{request_id}", headers=user["headers"])).json()
        assert detail["status"] == "approved"
        assert detail["statusRemark"] == "Approved by management"
        assert detail["parsedDetails"]["priority"] == "high"
        assert detail["parsedDetails"]["contactPhone"] == "+63 912 345 6789"
        assert detail["relatedGrave"]["clusterName"] == "Garden of Peace"
        assert detail["isOverdue"] is False
        logs = [entry["log"] for entry in detail["logs"]]
        assert SUBMITTED_LOG in logs
        assert "Status changed from pending to approved. Remark: Approved by management" in logs
        assert logs[0] == "Status changed from pending to approved. Remark: Approved by management"
        assert logs[-1] == SUBMITTED_LOG

    @pytest.mark.asyncio
    async def test_other_user_cannot_read_request(self, test_client, user, make_user):
        stranger = await make_user("Elena Garcia")
        created = await test_client.post("/api/requests", json={"details": "x"}, headers=user["headers"])

        response = await test_client.get(f"/api/requests/{created.json()['id']}", headers=stranger["headers"])
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_invalid_status_rejected(self, test_client, user, admin):
        created = await test_client.post("/api/requests", json={"details": "x"}, headers=user["headers"])
        response = await test_client.put(
            f"/api/requests/{created.json()['id']}/status",
            json={"status": "archived"},
            headers=admin["headers"],
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_paginated_listing(self, test_client, user, admin):
        for i in range(3):
            await test_client.post("/api/requests", json={"details": f"r{i}"}, headers=user["headers"])

        response = await test_client.get(
            "/api/requests", params={"page": 1, "limit": 2}, headers=admin["headers"]
        )
        body = response.json()
        assert len(body["data"]) == 2
        assert body["pagination"] == {
            "page": 1,
            "limit": 2,
            "total": 3,
            "totalPages": 2,
            "hasNext": True,
            "hasPrev": False,
        }

    @pytest.mark.asyncio
    async def test_delete_request(self, test_client, user, admin):
        created = await test_client.post("/api/requests", json={"details": "x"}, headers=user["headers"])
        request_id = created.json()["id"]

        deleted = await test_client.delete(f"/api/requests/{request_id}", headers=admin["headers"])
        assert deleted.json()["success"] is True

        missing = await test_client.get(f"/api/requests/{request_id}", headers=admin["headers"])
        assert missing.status_code == 404


class TestRelationsApi:
    @pytest.mark.asyncio
    async def test_duplicate_relation_is_400(self, test_client, user, admin):
        cluster = await create_cluster(test_client, admin)
        grave = await create_grave(test_client, admin, cluster["id"])
        payload = {"userId": user["user"].id, "graveDetailsId": grave["id"]}

        first = await test_client.post("/api/grave-relations", json=payload, headers=admin["headers"])
        second = await test_client.post("/api/grave-relations", json=payload, headers=admin["headers"])

        assert first.status_code == 201
        assert second.status_code == 400
        assert second.json()["message"] == "This user is already related to this grave"

        mine = await test_client.get("/api/grave-relations/mine", headers=user["headers"])
        assert [g["id"] for g in mine.json()] == [grave["id"]]
