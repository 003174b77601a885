"""HTTP-level tests for the verification, access log and permission endpoints."""
import pytest
from fastapi.testclient import TestClient

from access_control.api.routes import get_verifier
from access_control.config import settings
from access_control.database import get_db, get_session_factory
from access_control.main import app
from access_control.models.enums import AccessStatus
from access_control.rate_limit import limiter
from access_control.services.verification import VerificationResult


def ceiling_of(rate):
    """Request count of a limit string such as "100/15minutes"."""
    return int(rate.split("/")[0])


class FixedVerifier:
    def verify(self, card_uid, door_id):
        return VerificationResult(
            status=AccessStatus.DENIED,
            message="Card not found",
            timestamp="2025-01-15T09:00:00.000Z"
        )


@pytest.fixture
def client(session_factory, site):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    limiter.reset()

    yield TestClient(app)

    app.dependency_overrides.clear()


class TestVerifyEndpoint:
    """Card readers always get HTTP 200; the outcome is in the body."""

    def test_granted(self, client, site):
        response = client.post("/api/v1/access/verify", json={"card_uid": "CARD-001", "door_id": site["lobby"].id})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "GRANTED"
        assert body["message"] == "Access granted"
        assert body["employee"] == {"name": "Jane Doe", "role": "Employee"}
        assert body["timestamp"].endswith("Z")

    def test_denied_is_still_200_without_employee(self, client, site):
        response = client.post("/api/v1/access/verify", json={"card_uid": "CARD-001", "door_id": site["office"].id})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "DENIED"
        assert body["message"] == "No permission for this door"
        assert "employee" not in body

    def test_unknown_identifiers(self, client, site):
        response = client.post("/api/v1/access/verify", json={"card_uid": "nope", "door_id": 424242})
        assert response.status_code == 200
        assert response.json()["message"] == "Card not found"

    @pytest.mark.parametrize("payload", [
        {"card_uid": "", "door_id": 1},
        {"door_id": 1},
        {"card_uid": "CARD-001", "door_id": "not-an-id"},
    ])
    def test_malformed_request_is_rejected_before_verification(self, client, payload):
        response = client.post("/api/v1/access/verify", json=payload)
        assert response.status_code == 422

        logs = client.get("/api/v1/access/logs").json()
        assert logs["pagination"]["total"] == 0

    def test_request_id_is_echoed(self, client, site):
        response = client.post(
            "/api/v1/access/verify",
            json={"card_uid": "CARD-001", "door_id": site["lobby"].id},
            headers={"X-Request-ID": "reader-17"}
        )
        assert response.headers["X-Request-ID"] == "reader-17"


class TestAccessLogEndpoints:

    def test_logs_stats_and_denied_reflect_verifications(self, client, site):
        client.post("/api/v1/access/verify", json={"card_uid": "CARD-001", "door_id": site["lobby"].id})
        client.post("/api/v1/access/verify", json={"card_uid": "CARD-001", "door_id": site["office"].id})
        client.post("/api/v1/access/verify", json={"card_uid": "LOST-1", "door_id": site["lobby"].id})

        logs = client.get("/api/v1/access/logs", params={"limit": 2}).json()
        assert logs["pagination"] == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}
        assert len(logs["data"]) == 2

        granted = client.get("/api/v1/access/logs", params={"status": "GRANTED"}).json()
        assert [e["card_uid"] for e in granted["data"]] == ["CARD-001"]

        stats = client.get("/api/v1/access/stats").json()
        assert stats == {"total": 3, "granted": 1, "denied": 2}

        denied = client.get("/api/v1/access/denied").json()
        assert {e["denial_reason"] for e in denied} == {"No permission for this door", "Card not found"}

    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 101}, {"page": 0}, {"status": "MAYBE"}])
    def test_log_query_validation(self, client, params):
        assert client.get("/api/v1/access/logs", params=params).status_code == 422


class TestPermissionEndpoints:

    def test_grant_then_verify(self, client, site):
        response = client.post("/api/v1/permissions", json={
            "role_id": site["role"].id,
            "door_group_id": site["private"].id,
            "access_type": "ALWAYS",
        })
        assert response.status_code == 200
        assert response.json()["access_type"] == "ALWAYS"

        verify = client.post("/api/v1/access/verify", json={"card_uid": "CARD-001", "door_id": site["office"].id})
        assert verify.json()["status"] == "GRANTED"

    def test_invalid_time_window_is_400(self, client, site):
        response = client.post("/api/v1/permissions", json={
            "role_id": site["role"].id,
            "door_group_id": site["private"].id,
            "access_type": "TIME_BOUND",
            "start_time": "9am",
            "end_time": "17:00:00",
        })
        assert response.status_code == 400
        assert "HH:mm:ss" in response.json()["detail"]

    def test_unknown_role_is_404(self, client, site):
        response = client.post("/api/v1/permissions", json={
            "role_id": 9999,
            "door_group_id": site["private"].id,
            "access_type": "ALWAYS",
        })
        assert response.status_code == 404
        assert response.json() == {"detail": "Role not found"}

    def test_revoke(self, client, site):
        url = f"/api/v1/permissions/{site['role'].id}/{site['public'].id}"
        assert client.delete(url).status_code == 204
        assert client.delete(url).status_code == 404


class TestRateLimits:
    """Management routes share the general ceiling; card readers have their own."""

    def test_management_routes_share_the_general_ceiling(self, client, site):
        ceiling = ceiling_of(settings.api_rate_limit)
        paths = ["/api/v1/access/logs", "/api/v1/access/stats"]

        statuses = {client.get(paths[i % 2]).status_code for i in range(ceiling)}
        assert statuses == {200}

        assert client.get("/api/v1/access/denied").status_code == 429
        revoke = client.delete(f"/api/v1/permissions/{site['role'].id}/{site['public'].id}")
        assert revoke.status_code == 429

    def test_verify_is_not_held_to_the_general_ceiling(self, client, site):
        payload = {"card_uid": "CARD-001", "door_id": site["lobby"].id}
        attempts = ceiling_of(settings.api_rate_limit) + 5

        statuses = {client.post("/api/v1/access/verify", json=payload).status_code for _ in range(attempts)}
        assert statuses == {200}

    def test_verify_has_its_own_ceiling(self, client):
        app.dependency_overrides[get_verifier] = lambda: FixedVerifier()
        ceiling = ceiling_of(settings.access_verify_rate_limit)
        payload = {"card_uid": "CARD-001", "door_id": 1}

        statuses = {client.post("/api/v1/access/verify", json=payload).status_code for _ in range(ceiling)}
        assert statuses == {200}
        assert client.post("/api/v1/access/verify", json=payload).status_code == 429
        assert client.get("/api/v1/access/stats").status_code == 200


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy", "service": "access-control-api"}
