import pytest
from fastapi.testclient import TestClient

from admins.management import AdminService
from analytics.service import AnalyticsService
from app import deps
from app.api_service import app
from app.routers import health
from moderation.queue import ModerationService
from notifications.dedup import SendDeduplicator
from notifications.fanout import CampaignFanOut
from notifications.service import NotificationService
from push.service import PushService
from repos.activity_repo import ActivityRepository
from repos.campaign_repo import CampaignRepository
from repos.notification_repo import NotificationRepository
from repos.report_repo import ReportRepository
from repos.user_repo import UserRepository
from repos.verification_repo import VerificationRepository
from security.admin_auth import require_admin
from tests.fakes import FakeFcm, FakeFirestore, FakeIdentity
from verification.workflow import VerificationWorkflow

MAIN_ADMIN = {"uid": "boss", "role": "main_admin", "isMainAdmin": True, "name": "Boss"}
ADMIN = {"uid": "ops", "role": "admin", "name": "Ops"}


@pytest.fixture
def db():
    return FakeFirestore(
        {
            "users": {
                "boss": {"role": "main_admin", "isMainAdmin": True, "email": "boss@kolekkita.com"},
                "ops": {"role": "admin", "email": "ops@kolekkita.com"},
                "r1": {"role": "resident", "fcmToken": "tok1", "notificationsEnabled": True},
                "c1": {"role": "collector"},
            },
            "verifications": {"v1": {"userId": "r1", "status": "pending"}},
        }
    )


@pytest.fixture
def client(db):
    notifications = NotificationService(NotificationRepository(db))
    fanout = CampaignFanOut(UserRepository(db), CampaignRepository(db), notifications, SendDeduplicator())
    app.dependency_overrides[require_admin] = lambda: MAIN_ADMIN
    app.dependency_overrides[deps.get_fanout] = lambda: fanout
    app.dependency_overrides[deps.get_notification_service] = lambda: notifications
    app.dependency_overrides[deps.get_verification_workflow] = lambda: VerificationWorkflow(VerificationRepository(db), notifications)
    app.dependency_overrides[deps.get_moderation_service] = lambda: ModerationService(
        ReportRepository(db), UserRepository(db), ActivityRepository(db)
    )
    app.dependency_overrides[deps.get_admin_service] = lambda: AdminService(UserRepository(db), FakeIdentity())
    app.dependency_overrides[deps.get_push_service] = lambda: PushService(UserRepository(db), FakeFcm())
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def test_health_echoes_request_id(monkeypatch):
    monkeypatch.setattr(health, "_firestore_probe", lambda: {"ok": True, "latency_ms": 1})
    resp = TestClient(app).get("/health", headers={"x-request-id": "rid-1"})
    assert resp.status_code == 200
    assert resp.json()["firestore_ok"] is True
    assert resp.headers["X-Request-Id"] == "rid-1"


def test_api_requires_bearer_token():
    resp = TestClient(app).get("/api/campaigns")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "missing_bearer_token"


def test_campaign_duplicate_is_409(client, db):
    body = {"title": "Pickup day", "message": "Bring your scrap", "idempotency_token": "abc"}
    first = client.post("/api/campaigns/send-to-all", json=body)
    assert first.status_code == 200
    assert first.json()["sent_count"] == 2
    second = client.post("/api/campaigns/send-to-all", json=body)
    assert second.status_code == 409
    assert second.json()["detail"] == "duplicate_send"
    assert len(db.docs("notifications")) == 2

    campaign_id = first.json()["campaign_id"]
    assert client.get(f"/api/campaigns/{campaign_id}").json()["campaign"]["actualSentCount"] == 2
    assert client.get("/api/campaigns/missing").status_code == 404


def test_campaign_validation_is_400(client):
    resp = client.post("/api/campaigns/send-to-all", json={"title": "", "message": "x"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "title_required"


def test_verification_decision_routes(client, db):
    resp = client.post("/api/verifications/v1/decision", json={"status": "rejected"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "rejection_reason_required"

    resp = client.post("/api/verifications/v1/decision", json={"status": "rejected", "rejection_reason": "Blurry"})
    assert resp.status_code == 200
    assert resp.json()["notified"] is True
    assert db.docs("verifications")["v1"]["resolvedBy"] == "boss"

    assert client.post("/api/verifications/nope/decision", json={"status": "approved"}).status_code == 404


def test_verification_export_is_csv(client):
    resp = client.get("/api/verifications/export")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "attachment" in resp.headers["content-disposition"]
    assert resp.text.splitlines()[0].startswith('"Verification ID"')


def test_moderation_resolve_unknown_is_404(client):
    resp = client.post("/api/moderation/reports/user-zz/resolve", json={"action_type": "dismissed"})
    assert resp.status_code == 404


def test_analytics_invalid_dimension_is_400(client, db):
    app.dependency_overrides[deps.get_analytics_service] = lambda: _analytics(db)
    assert client.get("/api/analytics/planet").status_code == 400
    assert client.get("/api/analytics/role").json()["data"]["residents"] == 1


def _analytics(db):
    return AnalyticsService(UserRepository(db), ActivityRepository(db), VerificationRepository(db))


def test_unhandled_error_is_500_with_request_id(client):
    class Broken:
        def overview(self, **kwargs):
            raise RuntimeError("store down")

    app.dependency_overrides[deps.get_analytics_service] = lambda: Broken()
    resp = client.get("/api/analytics/overview", headers={"x-request-id": "rid-9"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "internal_unhandled_exception", "request_id": "rid-9", "revision": ""}


def test_main_admin_is_protected(client):
    resp = client.delete("/api/admins/boss")
    assert resp.status_code == 403
    assert resp.json()["detail"] == "main_admin_protected"


def test_only_main_admin_manages_admins(client):
    app.dependency_overrides[require_admin] = lambda: ADMIN
    resp = client.post("/api/admins", json={"email": "x@kolekkita.com", "password": "Str0ng!Pass", "name": "X"})
    assert resp.status_code == 403
    assert resp.json()["detail"] == "main_admin_required"


def test_create_admin_weak_password(client):
    resp = client.post("/api/admins", json={"email": "x@kolekkita.com", "password": "weak", "name": "X"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "weak_password"
    assert resp.json()["errors"]


def test_push_missing_fields_is_400(client):
    resp = client.post("/api/push-notifications/send-to-user", json={"title": "T"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing required fields: userId, title, body"}


def test_push_failure_is_500_error_body(client):
    resp = client.post("/api/push-notifications/send-to-user", json={"userId": "zz", "title": "T", "body": "B"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "User zz not found"}


def test_push_send_to_all(client):
    resp = client.post("/api/push-notifications/send-to-all", json={"title": "T", "body": "B"})
    assert resp.status_code == 200
    assert resp.json()["sentCount"] == 1
