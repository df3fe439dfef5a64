# tests/test_tracking_views_api.py
import pytest
from django.urls import reverse

from domains.tracking.exceptions import TransportError
from domains.tracking.services import BatchTrackingResult, stop_requested
from domains.tracking.types import CanonicalStatus, CarrierTag

from .factories import make_result

pytestmark = pytest.mark.django_db

TRACK_URL = "/api/v1/tracking/track/"
BATCH_URL = "/api/v1/tracking/batch-run/"
STOP_URL = "/api/v1/tracking/batch-run/stop/"
CARRIERS_URL = "/api/v1/tracking/carriers/"


def test_named_routes():
    assert reverse("tracking:track") == TRACK_URL
    assert reverse("tracking:batch-run") == BATCH_URL
    assert reverse("tracking:batch-run-stop") == STOP_URL
    assert reverse("tracking:carriers") == CARRIERS_URL


# ─────────────────────────────────────────────────────────────
# 단건 조회
# ─────────────────────────────────────────────────────────────
def test_track_requires_authentication(api_client):
    r = api_client.get(TRACK_URL, {"trackingNumber": "1Z12345E1234567890"})
    assert r.status_code == 401


def test_track_success(user_client, monkeypatch):
    seen = {}

    def fake_track_single(number, carrier=None):
        seen.update(number=number, carrier=carrier)
        return make_result(number, CanonicalStatus.IN_TRANSIT, status_description="Arrived at Facility")

    monkeypatch.setattr("domains.tracking.views.track_single", fake_track_single)

    r = user_client.post(TRACK_URL, {"trackingNumber": " 1Z12345E1234567890 "}, format="json")

    assert r.status_code == 200, r.content
    body = r.json()
    assert body["trackingNumber"] == "1Z12345E1234567890"
    assert body["status"] == "IN_TRANSIT"
    assert body["statusDescription"] == "Arrived at Facility"
    assert body["events"] == []
    assert "_meta" not in body
    assert seen == {"number": "1Z12345E1234567890", "carrier": None}


def test_track_accepts_snake_case_alias_and_carrier(user_client, monkeypatch):
    seen = {}

    def fake_track_single(number, carrier=None):
        seen.update(number=number, carrier=carrier)
        return make_result(number, CanonicalStatus.DELIVERED, CarrierTag.FEDEX)

    monkeypatch.setattr("domains.tracking.views.track_single", fake_track_single)

    r = user_client.get(TRACK_URL, {"tracking_number": "123456789012", "carrier": "FedEx"})

    assert r.status_code == 200
    assert seen == {"number": "123456789012", "carrier": "FedEx"}


@pytest.mark.parametrize("payload", [{}, {"trackingNumber": ""}, {"trackingNumber": "   "}, {"carrier": "UPS"}])
def test_track_validation_error(user_client, payload):
    r = user_client.post(TRACK_URL, payload, format="json")
    assert r.status_code == 400
    assert "trackingNumber" in r.json()


def test_track_unsupported_carrier(user_client):
    r = user_client.post(TRACK_URL, {"trackingNumber": "AB123456789GB"}, format="json")

    assert r.status_code == 400
    body = r.json()
    assert body["carrier"] == "ROYAL"
    assert body["supportedCarriers"] == ["UPS", "DHL", "FEDEX", "AFS", "GLS"]


def test_track_unknown_explicit_carrier(user_client):
    r = user_client.post(TRACK_URL, {"trackingNumber": "X1", "carrier": "PTT Kargo"}, format="json")
    assert r.status_code == 400
    assert r.json()["carrier"] == "UNKNOWN"


def test_track_degraded_result_is_200_with_meta(user_client, monkeypatch):
    monkeypatch.setattr(
        "domains.tracking.views.track_single",
        lambda number, carrier=None: make_result(
            number, CanonicalStatus.NOT_FOUND, error="Tracking number not found in UPS system"
        ),
    )

    r = user_client.get(TRACK_URL, {"trackingNumber": "1Z12345E1234567890"})

    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "NOT_FOUND"
    assert body["error"] == "Tracking number not found in UPS system"
    assert body["_meta"] == {"degraded": True, "carrierDetected": True}


def test_track_unconfigured_carrier_is_degraded_not_failed(user_client, settings):
    # 실제 어댑터 경로: 자격증명 없음 → 네트워크 호출 없이 ERROR 결과
    settings.CARRIERS = {**settings.CARRIERS, "dhl": {"base_url": "https://dhl.test"}}

    r = user_client.post(TRACK_URL, {"trackingNumber": "GM12345678", "carrier": "DHL"}, format="json")

    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ERROR"
    assert body["_meta"] == {"degraded": True, "carrierDetected": False}


def test_track_transport_failure_is_500(user_client, monkeypatch):
    def boom(number, carrier=None):
        raise TransportError("UPS request failed: timed out", carrier="UPS")

    monkeypatch.setattr("domains.tracking.views.track_single", boom)

    r = user_client.post(TRACK_URL, {"trackingNumber": "1Z12345E1234567890"}, format="json")

    assert r.status_code == 500
    assert r.json() == {"detail": "tracking failed", "error": "UPS request failed: timed out"}


# ─────────────────────────────────────────────────────────────
# 배치 실행 / 중단 (운영자)
# ─────────────────────────────────────────────────────────────
def test_batch_run_forbidden_for_regular_user(user_client):
    assert user_client.post(BATCH_URL).status_code == 403
    assert user_client.post(STOP_URL).status_code == 403


def test_batch_run_requires_authentication(api_client):
    assert api_client.post(BATCH_URL).status_code == 401


def test_batch_run_on_empty_database(staff_client):
    r = staff_client.post(BATCH_URL)
    assert r.status_code == 200
    body = r.json()
    assert body["totalShipments"] == 0
    assert body["cancelled"] is False
    assert body["errors"] == [] and body["results"] == []


def test_batch_run_returns_summary(staff_client, monkeypatch):
    summary = BatchTrackingResult(total_shipments=3, processed_shipments=2, updated_shipments=1, failed_shipments=1)
    summary.add_error("1Z999AA10000000002", "UPS", "UPS request failed: timeout")
    monkeypatch.setattr("domains.tracking.views.run_batch_tracking", lambda: summary)

    r = staff_client.post(BATCH_URL)

    assert r.status_code == 200
    body = r.json()
    assert body["totalShipments"] == 3
    assert body["failedShipments"] == 1
    assert body["errors"][0]["carrier"] == "UPS"


def test_batch_run_unexpected_failure_is_500(staff_client, monkeypatch):
    def boom():
        raise RuntimeError("database is locked")

    monkeypatch.setattr("domains.tracking.views.run_batch_tracking", boom)

    r = staff_client.post(BATCH_URL)

    assert r.status_code == 500
    assert r.json()["error"] == "database is locked"


def test_stop_sets_flag(staff_client):
    r = staff_client.post(STOP_URL)
    assert r.status_code == 202
    assert r.json() == {"detail": "stop requested"}
    assert stop_requested()


# ─────────────────────────────────────────────────────────────
# 택배사 목록 / JWT
# ─────────────────────────────────────────────────────────────
def test_carrier_list(user_client):
    r = user_client.get(CARRIERS_URL)
    assert r.status_code == 200
    codes = [c["code"] for c in r.json()]
    assert codes == ["UPS", "DHL", "FEDEX", "AFS", "GLS"]
    assert {"code": "AFS", "name": "AFS Transport"} in r.json()


def test_jwt_token_grants_access(api_client, user):
    r = api_client.post(
        "/api/v1/auth/token/", {"username": user.username, "password": user.raw_password}, format="json"
    )
    assert r.status_code == 200, r.content
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.json()['access']}")
    assert api_client.get(CARRIERS_URL).status_code == 200
