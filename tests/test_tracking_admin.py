# tests/test_tracking_admin.py
import base64
from unittest.mock import Mock

import pytest
import requests
from django.test import Client

from domains.tracking.adapters.afs import AFSAdapter

from .factories import create_user, make_response

pytestmark = pytest.mark.django_db

CHANGELIST = "/admin/shipments/shipment/"


@pytest.fixture
def admin_client_(settings):
    # collectstatic 없이 admin 템플릿 렌더링
    settings.STORAGES = {
        **settings.STORAGES,
        "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
    }
    c = Client()
    c.force_login(create_user(is_staff=True, is_superuser=True))
    return c


def _run_action(client, action, shipments):
    return client.post(
        CHANGELIST,
        {"action": action, "_selected_action": [str(s.id) for s in shipments]},
        follow=True,
    )


def test_changelist_renders(admin_client_, shipment_factory):
    shipment_factory(tracking_info={"status": "IN_TRANSIT"})
    r = admin_client_.get(CHANGELIST)
    assert r.status_code == 200
    assert b"IN_TRANSIT" in r.content


def test_refresh_tracking_action(admin_client_, shipment_factory, settings):
    # UPS 자격증명 미설정 → 네트워크 없이 ERROR 결과가 저장된다
    settings.CARRIERS = {**settings.CARRIERS, "ups": {"base_url": "https://ups.test"}}
    s = shipment_factory(carrier_tracking_number="1Z999AA10000000001")

    r = _run_action(admin_client_, "refresh_tracking", [s])

    s.refresh_from_db()
    assert r.status_code == 200
    assert s.tracking_info["status"] == "ERROR"
    assert b"Tracking refreshed" in r.content


def test_run_batch_tracking_action_queues_task(admin_client_, shipment_factory, monkeypatch):
    task = Mock()
    monkeypatch.setattr("domains.tracking.tasks.run_batch_tracking", task)

    r = _run_action(admin_client_, "run_batch_tracking", [shipment_factory()])

    task.delay.assert_called_once_with()
    assert b"Batch tracking queued." in r.content


def test_retrieve_afs_label_action(admin_client_, shipment_factory, monkeypatch):
    pdf = b"%PDF-1.7\n" + b"1" * 500
    s = shipment_factory(afs_barkod="MGS1", carrier_name="AFS")
    other = shipment_factory(carrier_tracking_number="1Z999AA10000000009")  # barkod 없음 → 무시

    monkeypatch.setattr(
        AFSAdapter,
        "create_label",
        lambda self, barkod: {"success": True, "barkod": barkod, "waybill_pdf": f"https://afs.test/{barkod}.pdf", "error": None},
    )
    session = Mock(spec=requests.Session)
    session.get.return_value = make_response(200, content=pdf)
    monkeypatch.setattr("domains.tracking.labels.build_session", lambda **kw: session)

    _run_action(admin_client_, "retrieve_afs_label", [s, other])

    s.refresh_from_db()
    other.refresh_from_db()
    assert base64.b64decode(s.carrier_label_pdf) == pdf
    assert other.carrier_label_pdf == ""
    session.get.assert_called_once()
