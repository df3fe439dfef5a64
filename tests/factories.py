import itertools
import json
from typing import Any, Dict, List, Optional
from uuid import uuid4

import requests
from django.contrib.auth import get_user_model

from domains.shipments.models import Shipment, ShipmentStatus
from domains.tracking.adapters.base import CarrierAdapter
from domains.tracking.types import CanonicalStatus, CarrierTag, TrackingResult

_seq = itertools.count(1)
User = get_user_model()


def create_user(password="Test1234!A", is_staff=False, **extra):
    username = extra.pop("username", f"user_{uuid4().hex[:6]}")
    extra.setdefault("email", f"{username}@example.com")
    u = User.objects.create_user(username=username, password=password, is_staff=is_staff, **extra)
    # ✅ 로그인 테스트용 원문 비밀번호 보관
    u.raw_password = password
    return u


def create_shipment(**kw) -> Shipment:
    """
    기본: 승인된 UPS 건. carrier_tracking_number 등은 kw 로 덮어쓴다.
    """
    n = next(_seq)
    kw.setdefault("tracking_number", f"PLT-{n:05d}")
    if not any(kw.get(k) for k in ("carrier_tracking_number", "manual_tracking_number", "afs_barkod")):
        kw["carrier_tracking_number"] = f"1Z999AA1{n:010d}"
    kw.setdefault("status", ShipmentStatus.APPROVED)
    return Shipment.objects.create(**kw)


def make_response(
    status: int = 200,
    json_body: Any = None,
    content: Optional[bytes] = None,
    reason: str = "",
) -> requests.Response:
    """실제 requests.Response 로 .ok / .json() / .text 동작을 그대로 쓴다."""
    r = requests.Response()
    r.status_code = status
    r.reason = reason or ("OK" if status < 400 else "Error")
    r.encoding = "utf-8"
    if json_body is not None:
        r._content = json.dumps(json_body).encode("utf-8")
        r.headers["Content-Type"] = "application/json"
    else:
        r._content = content or b""
    return r


def make_result(
    tracking_number: str,
    status: CanonicalStatus = CanonicalStatus.IN_TRANSIT,
    carrier: CarrierTag = CarrierTag.UPS,
    **extra,
) -> TrackingResult:
    return TrackingResult(
        tracking_number=tracking_number,
        carrier=carrier,
        status=status,
        status_description=extra.pop("status_description", status.value.replace("_", " ").title()),
        **extra,
    )


class FakeAdapter(CarrierAdapter):
    """
    번호별 응답표를 가진 가짜 어댑터.
    responses[number] 가 Exception 이면 raise, TrackingResult 면 그대로 반환.
    """

    def __init__(self, carrier: CarrierTag, responses: Dict[str, Any]):
        self.carrier = carrier
        self.responses = responses
        self.calls: List[str] = []

    def track(self, tracking_number: str) -> TrackingResult:
        self.calls.append(tracking_number)
        value = self.responses.get(tracking_number)
        if isinstance(value, Exception):
            raise value
        if value is None:
            return make_result(tracking_number, CanonicalStatus.NOT_FOUND, self.carrier, error="no data")
        return value
