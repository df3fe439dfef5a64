# tests/test_tracking_status_map.py
import itertools

import pytest

from domains.shipments.models import ShipmentStatus
from domains.tracking.adapters import afs, dhl, fedex, ups
from domains.tracking.status_map import (
    LATTICE,
    SHIPMENT_STATUS_RANK,
    classify,
    lattice_rank,
    next_shipment_status,
    rule,
)
from domains.tracking.types import CanonicalStatus as S


# ─────────────────────────────────────────────────────────────
# 규칙 테이블 기본 동작
# ─────────────────────────────────────────────────────────────
def test_classify_first_match_wins_and_is_case_insensitive():
    rules = (rule(S.DELIVERED, "delivered"), rule(S.IN_TRANSIT, "transit", "deliver"))
    assert classify("Package DELIVERED", rules) is S.DELIVERED
    assert classify("in transit", rules) is S.IN_TRANSIT
    assert classify("nothing", rules) is None
    assert classify("nothing", rules, default=S.UNKNOWN) is S.UNKNOWN
    assert classify(None, rules, default=S.PRE_TRANSIT) is S.PRE_TRANSIT


def test_require_all_rule():
    r = rule(S.PRE_TRANSIT, "label", "not received", require_all=True)
    assert classify("label created, not received yet", (r,)) is S.PRE_TRANSIT
    assert classify("label created", (r,)) is None


def test_lattice_order():
    assert [lattice_rank(s) for s in LATTICE] == [0, 1, 2, 3]
    for side in (S.EXCEPTION, S.UNKNOWN, S.ERROR, S.NOT_FOUND):
        assert lattice_rank(side) is None


# ─────────────────────────────────────────────────────────────
# 단조 진행 정책
# ─────────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "current, canonical, expected",
    [
        (ShipmentStatus.APPROVED, S.IN_TRANSIT, ShipmentStatus.IN_TRANSIT),
        (ShipmentStatus.APPROVED, S.OUT_FOR_DELIVERY, ShipmentStatus.IN_TRANSIT),
        (ShipmentStatus.APPROVED, S.DELIVERED, ShipmentStatus.DELIVERED),
        (ShipmentStatus.PENDING, S.DELIVERED, ShipmentStatus.DELIVERED),
        (ShipmentStatus.IN_TRANSIT, S.DELIVERED, ShipmentStatus.DELIVERED),
        # in_transit 전진은 approved 에서만
        (ShipmentStatus.PENDING, S.IN_TRANSIT, None),
        (ShipmentStatus.IN_TRANSIT, S.IN_TRANSIT, None),
        (ShipmentStatus.IN_TRANSIT, S.OUT_FOR_DELIVERY, None),
        # 역행 금지
        (ShipmentStatus.DELIVERED, S.IN_TRANSIT, None),
        (ShipmentStatus.DELIVERED, S.PRE_TRANSIT, None),
        (ShipmentStatus.IN_TRANSIT, S.PRE_TRANSIT, None),
        # 종결/취소 상태는 건드리지 않음
        (ShipmentStatus.REJECTED, S.DELIVERED, None),
        (ShipmentStatus.CANCELLED, S.IN_TRANSIT, None),
        # side state 는 상태를 바꾸지 않음
        (ShipmentStatus.APPROVED, S.EXCEPTION, None),
        (ShipmentStatus.IN_TRANSIT, S.ERROR, None),
        (ShipmentStatus.APPROVED, S.UNKNOWN, None),
        (ShipmentStatus.APPROVED, S.NOT_FOUND, None),
    ],
)
def test_next_shipment_status(current, canonical, expected):
    assert next_shipment_status(current, canonical) == expected


def test_policy_is_monotonic_over_any_sequence():
    statuses = list(S)
    for seq in itertools.product(statuses, repeat=3):
        current = ShipmentStatus.APPROVED.value
        rank = SHIPMENT_STATUS_RANK[current]
        for canonical in seq:
            nxt = next_shipment_status(current, canonical)
            if nxt:
                assert SHIPMENT_STATUS_RANK[nxt] > rank
                current, rank = nxt, SHIPMENT_STATUS_RANK[nxt]
        if current == ShipmentStatus.DELIVERED:
            assert all(next_shipment_status(current, s) is None for s in statuses)


# ─────────────────────────────────────────────────────────────
# 택배사별 정규화 테이블
# ─────────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "code, description, status_type, expected",
    [
        ("MP", "Shipper created a label, UPS has not received the package yet.", "M", S.PRE_TRANSIT),
        ("MP", "Order Processed: Ready for UPS", "M", S.PRE_TRANSIT),
        ("003", "", None, S.PRE_TRANSIT),
        ("KB", "DELIVERED", "D", S.DELIVERED),
        ("OT", "Out For Delivery Today", "I", S.OUT_FOR_DELIVERY),
        ("AR", "Arrived at Facility", "I", S.IN_TRANSIT),
        ("XX", "Export Scan", "I", S.IN_TRANSIT),
        ("", "Something unusual", "D", S.DELIVERED),
        ("", "Something unusual", None, S.IN_TRANSIT),
        # 라벨 문구 하나만 있으면 PRE_TRANSIT 아님
        ("", "Shipper created a label", None, S.IN_TRANSIT),
    ],
)
def test_ups_normalize(code, description, status_type, expected):
    assert ups.normalize_status(code, description, status_type) is expected


@pytest.mark.parametrize(
    "code, description, expected",
    [
        ("pre-transit", "Shipment information received", S.PRE_TRANSIT),
        ("transit", "DATA RECEIVED", S.PRE_TRANSIT),
        ("delivered", "Delivered - Signed for by: J DOE", S.DELIVERED),
        ("transit", "With delivery courier", S.OUT_FOR_DELIVERY),
        ("transit", "Processed at LEIPZIG - GERMANY", S.IN_TRANSIT),
        ("transit", "Customs cleared", S.IN_TRANSIT),
        ("transit", "", S.IN_TRANSIT),
        ("exception", "Weather delay", S.IN_TRANSIT),
        ("failure", "", S.PRE_TRANSIT),
        ("", "", S.PRE_TRANSIT),
    ],
)
def test_dhl_normalize(code, description, expected):
    assert dhl.normalize_status(code, description) is expected


@pytest.mark.parametrize(
    "code, expected",
    [
        ("OC", S.PRE_TRANSIT),
        ("IT", S.IN_TRANSIT),
        ("PU", S.IN_TRANSIT),
        ("AR", S.IN_TRANSIT),
        ("OD", S.OUT_FOR_DELIVERY),
        ("DL", S.DELIVERED),
        ("DE", S.DELIVERED),
        ("CA", S.EXCEPTION),
        ("HL", S.EXCEPTION),
        ("EX", S.EXCEPTION),
        ("XDL", S.DELIVERED),
        ("SE", S.IN_TRANSIT),
        ("", S.IN_TRANSIT),
    ],
)
def test_fedex_normalize(code, expected):
    assert fedex.normalize_status(code) is expected


@pytest.mark.parametrize(
    "durum, expected",
    [
        ("Teslim Edildi", S.DELIVERED),
        ("Delivered", S.DELIVERED),
        ("Dağıtımda", S.OUT_FOR_DELIVERY),
        ("Teslimat için kuryede", S.OUT_FOR_DELIVERY),
        ("Transfer merkezinde", S.IN_TRANSIT),
        ("Gümrük işlemlerinde", S.IN_TRANSIT),
        ("Gönderi hazırlanıyor", S.PRE_TRANSIT),
        ("Etiketlendi", S.PRE_TRANSIT),
        ("Adres sorunu", S.EXCEPTION),
        ("Teslim edilemedi", S.EXCEPTION),
        ("teslim edilemedi - alıcı adreste yok", S.EXCEPTION),
        ("Undelivered", S.EXCEPTION),
        ("Kabul edildi", S.IN_TRANSIT),
        ("", S.UNKNOWN),
        ("???", S.UNKNOWN),
    ],
)
def test_afs_normalize(durum, expected):
    assert afs.normalize_status(durum) is expected
