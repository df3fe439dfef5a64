# tests/test_tracking_detection.py
import pytest

from domains.tracking.detection import (
    carrier_from_name,
    carrier_tracking_url,
    detect_carrier,
    resolve_carrier,
)
from domains.tracking.types import CarrierTag


@pytest.mark.parametrize(
    "number, expected",
    [
        ("1Z12345E1234567890", CarrierTag.UPS),
        ("  1z12345e1234567890 ", CarrierTag.UPS),
        ("AB123456789GB", CarrierTag.ROYAL),
        ("123456789012", CarrierTag.FEDEX),
        ("123456789012345", CarrierTag.FEDEX),
        ("12345678901234567890", CarrierTag.FEDEX),
        ("003123456789012", CarrierTag.AFS),  # 003 + 12 자리: DHL 숫자 대역보다 AFS 우선
        ("MGS_ABC123", CarrierTag.AFS),
        ("MGS99X", CarrierTag.AFS),
        ("1234567", CarrierTag.AFS),
        ("12345678901", CarrierTag.GLS),
        ("50123456789012", CarrierTag.GLS),
        ("5912345678", CarrierTag.GLS),
        ("1234567890123456", CarrierTag.DHL),
        ("GM12345678", CarrierTag.DHL),
        ("JX1234567ABC", CarrierTag.DHL),
        ("1234567890123", CarrierTag.DHL),
        ("12345678901234", CarrierTag.DHL),
    ],
)
def test_detect_known_formats(number, expected):
    assert detect_carrier(number) is expected


@pytest.mark.parametrize("value", ["", "   ", None, 12345, "hello world", "1Z123", "ABC", "5012345"[:3]])
def test_detect_is_total_and_defaults_to_unknown(value):
    tag = detect_carrier(value)
    assert isinstance(tag, CarrierTag)
    assert tag is CarrierTag.UNKNOWN


def test_detect_never_raises_on_arbitrary_strings():
    for s in ["%%%", "1Z" + "!" * 16, "\n", "0" * 40, "ß" * 10, "003", "GB123456789GB"]:
        assert isinstance(detect_carrier(s), CarrierTag)


def test_detect_is_deterministic():
    assert {detect_carrier("123456789012") for _ in range(5)} == {CarrierTag.FEDEX}


@pytest.mark.parametrize(
    "name, expected",
    [
        ("UPS Express", CarrierTag.UPS),
        ("dhl", CarrierTag.DHL),
        ("FedEx Ground", CarrierTag.FEDEX),
        ("AFS Transport", CarrierTag.AFS),
        ("afs", CarrierTag.AFS),
        ("GLS", CarrierTag.GLS),
        ("Royal Mail", CarrierTag.ROYAL),
        ("", CarrierTag.UNKNOWN),
        (None, CarrierTag.UNKNOWN),
        ("PTT Kargo", CarrierTag.UNKNOWN),
    ],
)
def test_carrier_from_name(name, expected):
    assert carrier_from_name(name) is expected


def test_resolve_prefers_recorded_carrier_over_detection():
    # 12자리 숫자는 FedEx 로 추정되지만 기록된 택배사가 우선
    assert resolve_carrier("DHL Express", "123456789012") is CarrierTag.DHL
    assert resolve_carrier("", "123456789012") is CarrierTag.FEDEX
    assert resolve_carrier("Unknown Co", "1Z12345E1234567890") is CarrierTag.UPS


def test_public_tracking_urls():
    assert carrier_tracking_url("1Z12345E1234567890", CarrierTag.UPS).endswith("tracknum=1Z12345E1234567890")
    assert "tracking-id=123" in carrier_tracking_url("123", CarrierTag.DHL)
    assert carrier_tracking_url("12345678901", CarrierTag.GLS).endswith("match=12345678901")
    assert carrier_tracking_url("MGS1", CarrierTag.AFS) is None
    assert carrier_tracking_url("", CarrierTag.UPS) is None
