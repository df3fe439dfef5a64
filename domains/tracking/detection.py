# domains/tracking/detection.py
"""
운송장 번호 → 택배사 추정.

관측된 택배사 포맷 기반의 휴리스틱. 숫자 길이 대역이 FedEx/GLS/DHL 간에
겹치기 때문에 규칙 평가 순서가 곧 의미다. 기록된 택배사명이 있으면 항상
그것을 우선한다 (resolve_carrier).
"""
from __future__ import annotations

import re
from typing import Callable, Optional, Sequence, Tuple

from django.conf import settings

from .types import CarrierTag

Predicate = Callable[[str], bool]


def _full(pattern: str) -> Predicate:
    rx = re.compile(pattern)
    return lambda s: rx.fullmatch(s) is not None


def _is_gls(s: str) -> bool:
    if not re.fullmatch(r"\d{10,15}", s):
        return False
    return len(s) in (11, 12) or s.startswith(("50", "59"))


def _is_dhl(s: str) -> bool:
    if re.fullmatch(r"\d{16,30}", s) and not s.startswith("003"):
        return True
    if re.fullmatch(r"(GM|RX|JV|CV|TV|JX)[A-Z0-9]{7,12}", s):
        return True
    return bool(re.fullmatch(r"\d{13,15}", s)) and not s.startswith(("50", "59"))


def _any(*preds: Predicate) -> Predicate:
    return lambda s: any(p(s) for p in preds)


# 순서 중요: 앞선 규칙이 겹치는 포맷을 가져간다.
DETECTION_RULES: Sequence[Tuple[CarrierTag, Predicate]] = (
    (CarrierTag.UPS, _full(r"1Z[A-Z0-9]{16}")),
    # AFS 내부 참조번호가 DHL 숫자 대역과 겹치므로 DHL 보다 먼저
    (
        CarrierTag.AFS,
        _any(_full(r"MGS_?[A-Z0-9]+"), _full(r"\d{6,8}"), _full(r"003\d{11,14}")),
    ),
    (CarrierTag.ROYAL, _full(r"[A-Z]{2}\d{9}GB")),
    (CarrierTag.FEDEX, _any(_full(r"\d{12}"), _full(r"\d{15}"), _full(r"\d{20}"))),
    (CarrierTag.GLS, _is_gls),
    (CarrierTag.DHL, _is_dhl),
)


def normalize_tracking_number(value) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().upper()


def detect_carrier(tracking_number) -> CarrierTag:
    """항상 하나의 태그를 반환. 예외 없음."""
    s = normalize_tracking_number(tracking_number)
    if not s:
        return CarrierTag.UNKNOWN
    for tag, predicate in DETECTION_RULES:
        if predicate(s):
            return tag
    return CarrierTag.UNKNOWN


# 기록된 택배사명(자유 텍스트) 부분 문자열 매칭. 순서대로 검사.
_NAME_HINTS: Sequence[Tuple[Tuple[str, ...], CarrierTag]] = (
    (("ups",), CarrierTag.UPS),
    (("dhl",), CarrierTag.DHL),
    (("fedex",), CarrierTag.FEDEX),
    (("afs", "transport"), CarrierTag.AFS),
    (("gls",), CarrierTag.GLS),
    (("royal", "mail"), CarrierTag.ROYAL),
)


def carrier_from_name(name: Optional[str]) -> CarrierTag:
    s = (name or "").strip().lower()
    if not s:
        return CarrierTag.UNKNOWN
    for hints, tag in _NAME_HINTS:
        if any(h in s for h in hints):
            return tag
    return CarrierTag.UNKNOWN


def resolve_carrier(carrier_name: Optional[str], tracking_number) -> CarrierTag:
    """기록된 택배사명 우선, 없거나 알 수 없으면 번호로 추정."""
    recorded = carrier_from_name(carrier_name)
    if recorded is not CarrierTag.UNKNOWN:
        return recorded
    return detect_carrier(tracking_number)


_PUBLIC_TRACKING_URLS = {
    CarrierTag.UPS: "https://www.ups.com/track?loc=en_US&tracknum={tracking_number}",
    CarrierTag.DHL: "https://www.dhl.com/us-en/home/tracking.html?tracking-id={tracking_number}",
    CarrierTag.FEDEX: "https://www.fedex.com/apps/fedextrack/?tracknumbers={tracking_number}",
    CarrierTag.ROYAL: "https://www.royalmail.com/track-your-item#/details/{tracking_number}",
}


def carrier_tracking_url(tracking_number: str, carrier: CarrierTag) -> Optional[str]:
    """고객용 택배사 조회 페이지 URL. GLS 는 설정값 템플릿 사용."""
    if carrier is CarrierTag.GLS:
        template = settings.CARRIERS["gls"]["tracking_url"]
    else:
        template = _PUBLIC_TRACKING_URLS.get(carrier)
    if not template or not tracking_number:
        return None
    return template.format(tracking_number=tracking_number)
