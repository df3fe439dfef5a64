# domains/tracking/adapters/gls.py
from __future__ import annotations

from ..types import CanonicalStatus, CarrierTag, TrackingResult
from .base import CarrierAdapter

GLS_SENTINEL_DESCRIPTION = "Tracking available on GLS website"


class GLSAdapter(CarrierAdapter):
    """
    GLS 는 공개 API 가 없다. 외부 조회 URL 만 담은 고정 결과를 돌려준다.
    UNKNOWN 이므로 배치에서 상태를 바꾸지 않는다.
    """

    carrier = CarrierTag.GLS
    settings_key = "gls"

    def track(self, tracking_number: str) -> TrackingResult:
        return self._result(tracking_number, CanonicalStatus.UNKNOWN, GLS_SENTINEL_DESCRIPTION)
