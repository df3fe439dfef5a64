# domains/tracking/exceptions.py
from __future__ import annotations

from typing import Iterable, Optional


class TrackingError(Exception):
    """추적 엔진 공통 예외"""

    def __init__(self, message: str, *, carrier: Optional[str] = None):
        super().__init__(message)
        self.carrier = carrier


class AuthenticationError(TrackingError):
    """택배사 자격증명/토큰 발급 실패. 어댑터가 ERROR 결과로 변환한다."""


class NotFoundError(TrackingError):
    """조회할 배송건/운송장이 없음 (재시도 무의미)"""


class TransportError(TrackingError):
    """네트워크/HTTP 실패. 어댑터 밖으로 전파된다."""


class ParseError(TrackingError):
    """택배사 응답 본문 파싱 실패. 어댑터 밖으로 전파된다."""


class UnsupportedCarrierError(TrackingError):
    def __init__(self, carrier: str, supported: Iterable[str] = ()):
        self.supported = list(supported)
        super().__init__(f"Unsupported carrier: {carrier}", carrier=carrier)
