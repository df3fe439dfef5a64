# domains/tracking/adapters/base.py
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import requests
from django.conf import settings

from ..detection import carrier_tracking_url
from ..exceptions import ParseError, TransportError
from ..types import CanonicalStatus, CarrierTag, TrackingResult
from .http import build_session, default_timeout

logger = logging.getLogger(__name__)


class CarrierAdapter:
    """
    각 택배사 어댑터의 공통 인터페이스.

    track() 계약:
      - 택배사가 알려준 "기록 없음" / "인증 실패" 는 NOT_FOUND / ERROR 결과로 반환
      - 네트워크/HTTP 실패(TransportError), 본문 파싱 실패(ParseError)만 밖으로 전파
    """

    carrier: CarrierTag = CarrierTag.UNKNOWN
    # settings.CARRIERS 의 키
    settings_key: str = ""

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        config: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ):
        self.config: Mapping[str, Any] = (
            config if config is not None else settings.CARRIERS.get(self.settings_key, {})
        )
        self.session = session or build_session()
        self.timeout = timeout if timeout is not None else default_timeout()

    def track(self, tracking_number: str) -> TrackingResult:
        raise NotImplementedError

    # ── HTTP helpers ─────────────────────────────────────────
    def _request(
        self, method: str, url: str, *, session: Optional[requests.Session] = None, **kwargs
    ) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        try:
            return (session or self.session).request(method, url, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{self.carrier.value} request failed: {e}", carrier=self.carrier.value) from e

    def _json(self, response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise ParseError(
                f"Invalid response format from {self.carrier.value} API", carrier=self.carrier.value
            ) from e
        if not isinstance(data, dict):
            raise ParseError(
                f"Unexpected response body from {self.carrier.value} API", carrier=self.carrier.value
            )
        return data

    @staticmethod
    def _json_or_empty(response: requests.Response) -> Dict[str, Any]:
        """에러 응답 본문용: 파싱 실패는 빈 dict"""
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _raise_for_transport(self, response: requests.Response, what: str = "tracking") -> None:
        if not response.ok:
            raise TransportError(
                f"{self.carrier.value} {what} request failed: {response.status_code} {response.reason}",
                carrier=self.carrier.value,
            )

    # ── 결과 생성 ────────────────────────────────────────────
    def _result(
        self, tracking_number: str, status: CanonicalStatus, description: str, **extra
    ) -> TrackingResult:
        extra.setdefault("tracking_url", carrier_tracking_url(tracking_number, self.carrier))
        return TrackingResult(
            tracking_number=tracking_number,
            carrier=self.carrier,
            status=status,
            status_description=description,
            **extra,
        )

    def _error(self, tracking_number: str, description: str, error: str) -> TrackingResult:
        logger.warning("%s tracking error for %s: %s", self.carrier.value, tracking_number, error)
        return self._result(tracking_number, CanonicalStatus.ERROR, description, error=error)

    def _not_found(self, tracking_number: str, description: str, error: str) -> TrackingResult:
        return self._result(tracking_number, CanonicalStatus.NOT_FOUND, description, error=error)


def join_location(*parts: Optional[str]) -> str:
    return ", ".join(p for p in parts if p)
