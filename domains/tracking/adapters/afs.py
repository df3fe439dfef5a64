# domains/tracking/adapters/afs.py
"""
AFS Transport 어댑터.

단일 JSON POST 엔드포인트를 islem 필드로 구분해 쓴다.
  - kargo_takip     : 추적 (barkod = AFS 내부 참조번호)
  - etiket_olustur  : 라벨 재발급 (waybill_pdf URL 반환)
상태 텍스트는 터키어. GLS 로 넘어간 건은 gls_takip_kodu 를 함께 준다.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import requests

from ..status_map import classify, rule
from ..types import CanonicalStatus as S
from ..types import CarrierTag, TrackingEvent, TrackingResult, now_iso
from .base import CarrierAdapter
from .http import build_session

logger = logging.getLogger(__name__)


AFS_STATUS_RULES = (
    # 배달 실패 문구는 "teslim"/"delivered" 를 포함하므로 배달완료보다 먼저 본다
    rule(S.EXCEPTION, "edilemedi", "edilemiyor", "undelivered", "not delivered", "delivery failed"),
    rule(S.DELIVERED, "teslim edildi", "delivered"),
    # "teslimat"(배송) 가 "teslim" 에 먼저 걸려 배달완료로 오판되지 않도록 배송중 문구를 먼저 본다
    rule(S.OUT_FOR_DELIVERY, "dagitimda", "dagıtımda", "dağıtımda", "dağitimda", "out for delivery", "teslimat", "kurye"),
    rule(S.DELIVERED, "teslim"),
    rule(S.IN_TRANSIT, "transit", "yolda", "aktarma", "transfer", "gümrük", "customs"),
    rule(S.PRE_TRANSIT, "hazırlanıyor", "hazırlaniyor", "preparing", "etiketlendi", "labeled", "başlatıldı"),
    rule(S.EXCEPTION, "problem", "sorun", "exception", "hata", "error", "delay"),
    # 그 외 처리 진행 문구
    rule(S.IN_TRANSIT, "işlem", "process", "alındı", "received", "kabul"),
)


def normalize_status(durum: Optional[str]) -> S:
    return classify(durum, AFS_STATUS_RULES, default=S.UNKNOWN)


class AFSAdapter(CarrierAdapter):
    carrier = CarrierTag.AFS
    settings_key = "afs"

    def __init__(self, *, label_session: Optional[requests.Session] = None, **kwargs):
        super().__init__(**kwargs)
        self._label_session = label_session

    @property
    def label_session(self) -> requests.Session:
        # 라벨 발급 POST 는 멱등이 아니므로 재시도하지 않는다
        if self._label_session is None:
            self._label_session = build_session(retries=0)
        return self._label_session

    @property
    def api_url(self) -> str:
        return self.config.get("api_url") or ""

    def track(self, tracking_number: str) -> TrackingResult:
        api_key = self.config.get("api_key")
        if not api_key:
            return self._error(tracking_number, "AFS API not configured", "AFS API key not configured")

        resp = self._request(
            "POST",
            self.api_url,
            json={"islem": "kargo_takip", "barkod": tracking_number},
            headers={"x-api-key": api_key},
        )
        self._raise_for_transport(resp)
        return self.parse(tracking_number, self._json(resp))

    def parse(self, tracking_number: str, data: Dict[str, Any]) -> TrackingResult:
        if not data.get("success"):
            message = data.get("error") or data.get("mesaj") or "AFS tracking request failed"
            return self._not_found(tracking_number, message, message)

        durum = data.get("durum") or ""
        detail = [d for d in (data.get("takip_detay") or []) if isinstance(d, dict)]
        events = tuple(
            TrackingEvent(
                timestamp=f"{d.get('tarih', '')} {d.get('saat', '')}".strip(),
                status=d.get("durum") or "",
                location=d.get("yer") or "",
                description=d.get("aciklama") or "",
            )
            for d in detail
        )
        # 가장 최근 이벤트가 맨 앞
        latest = events[0] if events else None

        status = normalize_status(durum)
        logger.debug("AFS %s: durum=%s -> %s", tracking_number, durum, status.value)

        return self._result(
            tracking_number,
            status,
            data.get("durum_aciklama") or durum or "Unknown status",
            status_time=(latest.timestamp if latest and latest.timestamp else now_iso()),
            location=(latest.location or None) if latest else None,
            events=events,
            carrier_status_code=durum or None,
            downstream_tracking_number=(data.get("gls_takip_kodu") or "").strip() or None,
        )

    def create_label(self, barkod: str) -> Dict[str, Any]:
        """
        라벨 재발급 요청. ArtifactRetriever 입력 형식으로 반환:
          {"success": bool, "barkod": str, "waybill_pdf": url | None, "error": str | None}
        """
        resp = self._request(
            "POST",
            self.api_url,
            session=self.label_session,
            data={
                "api_key": self.config.get("api_key") or "",
                "data": json.dumps({"islem": "etiket_olustur", "barkod": barkod}),
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        self._raise_for_transport(resp, what="label")
        data = self._json(resp)
        if data.get("waybill_pdf"):
            return {"success": True, "barkod": barkod, "waybill_pdf": data["waybill_pdf"], "error": None}
        return {
            "success": False,
            "barkod": barkod,
            "waybill_pdf": None,
            "error": data.get("error") or data.get("mesaj") or "Label creation failed",
        }
