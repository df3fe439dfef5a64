# domains/tracking/labels.py
"""
AFS 라벨 PDF 확보.

전략을 순서대로 시도하고 첫 성공에서 멈춘다.
  1) waybill_pdf URL 직접 다운로드
  2) barkod 로 만든 대체 URL 들
  3) 전부 실패하면 URL 만 보관
"""
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

import requests
from django.conf import settings

from domains.shipments.models import Shipment, update_shipment

from .adapters.http import build_session, default_timeout

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"

ALTERNATIVE_LABEL_URLS = (
    "https://panel.afstransport.com/waybill_pdf/{barkod}.pdf",
    "https://panel.afstransport.com/pdf/{barkod}.pdf",
    "https://api.afstransport.com/waybill/{barkod}.pdf",
)


@dataclass(frozen=True)
class LabelArtifact:
    pdf_base64: Optional[str] = None
    url: Optional[str] = None
    source: Optional[str] = None  # 성공한 URL

    @property
    def has_pdf(self) -> bool:
        return bool(self.pdf_base64)


def is_valid_pdf(payload: bytes, min_bytes: Optional[int] = None) -> bool:
    if min_bytes is None:
        min_bytes = settings.TRACKING["LABEL_MIN_BYTES"]
    return bool(payload) and payload[:4] == PDF_MAGIC and len(payload) > min_bytes


def _download(session: requests.Session, url: str) -> Optional[bytes]:
    try:
        resp = session.get(url, timeout=default_timeout())
    except requests.RequestException as e:
        logger.info("label download failed %s: %s", url, e)
        return None
    if not resp.ok:
        logger.info("label download %s -> HTTP %s", url, resp.status_code)
        return None
    if not is_valid_pdf(resp.content):
        logger.info("label download %s: not a PDF or too small (%s bytes)", url, len(resp.content))
        return None
    return resp.content


def candidate_urls(waybill: Mapping[str, Any], templates: Iterable[str] = ALTERNATIVE_LABEL_URLS):
    primary = waybill.get("waybill_pdf")
    if primary:
        yield primary
    barkod = waybill.get("barkod")
    if barkod:
        for t in templates:
            yield t.format(barkod=barkod)


def retrieve_label(
    waybill: Mapping[str, Any],
    *,
    session: Optional[requests.Session] = None,
    templates: Iterable[str] = ALTERNATIVE_LABEL_URLS,
) -> LabelArtifact:
    session = session or build_session(retries=0)
    for url in candidate_urls(waybill, templates):
        content = _download(session, url)
        if content is not None:
            return LabelArtifact(pdf_base64=base64.b64encode(content).decode("ascii"), source=url)

    fallback = waybill.get("waybill_pdf")
    if fallback:
        logger.warning("all label download strategies failed, keeping URL %s", fallback)
    return LabelArtifact(url=fallback or None)


def store_carrier_label(shipment: Shipment, waybill: Mapping[str, Any], **kwargs) -> LabelArtifact:
    artifact = retrieve_label(waybill, **kwargs)
    if artifact.has_pdf:
        fields = {"carrier_label_pdf": artifact.pdf_base64}
    elif artifact.url:
        fields = {"carrier_label_url": artifact.url}
    else:
        return artifact

    if not update_shipment(shipment.id, shipment.version, **fields):
        # 버전 충돌: 라벨 필드는 다른 곳에서 건드리지 않으므로 최신 버전으로 한 번 더
        current = Shipment.objects.only("version").get(id=shipment.id)
        update_shipment(shipment.id, current.version, **fields)
    return artifact
