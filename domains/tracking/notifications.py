# domains/tracking/notifications.py
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

NOTIFICATION_KINDS = ("status_changed", "customs_charges_due", "carrier_exception")


@dataclass
class ShipmentSnapshot:
    id: str
    tracking_number: str
    customer_tracking_number: str
    carrier_name: str
    status: str
    tracking_status: Optional[str]
    tracking_description: Optional[str]
    last_tracked_at: Optional[str]


def _dump_shipment(shipment) -> Dict[str, Any]:
    info = shipment.tracking_info or {}
    return asdict(ShipmentSnapshot(
        id=str(shipment.id),
        tracking_number=shipment.tracking_number,
        customer_tracking_number=shipment.customer_tracking_number,
        carrier_name=shipment.carrier_name or "",
        status=shipment.status,
        tracking_status=info.get("status"),
        tracking_description=info.get("statusDescription"),
        last_tracked_at=shipment.last_tracked_at.isoformat() if shipment.last_tracked_at else None,
    ))


def build_payload(kind: str, shipment, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    if kind not in NOTIFICATION_KINDS:
        raise ValueError(f"Unknown notification kind: {kind}")
    return {"type": kind, "shipment": _dump_shipment(shipment), "meta": meta or {}}


def send_notification(kind: str, shipment, meta: Optional[Dict[str, Any]] = None) -> bool:
    """
    kind: "status_changed" | "customs_charges_due" | "carrier_exception"
    웹훅 미설정이면 로그만 남긴다. 반환: 웹훅 전송 성공 여부.
    """
    payload = build_payload(kind, shipment, meta)
    url = getattr(settings, "SHIPMENTS_NOTIFY_WEBHOOK", None)
    if not url:
        logger.info("[NOTIFY] %s", json.dumps(payload, ensure_ascii=False))
        return False

    try:
        resp = requests.post(url, json=payload, timeout=5)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.error("[NOTIFY] webhook failed (%s, shipment=%s): %s", kind, shipment.id, e)
        return False
    return True
