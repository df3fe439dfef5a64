# domains/tracking/adapters/dhl.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..status_map import classify, first_of, rule
from ..types import CanonicalStatus as S
from ..types import CarrierTag, TrackingEvent, TrackingResult, now_iso
from .base import CarrierAdapter, join_location

logger = logging.getLogger(__name__)


DHL_TEXT_RULES = (
    rule(
        S.PRE_TRANSIT,
        "electronic notification received",
        "shipment information received",
        "data received",
        "shipment prepared",
    ),
    rule(S.DELIVERED, "delivered", "successful delivery"),
    rule(S.OUT_FOR_DELIVERY, "out for delivery", "with delivery courier"),
    rule(
        S.IN_TRANSIT,
        "in transit",
        "processed at",
        "departed facility",
        "arrived at facility",
        "shipment on hold",
        "customs cleared",
        "picked up",
        "collected",
    ),
)

# shipment/event statusCode. exception 은 진행중으로 본다.
DHL_STATUS_CODES = {
    "pre-transit": S.PRE_TRANSIT,
    "transit": S.IN_TRANSIT,
    "delivered": S.DELIVERED,
    "exception": S.IN_TRANSIT,
    "unknown": S.PRE_TRANSIT,
}


def normalize_status(code: Optional[str], description: Optional[str]) -> S:
    key = (code or "").strip().lower().replace("_", "-")
    return first_of(
        classify(description, DHL_TEXT_RULES),
        DHL_STATUS_CODES.get(key),
        default=S.PRE_TRANSIT,
    )


def _location(event: Dict[str, Any]) -> str:
    address = ((event or {}).get("location") or {}).get("address") or {}
    return join_location(
        address.get("addressLocality"), address.get("addressRegion"), address.get("countryCode")
    )


class DHLAdapter(CarrierAdapter):
    carrier = CarrierTag.DHL
    settings_key = "dhl"

    def track(self, tracking_number: str) -> TrackingResult:
        api_key = self.config.get("api_key")
        if not api_key:
            return self._error(tracking_number, "DHL API not configured", "DHL API key not configured")

        base_url = (self.config.get("base_url") or "").rstrip("/")
        resp = self._request(
            "GET",
            f"{base_url}/track/shipments",
            params={"trackingNumber": tracking_number},
            headers={"DHL-API-Key": api_key},
        )

        if resp.status_code == 404:
            return self._not_found(
                tracking_number, "Tracking information not found", "Tracking number not found in DHL system"
            )
        if resp.status_code in (401, 403):
            return self._error(
                tracking_number, "Authentication error with DHL API", "DHL API authentication failed"
            )
        self._raise_for_transport(resp)

        return self.parse(tracking_number, self._json(resp))

    def parse(self, tracking_number: str, data: Dict[str, Any]) -> TrackingResult:
        shipments = data.get("shipments") or []
        if not shipments:
            return self._not_found(
                tracking_number, "No tracking information available", "No shipment data returned from DHL"
            )

        shipment = shipments[0] or {}
        raw_events = shipment.get("events") or []
        latest = raw_events[0] if raw_events else None
        shipment_status = shipment.get("status") or {}

        if latest:
            code = latest.get("statusCode") or ""
            description = latest.get("description") or code or "In Transit"
            status_time = latest.get("timestamp") or now_iso()
        elif shipment_status.get("statusCode"):
            code = shipment_status.get("statusCode") or ""
            description = shipment_status.get("description") or code or "Pre-transit"
            status_time = shipment_status.get("timestamp") or now_iso()
        else:
            # 이벤트도 상태도 없지만 건 자체는 조회됨
            code = "pre-transit"
            description = "Shipment information received"
            status_time = now_iso()

        events = tuple(
            TrackingEvent(
                timestamp=e.get("timestamp") or now_iso(),
                status=e.get("description") or e.get("statusCode") or "",
                location=_location(e),
            )
            for e in raw_events
        )

        service = shipment.get("service")
        if isinstance(service, dict):
            service = service.get("name") or (service.get("product") or {}).get("productName")

        weight = ((shipment.get("details") or {}).get("weight")) or {}
        package_weight = f"{weight['value']} {weight.get('unitText') or 'kg'}" if weight.get("value") else None

        estimated = shipment.get("estimatedTimeOfDelivery") or (
            shipment.get("estimatedDeliveryTimeFrame") or {}
        ).get("estimatedFrom")

        status = normalize_status(code, description)
        logger.debug("DHL %s: code=%s description=%s -> %s", tracking_number, code, description, status.value)

        return self._result(
            tracking_number,
            status,
            description,
            status_time=status_time,
            location=_location(latest) if latest else "",
            estimated_delivery=estimated,
            events=events,
            service_name=service or None,
            package_weight=package_weight,
            carrier_status_code=code or None,
        )
