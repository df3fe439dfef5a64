# domains/tracking/types.py
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from django.utils import timezone


class CarrierTag(str, Enum):
    UPS = "UPS"
    DHL = "DHL"
    FEDEX = "FEDEX"
    AFS = "AFS"
    GLS = "GLS"
    ROYAL = "ROYAL"
    UNKNOWN = "UNKNOWN"


class CanonicalStatus(str, Enum):
    PRE_TRANSIT = "PRE_TRANSIT"
    IN_TRANSIT = "IN_TRANSIT"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    EXCEPTION = "EXCEPTION"
    UNKNOWN = "UNKNOWN"
    ERROR = "ERROR"
    NOT_FOUND = "NOT_FOUND"


def now_iso() -> str:
    return timezone.now().isoformat()


@dataclass(frozen=True)
class TrackingEvent:
    timestamp: str
    status: str
    location: str = ""
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        out = {"timestamp": self.timestamp, "status": self.status, "location": self.location}
        if self.description:
            out["description"] = self.description
        return out


# 내부 필드명 → 저장/응답용 camelCase 키
_JSON_KEYS = {
    "tracking_number": "trackingNumber",
    "carrier": "carrier",
    "status": "status",
    "status_description": "statusDescription",
    "status_time": "statusTime",
    "location": "location",
    "estimated_delivery": "estimatedDelivery",
    "delivered_time": "deliveredTime",
    "service_name": "serviceName",
    "package_weight": "packageWeight",
    "carrier_status_code": "carrierStatusCode",
    "tracking_url": "trackingUrl",
    "downstream_tracking_number": "downstreamTrackingNumber",
    "customs_charges_due": "customsChargesDue",
    "customs_charges_details": "customsChargesDetails",
    "error": "error",
}


@dataclass(frozen=True)
class TrackingResult:
    """
    어댑터 호출 1회의 스냅샷. 생성 후 변경하지 않는다.
    (변형이 필요하면 dataclasses.replace 로 새 객체를 만든다)
    """

    tracking_number: str
    carrier: CarrierTag
    status: CanonicalStatus
    status_description: str
    status_time: str = field(default_factory=now_iso)
    location: Optional[str] = None
    estimated_delivery: Optional[str] = None
    events: Tuple[TrackingEvent, ...] = ()

    delivered_time: Optional[str] = None
    service_name: Optional[str] = None
    package_weight: Optional[str] = None
    carrier_status_code: Optional[str] = None
    tracking_url: Optional[str] = None
    downstream_tracking_number: Optional[str] = None
    customs_charges_due: bool = False
    customs_charges_details: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_degraded(self) -> bool:
        return bool(self.error) or self.status in (CanonicalStatus.ERROR, CanonicalStatus.NOT_FOUND)

    def with_tracking_number(self, tracking_number: str) -> "TrackingResult":
        return replace(self, tracking_number=tracking_number)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "events":
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name == "customs_charges_due" and not value:
                continue
            if isinstance(value, Enum):
                value = value.value
            out[_JSON_KEYS[f.name]] = value
        out["events"] = [e.to_dict() for e in self.events]
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackingResult":
        reverse = {v: k for k, v in _JSON_KEYS.items()}
        kwargs: Dict[str, Any] = {}
        for key, value in (data or {}).items():
            name = reverse.get(key)
            if name:
                kwargs[name] = value
        kwargs["carrier"] = CarrierTag(kwargs.get("carrier", CarrierTag.UNKNOWN))
        kwargs["status"] = CanonicalStatus(kwargs.get("status", CanonicalStatus.UNKNOWN))
        kwargs.setdefault("tracking_number", "")
        kwargs.setdefault("status_description", "")
        kwargs["events"] = tuple(
            TrackingEvent(
                timestamp=e.get("timestamp", ""),
                status=e.get("status", ""),
                location=e.get("location") or "",
                description=e.get("description") or "",
            )
            for e in (data or {}).get("events") or []
        )
        return cls(**kwargs)
