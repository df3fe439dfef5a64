# domains/tracking/adapters/ups.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from ..customs import scan_activities
from ..exceptions import AuthenticationError
from ..status_map import classify, first_of, lookup_code, rule
from ..types import CanonicalStatus as S
from ..types import CarrierTag, TrackingEvent, TrackingResult, now_iso
from .auth import TokenProvider
from .base import CarrierAdapter, join_location

logger = logging.getLogger(__name__)


# 라벨만 생성된 상태는 두 문구가 함께 있을 때만
UPS_LABEL_ONLY = rule(
    S.PRE_TRANSIT,
    "shipper created a label",
    "ups has not received the package yet",
    require_all=True,
)

UPS_PRE_TRANSIT_CODES = {"MP": S.PRE_TRANSIT, "003": S.PRE_TRANSIT}

UPS_TEXT_RULES = (
    rule(S.DELIVERED, "delivered"),
    rule(S.OUT_FOR_DELIVERY, "out for delivery"),
    rule(
        S.IN_TRANSIT,
        "in transit",
        "departure scan",
        "arrival scan",
        "departed from facility",
        "arrived at facility",
        "export scan",
        "import scan",
        "facility",
        "on the way",
        "pickup scan",
        "origin scan",
        "picked up",
    ),
)

# 활동 status type / code 첫 글자 계열
UPS_TYPE_CODES = {
    "M": S.PRE_TRANSIT,
    "I": S.IN_TRANSIT,
    "X": S.IN_TRANSIT,
    "P": S.IN_TRANSIT,
    "D": S.DELIVERED,
    "O": S.IN_TRANSIT,
    "OR": S.IN_TRANSIT,
}


def normalize_status(code: Optional[str], description: Optional[str], status_type: Optional[str] = None) -> S:
    """활동이 있으면 최소 IN_TRANSIT (라벨만 생성된 경우 제외)."""
    if classify(description, (UPS_LABEL_ONLY,)):
        return S.PRE_TRANSIT
    return first_of(
        lookup_code(code, UPS_PRE_TRANSIT_CODES),
        classify(description, UPS_TEXT_RULES),
        lookup_code(code, UPS_TYPE_CODES),
        lookup_code(status_type, UPS_TYPE_CODES),
        default=S.IN_TRANSIT,
    )


def _timestamp(date: Optional[str], time_: Optional[str]) -> str:
    """UPS date=YYYYMMDD, time=HHMMSS → ISO8601"""
    if not (date and time_) or len(date) < 8 or len(time_) < 6:
        return ""
    return f"{date[0:4]}-{date[4:6]}-{date[6:8]}T{time_[0:2]}:{time_[2:4]}:{time_[4:6]}Z"


def _address(activity: Dict[str, Any]) -> str:
    address = ((activity or {}).get("location") or {}).get("address") or {}
    return join_location(address.get("city"), address.get("stateProvince"), address.get("countryCode"))


class UPSAdapter(CarrierAdapter):
    carrier = CarrierTag.UPS
    settings_key = "ups"

    @property
    def base_url(self) -> str:
        return (self.config.get("base_url") or "").rstrip("/")

    @property
    def tokens(self) -> TokenProvider:
        return TokenProvider.for_account(self.carrier.value, self.config.get("client_id", ""))

    def _fetch_token(self) -> Tuple[str, int]:
        client_id = self.config.get("client_id")
        resp = self._request(
            "POST",
            f"{self.base_url}/security/v1/oauth/token",
            auth=(client_id, self.config.get("client_secret")),
            data={"grant_type": "client_credentials"},
            headers={"x-merchant-id": client_id},
        )
        if not resp.ok:
            raise AuthenticationError(
                f"Failed to obtain UPS access token: {resp.status_code} {resp.reason}",
                carrier=self.carrier.value,
            )
        data = self._json(resp)
        token = data.get("access_token")
        if not token:
            raise AuthenticationError("UPS token response has no access_token", carrier=self.carrier.value)
        return token, int(data.get("expires_in") or 0)

    def _get(self, tracking_number: str, token: str):
        return self._request(
            "GET",
            f"{self.base_url}/api/track/v1/details/{tracking_number}",
            params={"locale": "en_US", "returnSignature": "false", "returnMilestones": "false"},
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "x-merchant-id": self.config.get("client_id", ""),
                "transId": uuid.uuid4().hex[:32],
                "transactionSrc": self.config.get("transaction_src") or "parcel-tracking",
            },
        )

    def track(self, tracking_number: str) -> TrackingResult:
        if not (self.config.get("client_id") and self.config.get("client_secret")):
            return self._error(tracking_number, "UPS API not configured", "UPS API credentials not configured")

        try:
            resp = self._get(tracking_number, self.tokens.get_token(self._fetch_token))
            if resp.status_code == 401:
                # 서버측에서 토큰이 폐기된 경우: 1회 재발급 후 재시도
                self.tokens.invalidate()
                resp = self._get(tracking_number, self.tokens.get_token(self._fetch_token))
        except AuthenticationError as e:
            return self._error(tracking_number, "Authentication error with UPS API", str(e))

        if resp.status_code == 404:
            return self._not_found(
                tracking_number, "Tracking information not found", "Tracking number not found in UPS system"
            )
        if resp.status_code == 401:
            self.tokens.invalidate()
            body = self._json_or_empty(resp)
            errors = (body.get("response") or {}).get("errors") or []
            message = "UPS API authentication failed"
            if errors and errors[0].get("message"):
                message = f"UPS API error: {errors[0]['message']}"
            return self._error(tracking_number, "Authentication error with UPS API", message)
        self._raise_for_transport(resp)

        return self.parse(tracking_number, self._json(resp))

    def parse(self, tracking_number: str, data: Dict[str, Any]) -> TrackingResult:
        shipment = ((data.get("trackResponse") or {}).get("shipment") or [None])[0] or {}

        warnings = shipment.get("warnings") or []
        if warnings:
            w = warnings[0] or {}
            return self._not_found(
                tracking_number,
                w.get("message") or "Tracking information not found",
                f"UPS API warning: {w.get('code')} - {w.get('message')}",
            )

        package = (shipment.get("package") or [None])[0]
        if not package:
            return self._result(
                tracking_number,
                S.UNKNOWN,
                "No tracking details available",
                error="No tracking details returned from UPS",
            )

        activities: List[Dict[str, Any]] = package.get("activity") or []
        current = activities[0] if activities else {}
        current_status = current.get("status") or {}
        code = current_status.get("code") or current_status.get("statusCode")
        description = current_status.get("description")

        events = tuple(
            TrackingEvent(
                timestamp=_timestamp(a.get("date"), a.get("time")),
                status=(a.get("status") or {}).get("description") or "",
                location=_address(a),
            )
            for a in activities
        )

        customs_due, customs_details = scan_activities(activities)
        if customs_due:
            logger.info("UPS customs charges detected for %s: %s", tracking_number, customs_details)

        weight = package.get("packageWeight") or {}
        package_weight = None
        if weight.get("weight"):
            unit = (weight.get("unitOfMeasurement") or {}).get("code") or "lbs"
            package_weight = f"{weight['weight']} {unit}"

        estimated = None
        delivery_date = (package.get("deliveryDate") or [{}])[0].get("date")
        if delivery_date:
            end_time = (package.get("deliveryTime") or {}).get("endTime")
            estimated = f"{delivery_date} {end_time}" if end_time else delivery_date

        status = normalize_status(code, description, current_status.get("type"))
        return self._result(
            tracking_number,
            status,
            description or "In Transit",
            status_time=(events[0].timestamp if events and events[0].timestamp else now_iso()),
            location=_address(current),
            estimated_delivery=estimated,
            events=events,
            service_name=(shipment.get("service") or {}).get("description"),
            package_weight=package_weight,
            carrier_status_code=code,
            customs_charges_due=customs_due,
            customs_charges_details=customs_details,
        )
