# domains/tracking/adapters/fedex.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from ..exceptions import AuthenticationError
from ..status_map import first_of, lookup_code
from ..types import CanonicalStatus as S
from ..types import CarrierTag, TrackingEvent, TrackingResult, now_iso
from .auth import TokenProvider
from .base import CarrierAdapter, join_location

logger = logging.getLogger(__name__)


# CA(취소), HL(보류)는 상태 집합에 없으므로 EXCEPTION. 원본 코드는 carrier_status_code 로 보존.
FEDEX_STATUS_CODES = {
    "OC": S.PRE_TRANSIT,
    "IT": S.IN_TRANSIT,
    "PU": S.IN_TRANSIT,
    "AR": S.IN_TRANSIT,
    "OD": S.OUT_FOR_DELIVERY,
    "DL": S.DELIVERED,
    "DE": S.DELIVERED,
    "CA": S.EXCEPTION,
    "EX": S.EXCEPTION,
    "HL": S.EXCEPTION,
}

# 코드 표에 없을 때 부분 문자열
FEDEX_CODE_FRAGMENTS = (
    (("DL", "DE"), S.DELIVERED),
    (("OD",), S.OUT_FOR_DELIVERY),
    (("EX",), S.EXCEPTION),
)


def _fragment_status(code: str) -> Optional[S]:
    for fragments, status in FEDEX_CODE_FRAGMENTS:
        if any(f in code for f in fragments):
            return status
    return None


def normalize_status(code: Optional[str]) -> S:
    c = (code or "").strip().upper()
    return first_of(lookup_code(c, FEDEX_STATUS_CODES), _fragment_status(c), default=S.IN_TRANSIT)


def _scan_location(loc: Optional[Dict[str, Any]]) -> str:
    loc = loc or {}
    return join_location(loc.get("city"), loc.get("stateOrProvinceCode"), loc.get("countryCode"))


def _date_of(date_and_times, *types: str) -> Optional[str]:
    for dt in date_and_times or ():
        if dt.get("type") in types:
            return dt.get("dateTime")
    return None


class FedExAdapter(CarrierAdapter):
    carrier = CarrierTag.FEDEX
    settings_key = "fedex"

    @property
    def base_url(self) -> str:
        return (self.config.get("base_url") or "").rstrip("/")

    @property
    def tokens(self) -> TokenProvider:
        return TokenProvider.for_account(self.carrier.value, self.config.get("api_key", ""))

    def clear_token_cache(self) -> None:
        self.tokens.invalidate()

    def _fetch_token(self) -> Tuple[str, int]:
        resp = self._request(
            "POST",
            f"{self.base_url}/oauth/token",
            data={
                "grant_type": "client_credentials",
                "client_id": self.config.get("api_key"),
                "client_secret": self.config.get("secret_key"),
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if not resp.ok:
            message = f"Failed to obtain FedEx access token: {resp.status_code} {resp.reason}"
            errors = self._json_or_empty(resp).get("errors") or []
            if errors and errors[0].get("message"):
                message = f"FedEx OAuth error: {errors[0]['message']}"
            raise AuthenticationError(message, carrier=self.carrier.value)
        data = self._json(resp)
        token = data.get("access_token")
        if not token:
            raise AuthenticationError("FedEx token response has no access_token", carrier=self.carrier.value)
        return token, int(data.get("expires_in") or 0)

    def _post(self, tracking_number: str, token: str):
        return self._request(
            "POST",
            f"{self.base_url}/track/v1/trackingnumbers",
            json={
                "includeDetailedScans": True,
                "trackingInfo": [{"trackingNumberInfo": {"trackingNumber": tracking_number}}],
            },
            headers={"Authorization": f"Bearer {token}", "X-locale": "en_US"},
        )

    def track(self, tracking_number: str) -> TrackingResult:
        if not (self.config.get("api_key") and self.config.get("secret_key")):
            return self._error(tracking_number, "FedEx API not configured", "FedEx credentials not configured")

        try:
            resp = self._post(tracking_number, self.tokens.get_token(self._fetch_token))
            if resp.status_code == 401:
                self.clear_token_cache()
                resp = self._post(tracking_number, self.tokens.get_token(self._fetch_token))
        except AuthenticationError as e:
            return self._error(tracking_number, f"Tracking service error: {e}", str(e))

        if not resp.ok:
            if resp.status_code == 401:
                self.clear_token_cache()
            return self._error(
                tracking_number,
                f"Failed to fetch tracking data: {resp.status_code} {resp.reason}",
                resp.text[:500],
            )

        return self.parse(tracking_number, self._json(resp))

    def parse(self, tracking_number: str, data: Dict[str, Any]) -> TrackingResult:
        complete = (data.get("output") or {}).get("completeTrackResults") or []
        if not complete:
            return self._not_found(tracking_number, "Tracking number not found", "No tracking results found")

        track_result = complete[0] or {}
        if track_result.get("error"):
            err = track_result["error"]
            return self._error(
                tracking_number,
                err.get("message") or "FedEx API error",
                f"FedEx API error: {err.get('code')} - {err.get('message')}",
            )

        results = track_result.get("trackResults") or []
        if not results:
            return self._not_found(
                tracking_number, "No tracking information available", "No track results in response"
            )

        result = results[0] or {}
        if result.get("error"):
            err = result["error"]
            return self._not_found(
                tracking_number,
                err.get("message") or "Tracking number not found",
                f"FedEx API error: {err.get('code')} - {err.get('message')}",
            )

        latest = result.get("latestStatusDetail") or {}
        code = latest.get("code") or latest.get("derivedCode") or "UNKNOWN"
        description = latest.get("description") or latest.get("statusByLocale") or "Status not available"
        status = normalize_status(code)

        dates = result.get("dateAndTimes")
        delivered_time = _date_of(dates, "ACTUAL_DELIVERY") if status is S.DELIVERED else None

        events = tuple(
            TrackingEvent(
                timestamp=e.get("date") or now_iso(),
                status=e.get("eventDescription") or "Unknown event",
                location=_scan_location(e.get("scanLocation")),
            )
            for e in result.get("scanEvents") or ()
        )

        service = result.get("serviceDetail") or {}
        weights = ((result.get("packageDetails") or {}).get("weightAndDimensions") or {}).get("weight") or []
        package_weight = f"{weights[0].get('value')} {weights[0].get('units')}" if weights else None

        logger.debug("FedEx %s: code=%s -> %s", tracking_number, code, status.value)

        return self._result(
            tracking_number,
            status,
            description,
            status_time=_date_of(dates, "ACTUAL_PICKUP", "SHIP_TIMESTAMP") or now_iso(),
            location=_scan_location(latest.get("scanLocation")),
            estimated_delivery=_date_of(dates, "ESTIMATED_DELIVERY", "SCHEDULED_DELIVERY"),
            events=events,
            delivered_time=delivered_time,
            service_name=service.get("description") or service.get("shortDescription") or "FedEx Service",
            package_weight=package_weight,
            carrier_status_code=code,
        )
