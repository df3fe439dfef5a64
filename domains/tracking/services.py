# domains/tracking/services.py
from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Tuple

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from domains.shipments.models import Shipment, ShipmentStatus, update_shipment

from .adapters import get_adapter
from .adapters.base import CarrierAdapter
from .detection import carrier_from_name, detect_carrier, resolve_carrier
from .exceptions import NotFoundError, TrackingError, UnsupportedCarrierError
from .status_map import is_side_state, next_shipment_status
from .types import CanonicalStatus, CarrierTag, TrackingResult

logger = logging.getLogger(__name__)

STOP_CACHE_KEY = "tracking:batch:stop"
STOP_TTL_SECONDS = 60 * 60


# ─────────────────────────────────────────────────────────────
# 협조적 중단 (관리자가 요청 → 다음 건 시작 전에 확인)
# ─────────────────────────────────────────────────────────────
def request_stop() -> None:
    cache.set(STOP_CACHE_KEY, True, STOP_TTL_SECONDS)


def clear_stop_request() -> None:
    cache.delete(STOP_CACHE_KEY)


def stop_requested() -> bool:
    return bool(cache.get(STOP_CACHE_KEY))


# ─────────────────────────────────────────────────────────────
# 결과 요약
# ─────────────────────────────────────────────────────────────
@dataclass
class BatchTrackingResult:
    total_shipments: int = 0
    processed_shipments: int = 0
    updated_shipments: int = 0
    failed_shipments: int = 0
    skipped_shipments: int = 0
    cancelled: bool = False
    errors: List[Dict[str, Any]] = field(default_factory=list)
    results: List[Dict[str, Any]] = field(default_factory=list)

    def add_error(self, tracking_number: str, carrier: str, error: str) -> None:
        self.errors.append({"trackingNumber": tracking_number, "carrier": carrier, "error": error})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalShipments": self.total_shipments,
            "processedShipments": self.processed_shipments,
            "updatedShipments": self.updated_shipments,
            "failedShipments": self.failed_shipments,
            "skippedShipments": self.skipped_shipments,
            "cancelled": self.cancelled,
            "errors": list(self.errors),
            "results": list(self.results),
        }

    def summary_line(self) -> str:
        return (
            f"total={self.total_shipments} processed={self.processed_shipments} "
            f"updated={self.updated_shipments} failed={self.failed_shipments} "
            f"skipped={self.skipped_shipments} cancelled={self.cancelled}"
        )


@dataclass(frozen=True)
class TrackingJob:
    """
    배치 1건의 작업 단위. 워커 스레드는 carrier / query_number 만 사용한다.
    shipment 인스턴스는 오케스트레이터 스레드에서만 만진다.
    """

    shipment: Shipment
    carrier: CarrierTag
    customer_number: str
    query_number: str

    @property
    def uses_internal_reference(self) -> bool:
        return self.query_number != self.customer_number


def plan_job(shipment: Shipment) -> TrackingJob:
    customer_number = shipment.customer_tracking_number
    carrier = resolve_carrier(shipment.carrier_name, customer_number)
    query_number = customer_number
    # AFS 는 내부 barkod 로 조회하고 결과에는 고객용 번호를 남긴다
    if carrier is CarrierTag.AFS and shipment.afs_barkod and shipment.afs_barkod != customer_number:
        query_number = shipment.afs_barkod
    return TrackingJob(
        shipment=shipment,
        carrier=carrier,
        customer_number=customer_number,
        query_number=query_number,
    )


class ConcurrentUpdateError(TrackingError):
    """재시도 후에도 version 충돌"""


# ─────────────────────────────────────────────────────────────
# 오케스트레이터
# ─────────────────────────────────────────────────────────────
class BatchTracker:
    def __init__(
        self,
        *,
        queryset=None,
        adapter_factory: Callable[[CarrierTag], CarrierAdapter] = get_adapter,
        should_stop: Optional[Callable[[], bool]] = None,
        max_workers: Optional[int] = None,
        per_carrier_concurrency: Optional[int] = None,
        notify: bool = True,
    ):
        conf = settings.TRACKING
        self.queryset = queryset
        self.adapter_factory = adapter_factory
        self.should_stop = should_stop or stop_requested
        self.max_workers = max(1, max_workers or conf["MAX_WORKERS"])
        self.per_carrier = max(1, per_carrier_concurrency or conf["PER_CARRIER_CONCURRENCY"])
        self.notify = notify
        self._adapters: Dict[CarrierTag, CarrierAdapter] = {}
        self._semaphores: Dict[CarrierTag, threading.BoundedSemaphore] = {}

    def candidates(self) -> List[Shipment]:
        qs = self.queryset if self.queryset is not None else Shipment.objects.trackable()
        return list(qs)

    # 어댑터/세마포어는 오케스트레이터 스레드에서만 생성
    def _adapter(self, carrier: CarrierTag) -> CarrierAdapter:
        if carrier not in self._adapters:
            self._adapters[carrier] = self.adapter_factory(carrier)
            self._semaphores[carrier] = threading.BoundedSemaphore(self.per_carrier)
        return self._adapters[carrier]

    def _call(self, job: TrackingJob) -> TrackingResult:
        adapter = self._adapters[job.carrier]
        with self._semaphores[job.carrier]:
            return adapter.track(job.query_number)

    def run(self) -> BatchTrackingResult:
        summary = BatchTrackingResult()
        shipments = self.candidates()
        summary.total_shipments = len(shipments)
        logger.info("batch tracking started: %s candidates", summary.total_shipments)

        window = self.max_workers * 2
        in_flight: Deque[Tuple[TrackingJob, Future]] = deque()

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="tracking") as pool:
            for shipment in shipments:
                if self.should_stop():
                    summary.cancelled = True
                    logger.warning("batch tracking stop requested, not starting remaining shipments")
                    break

                job = plan_job(shipment)
                # 실패/미지원 건도 처리 시도로 센다
                summary.processed_shipments += 1
                try:
                    self._adapter(job.carrier)
                except UnsupportedCarrierError as e:
                    summary.skipped_shipments += 1
                    logger.info("skip %s (%s): %s", job.customer_number, job.carrier.value, e)
                    continue

                in_flight.append((job, pool.submit(self._call, job)))
                while len(in_flight) >= window:
                    self._collect(summary, *in_flight.popleft())

            while in_flight:
                self._collect(summary, *in_flight.popleft())

        logger.info("batch tracking finished: %s", summary.summary_line())
        return summary

    def _collect(self, summary: BatchTrackingResult, job: TrackingJob, future: Future) -> None:
        try:
            result = future.result()
            outcome, changed = self.apply_result(job, result)
        except Exception as e:  # 한 건 실패가 배치 전체를 멈추지 않도록
            summary.failed_shipments += 1
            summary.add_error(job.customer_number, job.carrier.value, str(e) or e.__class__.__name__)
            logger.exception("tracking failed for %s (%s)", job.customer_number, job.carrier.value)
            return

        if changed:
            summary.updated_shipments += 1
        summary.results.append(outcome)

    # ── 영속화 ───────────────────────────────────────────────
    def apply_result(self, job: TrackingJob, result: TrackingResult) -> Tuple[Dict[str, Any], bool]:
        if job.uses_internal_reference:
            result = result.with_tracking_number(job.customer_number)

        if is_side_state(result.status):
            logger.info(
                "%s %s reported %s: %s",
                job.carrier.value,
                job.customer_number,
                result.status.value,
                result.error or result.status_description,
            )

        shipment = job.shipment
        for attempt in (1, 2):
            fields, new_status, events = self._build_update(job, shipment, result)
            if update_shipment(shipment.id, shipment.version, **fields):
                break
            if attempt == 2:
                raise ConcurrentUpdateError(
                    "Shipment was modified concurrently", carrier=job.carrier.value
                )
            logger.info("version conflict on shipment %s, re-reading", shipment.id)
            shipment = Shipment.objects.get(id=shipment.id)

        previous_status = shipment.status
        if new_status:
            logger.info("shipment %s status %s -> %s", shipment.id, previous_status, new_status)
        for kind, meta in events:
            self._dispatch(shipment, kind, meta)

        outcome = {
            "shipmentId": str(shipment.id),
            "trackingNumber": job.customer_number,
            "carrierTrackingNumber": fields.get("carrier_tracking_number", shipment.carrier_tracking_number),
            "carrier": job.carrier.value,
            "previousStatus": previous_status,
            "newStatus": new_status or previous_status,
            "trackingInfo": fields["tracking_info"],
        }
        return outcome, bool(new_status)

    def _build_update(self, job: TrackingJob, shipment: Shipment, result: TrackingResult):
        now = timezone.now()
        fields: Dict[str, Any] = {"tracking_info": result.to_dict(), "last_tracked_at": now}
        events: List[Tuple[str, Dict[str, Any]]] = []

        new_status = None
        if shipment.status != ShipmentStatus.CANCELLED:
            new_status = next_shipment_status(shipment.status, result.status)
        if new_status:
            fields["status"] = new_status
            events.append(("status_changed", {"prev": shipment.status, "curr": new_status}))

        alias = result.downstream_tracking_number
        if alias and alias != shipment.carrier_tracking_number:
            fields["carrier_tracking_number"] = alias
            if not shipment.carrier_name:
                fields["carrier_name"] = CarrierTag.AFS.value
            # 기존 AFS 번호가 carrier_tracking_number 에만 있었다면 barkod 로 보존
            if not shipment.afs_barkod:
                fields["afs_barkod"] = job.query_number

        final_status = new_status or shipment.status
        if (
            result.customs_charges_due
            and shipment.customs_notified_at is None
            and final_status != ShipmentStatus.DELIVERED
        ):
            fields["customs_notified_at"] = now
            events.append(("customs_charges_due", {"details": result.customs_charges_details}))

        previous_canonical = (shipment.tracking_info or {}).get("status")
        if result.status is CanonicalStatus.EXCEPTION and previous_canonical != CanonicalStatus.EXCEPTION.value:
            events.append(
                (
                    "carrier_exception",
                    {"description": result.status_description, "code": result.carrier_status_code},
                )
            )
        return fields, new_status, events

    def _dispatch(self, shipment: Shipment, kind: str, meta: Dict[str, Any]) -> None:
        if not self.notify:
            return
        from .tasks import notify_shipment

        try:
            notify_shipment.delay(str(shipment.id), kind, meta)
        except Exception:
            logger.exception("failed to enqueue %s notification for shipment %s", kind, shipment.id)


# ─────────────────────────────────────────────────────────────
# 진입점
# ─────────────────────────────────────────────────────────────
def run_batch_tracking(**kwargs) -> BatchTrackingResult:
    """스케줄/관리자/CLI 공통 진입점. 이전 실행의 중단 요청은 지운다."""
    clear_stop_request()
    return BatchTracker(**kwargs).run()


def track_shipments(shipment_ids: Iterable[Any], **kwargs) -> BatchTrackingResult:
    """선택한 건만 즉시 갱신 (종결/수동종료 건도 포함, 상태는 여전히 단조 정책)"""
    kwargs.setdefault("should_stop", lambda: False)
    qs = Shipment.objects.with_tracking_number().filter(id__in=list(shipment_ids)).order_by("created_at")
    return BatchTracker(queryset=qs, **kwargs).run()


def track_shipment(shipment_id, **kwargs) -> Optional[Dict[str, Any]]:
    summary = track_shipments([shipment_id], **kwargs)
    if summary.total_shipments == 0:
        raise NotFoundError(f"Shipment {shipment_id} not found or has no tracking number")
    if summary.errors:
        raise TrackingError(summary.errors[0]["error"], carrier=summary.errors[0]["carrier"])
    return summary.results[0] if summary.results else None


def parse_carrier(value: Optional[str]) -> CarrierTag:
    """요청의 carrier 값: 태그("FEDEX") 또는 자유 텍스트("FedEx Express")"""
    s = (value or "").strip()
    if not s:
        return CarrierTag.UNKNOWN
    try:
        return CarrierTag(s.upper())
    except ValueError:
        return carrier_from_name(s)


def track_single(tracking_number: str, carrier: Optional[str] = None, **adapter_kwargs) -> TrackingResult:
    """단건 조회. carrier 생략 시 번호로 추정. 미지원이면 UnsupportedCarrierError."""
    number = (tracking_number or "").strip()
    tag = parse_carrier(carrier) if carrier else detect_carrier(number)
    adapter = get_adapter(tag, **adapter_kwargs)
    return adapter.track(number)
