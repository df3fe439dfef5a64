# domains/tracking/tasks.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name="domains.tracking.tasks.run_batch_tracking", acks_late=True)
def run_batch_tracking() -> Dict[str, Any]:
    """
    전체 배치 추적 1회 (beat: 06/14/22시).
    반환: 요약 dict (results 는 크기가 커서 제외)
    """
    from .services import run_batch_tracking as run

    summary = run().to_dict()
    summary.pop("results", None)
    return summary


@shared_task(bind=True, max_retries=3, retry_backoff=True, retry_jitter=True, acks_late=True,
             name="domains.tracking.tasks.track_shipment")
def track_shipment(self, shipment_id: str) -> Optional[Dict[str, Any]]:
    """단일 운송장 즉시 갱신. 택배사 호출 실패는 백오프 재시도."""
    from .exceptions import NotFoundError, TrackingError
    from .services import track_shipment as track

    try:
        return track(shipment_id)
    except NotFoundError as e:
        # 재시도해도 결과가 같음
        logger.warning("track_shipment skipped: %s", e)
        return None
    except TrackingError as e:
        raise self.retry(exc=e)


@shared_task(name="domains.tracking.tasks.notify_shipment")
def notify_shipment(shipment_id: str, event_type: str, payload: dict) -> bool:
    # 지연 임포트로 순환참조 회피
    from domains.shipments.models import Shipment

    from .notifications import send_notification

    sh = Shipment.objects.filter(id=shipment_id).first()
    if sh is None:
        logger.warning("[NOTIFY] shipment %s not found, dropping %s", shipment_id, event_type)
        return False
    return send_notification(event_type, sh, payload)
