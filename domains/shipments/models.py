from __future__ import annotations

import uuid

from django.db import models
from django.utils import timezone
from django.db.models import F, Q


class ShipmentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    CANCELLED = "cancelled", "Cancelled"
    IN_TRANSIT = "in_transit", "In Transit"
    DELIVERED = "delivered", "Delivered"


# 배치 추적 대상에서 제외되는 종결 상태
TERMINAL_STATUSES = (ShipmentStatus.DELIVERED, ShipmentStatus.REJECTED)


class ShipmentQuerySet(models.QuerySet):
    def with_tracking_number(self):
        """carrier / manual / AFS barkod 중 하나라도 있는 건."""
        has_number = Q()
        for field in ("carrier_tracking_number", "manual_tracking_number", "afs_barkod"):
            has_number |= Q(**{f"{field}__isnull": False}) & ~Q(**{field: ""})
        return self.filter(has_number)

    def trackable(self):
        """배치 추적 후보: 운송장 보유 + 종결 상태 아님 + 수동 종료 아님."""
        return (
            self.with_tracking_number()
            .exclude(status__in=TERMINAL_STATUSES)
            .filter(tracking_closed=False)
            .order_by("created_at")
        )


class Shipment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # 플랫폼 자체 참조번호 (고객에게 노출)
    tracking_number = models.CharField(max_length=64, blank=True)

    carrier_tracking_number = models.CharField(max_length=64, null=True, blank=True)
    manual_tracking_number = models.CharField(max_length=64, null=True, blank=True)
    afs_barkod = models.CharField(max_length=64, null=True, blank=True)
    carrier_name = models.CharField(max_length=40, blank=True)

    status = models.CharField(
        max_length=24,
        choices=ShipmentStatus.choices,
        default=ShipmentStatus.PENDING,
    )

    tracking_info = models.JSONField(null=True, blank=True)
    tracking_closed = models.BooleanField(default=False)
    last_tracked_at = models.DateTimeField(null=True, blank=True)
    customs_notified_at = models.DateTimeField(null=True, blank=True)

    carrier_label_pdf = models.TextField(blank=True)
    carrier_label_url = models.URLField(max_length=500, blank=True)

    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ShipmentQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=["status", "tracking_closed"], name="shipments_status_closed_idx"),
            models.Index(fields=["carrier_tracking_number"], name="shipments_carrier_tn_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.carrier_name or '?'}:{self.customer_tracking_number or self.id}"

    @property
    def customer_tracking_number(self) -> str:
        """고객에게 보이는 운송장: carrier → manual → AFS barkod 순."""
        return (
            self.carrier_tracking_number
            or self.manual_tracking_number
            or self.afs_barkod
            or ""
        )


def update_shipment(shipment_id, expected_version: int, **fields) -> bool:
    """
    version 이 일치할 때만 부분 업데이트 (낙관적 동시성).
    반환: 갱신 성공 여부. False 면 다른 곳에서 먼저 수정한 것.
    """
    fields.setdefault("updated_at", timezone.now())
    updated = Shipment.objects.filter(id=shipment_id, version=expected_version).update(
        version=F("version") + 1, **fields
    )
    return updated == 1
