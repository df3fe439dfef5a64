from __future__ import annotations

import json

from django.contrib import admin, messages
from django.utils.html import format_html

from . import models


# ---------- Shipment Admin ----------
@admin.register(models.Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "tracking_number",
        "customer_tracking_number_display",
        "carrier_name",
        "status",
        "tracking_status_display",
        "tracking_closed",
        "last_tracked_at",
        "created_at",
    )
    list_filter = ("status", "tracking_closed", "carrier_name")
    search_fields = ("id", "tracking_number", "carrier_tracking_number", "manual_tracking_number", "afs_barkod")
    readonly_fields = (
        "id",
        "version",
        "last_tracked_at",
        "customs_notified_at",
        "tracking_info_pretty",
        "created_at",
        "updated_at",
    )
    exclude = ("tracking_info", "carrier_label_pdf")
    ordering = ("-created_at",)
    actions = ("run_batch_tracking", "refresh_tracking", "retrieve_afs_label")

    # ----- list_display / readonly_fields용 콜러블 -----
    @admin.display(description="Tracking no.")
    def customer_tracking_number_display(self, obj):
        return obj.customer_tracking_number or "-"

    @admin.display(description="Carrier status")
    def tracking_status_display(self, obj):
        info = obj.tracking_info or {}
        return info.get("status") or "-"

    @admin.display(description="Tracking info")
    def tracking_info_pretty(self, obj):
        if not obj.tracking_info:
            return "-"
        return format_html(
            "<pre style='white-space:pre-wrap'>{}</pre>",
            json.dumps(obj.tracking_info, ensure_ascii=False, indent=2),
        )

    # ----- actions -----
    @admin.action(description="Run batch tracking now (all open shipments)")
    def run_batch_tracking(self, request, queryset):
        from domains.tracking.tasks import run_batch_tracking

        run_batch_tracking.delay()
        self.message_user(request, "Batch tracking queued.", messages.INFO)

    @admin.action(description="Refresh tracking for selected shipments")
    def refresh_tracking(self, request, queryset):
        from domains.tracking.services import track_shipments

        summary = track_shipments(queryset.values_list("id", flat=True))
        level = messages.WARNING if summary.failed_shipments else messages.SUCCESS
        self.message_user(request, f"Tracking refreshed: {summary.summary_line()}", level)
        for err in summary.errors:
            self.message_user(request, f"{err['trackingNumber']} ({err['carrier']}): {err['error']}", messages.ERROR)

    @admin.action(description="Retrieve AFS label PDF")
    def retrieve_afs_label(self, request, queryset):
        from domains.tracking.adapters import AFSAdapter
        from domains.tracking.exceptions import TrackingError
        from domains.tracking.labels import store_carrier_label

        adapter = AFSAdapter()
        stored = 0
        for shipment in queryset.exclude(afs_barkod__isnull=True).exclude(afs_barkod=""):
            try:
                waybill = adapter.create_label(shipment.afs_barkod)
            except TrackingError as e:
                self.message_user(request, f"{shipment.afs_barkod}: {e}", messages.ERROR)
                continue
            if not waybill["success"]:
                self.message_user(request, f"{shipment.afs_barkod}: {waybill['error']}", messages.ERROR)
                continue
            artifact = store_carrier_label(shipment, waybill)
            if artifact.has_pdf or artifact.url:
                stored += 1
        self.message_user(request, f"AFS labels stored: {stored}", messages.INFO)
