from __future__ import annotations

from rest_framework import serializers

from .types import CanonicalStatus, CarrierTag


# ---------------------------
# 입력용: 단건 조회
# trackingNumber / tracking_number 둘 다 받되
# validate에서 trackingNumber 로 정규화
# ---------------------------
class TrackRequestSerializer(serializers.Serializer):
    trackingNumber = serializers.CharField(max_length=64, required=False, allow_blank=True)
    tracking_number = serializers.CharField(max_length=64, required=False, allow_blank=True, write_only=True)
    carrier = serializers.CharField(max_length=40, required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        alias = attrs.pop("tracking_number", "")
        number = (attrs.get("trackingNumber") or alias or "").strip()
        if not number:
            raise serializers.ValidationError({"trackingNumber": "trackingNumber 는 필수입니다."})
        attrs["trackingNumber"] = number
        attrs["carrier"] = (attrs.get("carrier") or "").strip() or None
        return attrs


# ---------------------------
# 출력용 (문서화)
# ---------------------------
class TrackingEventSerializer(serializers.Serializer):
    timestamp = serializers.CharField()
    status = serializers.CharField()
    location = serializers.CharField(allow_blank=True)
    description = serializers.CharField(required=False)


class TrackingResultSerializer(serializers.Serializer):
    trackingNumber = serializers.CharField()
    carrier = serializers.ChoiceField(choices=[t.value for t in CarrierTag])
    status = serializers.ChoiceField(choices=[s.value for s in CanonicalStatus])
    statusDescription = serializers.CharField()
    statusTime = serializers.CharField()
    location = serializers.CharField(required=False)
    estimatedDelivery = serializers.CharField(required=False)
    events = TrackingEventSerializer(many=True)
    trackingUrl = serializers.URLField(required=False)
    downstreamTrackingNumber = serializers.CharField(required=False)
    customsChargesDue = serializers.BooleanField(required=False)
    customsChargesDetails = serializers.CharField(required=False)
    error = serializers.CharField(required=False)


class BatchErrorSerializer(serializers.Serializer):
    trackingNumber = serializers.CharField()
    carrier = serializers.CharField()
    error = serializers.CharField()


class BatchOutcomeSerializer(serializers.Serializer):
    shipmentId = serializers.UUIDField()
    trackingNumber = serializers.CharField()
    carrierTrackingNumber = serializers.CharField(allow_null=True)
    carrier = serializers.CharField()
    previousStatus = serializers.CharField()
    newStatus = serializers.CharField()
    trackingInfo = TrackingResultSerializer()


class BatchTrackingResultSerializer(serializers.Serializer):
    totalShipments = serializers.IntegerField()
    processedShipments = serializers.IntegerField()
    updatedShipments = serializers.IntegerField()
    failedShipments = serializers.IntegerField()
    skippedShipments = serializers.IntegerField()
    cancelled = serializers.BooleanField()
    errors = BatchErrorSerializer(many=True)
    results = BatchOutcomeSerializer(many=True)


class CarrierSerializer(serializers.Serializer):
    code = serializers.CharField()
    name = serializers.CharField()
