# domains/tracking/views.py
import logging

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import parsers, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from shared.api_markers import DetailResponseSerializer, EmptySerializer
from shared.permissions import IsStaff

from .adapters import supported_carriers
from .exceptions import UnsupportedCarrierError
from .serializers import (
    BatchTrackingResultSerializer,
    CarrierSerializer,
    TrackingResultSerializer,
    TrackRequestSerializer,
)
from .services import request_stop, run_batch_tracking, track_single

logger = logging.getLogger(__name__)

CARRIER_NAMES = {
    "UPS": "UPS",
    "DHL": "DHL Express",
    "FEDEX": "FedEx",
    "GLS": "GLS",
    "AFS": "AFS Transport",
}


# --------------------------------------------------------------------
# POST /api/v1/tracking/batch-run/  (운영자)
# 배치 1회 동기 실행 → 요약 반환
# --------------------------------------------------------------------
class BatchTrackingRunAPI(APIView):
    permission_classes = [IsStaff]

    @extend_schema(request=EmptySerializer, responses={200: BatchTrackingResultSerializer})
    def post(self, request):
        try:
            summary = run_batch_tracking()
        except Exception as e:
            logger.exception("batch tracking run failed: %s", e)
            return Response(
                {"detail": "batch tracking failed", "error": str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return Response(summary.to_dict(), status=status.HTTP_200_OK)


# --------------------------------------------------------------------
# POST /api/v1/tracking/batch-run/stop/  (운영자)
# 진행중인 배치에 중단 요청 (다음 건 시작 전 확인)
# --------------------------------------------------------------------
class BatchTrackingStopAPI(APIView):
    permission_classes = [IsStaff]

    @extend_schema(request=EmptySerializer, responses={202: DetailResponseSerializer})
    def post(self, request):
        request_stop()
        logger.info("batch tracking stop requested by %s", request.user)
        return Response({"detail": "stop requested"}, status=status.HTTP_202_ACCEPTED)


# --------------------------------------------------------------------
# GET|POST /api/v1/tracking/track/  {trackingNumber, carrier?}
# - 요청 형식 오류 / 미지원 택배사 → 400
# - 택배사가 "없음/오류" 를 알려준 경우도 200 (본문에 error + _meta)
# - 예상치 못한 예외 → 500
# --------------------------------------------------------------------
class TrackAPI(APIView):
    parser_classes = [parsers.JSONParser, parsers.FormParser]
    permission_classes = [permissions.IsAuthenticated]

    def _track(self, data):
        ser = TrackRequestSerializer(data=data)
        ser.is_valid(raise_exception=True)
        number = ser.validated_data["trackingNumber"]
        carrier = ser.validated_data.get("carrier")

        try:
            result = track_single(number, carrier)
        except UnsupportedCarrierError as e:
            return Response(
                {"detail": str(e), "carrier": e.carrier, "supportedCarriers": e.supported},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except Exception as e:
            logger.exception("단건 조회 실패 %s (%s): %s", number, carrier or "auto", e)
            return Response(
                {"detail": "tracking failed", "error": str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        body = result.to_dict()
        if result.is_degraded:
            body["_meta"] = {"degraded": True, "carrierDetected": carrier is None}
        return Response(body, status=status.HTTP_200_OK)

    @extend_schema(
        parameters=[
            OpenApiParameter(name="trackingNumber", required=True, type=str),
            OpenApiParameter(name="carrier", required=False, type=str, description="UPS|DHL|FEDEX|GLS|AFS"),
        ],
        responses={200: TrackingResultSerializer},
    )
    def get(self, request):
        return self._track(request.query_params)

    @extend_schema(request=TrackRequestSerializer, responses={200: TrackingResultSerializer})
    def post(self, request):
        return self._track(request.data)


class CarrierListAPI(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(responses={200: CarrierSerializer(many=True)})
    def get(self, request):
        carriers = [{"code": code, "name": CARRIER_NAMES.get(code, code)} for code in supported_carriers()]
        return Response(carriers, status=status.HTTP_200_OK)
