from django.urls import path

from .views import BatchTrackingRunAPI, BatchTrackingStopAPI, CarrierListAPI, TrackAPI

app_name = "tracking"

urlpatterns = [
    # 정적(POST) 엔드포인트들: 트레일링 슬래시 필수!
    path("batch-run/", BatchTrackingRunAPI.as_view(), name="batch-run"),
    path("batch-run/stop/", BatchTrackingStopAPI.as_view(), name="batch-run-stop"),
    path("track/", TrackAPI.as_view(), name="track"),
    path("carriers/", CarrierListAPI.as_view(), name="carriers"),
]
