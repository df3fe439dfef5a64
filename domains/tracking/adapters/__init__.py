# domains/tracking/adapters/__init__.py
from ..types import CarrierTag
from .afs import AFSAdapter
from .base import CarrierAdapter
from .dhl import DHLAdapter
from .fedex import FedExAdapter
from .gls import GLSAdapter
from .provider import get_adapter, register_adapter, supported_carriers
from .ups import UPSAdapter

# 새 택배사는 어댑터 클래스 + 여기 등록 한 줄. ROYAL 은 의도적으로 미등록.
register_adapter(CarrierTag.UPS, UPSAdapter)
register_adapter(CarrierTag.DHL, DHLAdapter)
register_adapter(CarrierTag.FEDEX, FedExAdapter)
register_adapter(CarrierTag.GLS, GLSAdapter)
register_adapter(CarrierTag.AFS, AFSAdapter)


__all__ = [
    "CarrierAdapter",
    "UPSAdapter",
    "DHLAdapter",
    "FedExAdapter",
    "GLSAdapter",
    "AFSAdapter",
    "get_adapter",
    "register_adapter",
    "supported_carriers",
]
