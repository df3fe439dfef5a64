from __future__ import annotations

from typing import Dict, List, Type

from ..exceptions import UnsupportedCarrierError
from ..types import CarrierTag
from .base import CarrierAdapter

# 어댑터 레지스트리
_REGISTRY: Dict[CarrierTag, Type[CarrierAdapter]] = {}


def _norm(tag) -> CarrierTag:
    if isinstance(tag, CarrierTag):
        return tag
    try:
        return CarrierTag((tag or "").strip().upper())
    except ValueError:
        return CarrierTag.UNKNOWN


def register_adapter(tag, adapter_cls: Type[CarrierAdapter]) -> None:
    """택배사 태그에 어댑터 클래스를 등록."""
    _REGISTRY[_norm(tag)] = adapter_cls


def supported_carriers() -> List[str]:
    return [t.value for t in CarrierTag if t in _REGISTRY]


def get_adapter(tag, **kwargs) -> CarrierAdapter:
    """태그로 어댑터 인스턴스를 반환. 미지원(ROYAL/UNKNOWN 포함)이면 UnsupportedCarrierError."""
    key = _norm(tag)
    cls = _REGISTRY.get(key)
    if cls is None:
        raise UnsupportedCarrierError(key.value, supported_carriers())
    return cls(**kwargs)
