from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple

from domains.shipments.models import ShipmentStatus

from .types import CanonicalStatus


@dataclass(frozen=True)
class StatusRule:
    """
    phrases 중 하나라도 텍스트에 포함되면 status.
    require_all=True 면 모든 phrase 가 포함되어야 매칭.
    """

    status: CanonicalStatus
    phrases: Tuple[str, ...]
    require_all: bool = False

    def matches(self, text: str) -> bool:
        if self.require_all:
            return all(p in text for p in self.phrases)
        return any(p in text for p in self.phrases)


def rule(status: CanonicalStatus, *phrases: str, require_all: bool = False) -> StatusRule:
    return StatusRule(status, tuple(p.lower() for p in phrases), require_all)


def classify(
    text: Optional[str],
    rules: Sequence[StatusRule],
    default: Optional[CanonicalStatus] = None,
) -> Optional[CanonicalStatus]:
    """규칙을 순서대로 검사해 첫 매칭 상태를 반환. 매칭 없으면 default."""
    s = (text or "").strip().lower()
    if not s:
        return default
    for r in rules:
        if r.matches(s):
            return r.status
    return default


def lookup_code(code: Optional[str], table: Mapping[str, CanonicalStatus]) -> Optional[CanonicalStatus]:
    return table.get((code or "").strip().upper())


def first_of(*candidates: Optional[CanonicalStatus], default: CanonicalStatus) -> CanonicalStatus:
    for c in candidates:
        if c is not None:
            return c
    return default


# ─────────────────────────────────────────────────────────────
# 단조(monotonic) 진행 정책
# ─────────────────────────────────────────────────────────────
LATTICE: Tuple[CanonicalStatus, ...] = (
    CanonicalStatus.PRE_TRANSIT,
    CanonicalStatus.IN_TRANSIT,
    CanonicalStatus.OUT_FOR_DELIVERY,
    CanonicalStatus.DELIVERED,
)

SIDE_STATES = frozenset(
    {
        CanonicalStatus.EXCEPTION,
        CanonicalStatus.UNKNOWN,
        CanonicalStatus.ERROR,
        CanonicalStatus.NOT_FOUND,
    }
)


def lattice_rank(status: CanonicalStatus) -> Optional[int]:
    """격자 내 순서. side state 는 None."""
    try:
        return LATTICE.index(status)
    except ValueError:
        return None


# 플랫폼 상태 → 격자 위치. OUT_FOR_DELIVERY 단계가 따로 없어서 in_transit 로 묶는다.
SHIPMENT_STATUS_RANK = {
    ShipmentStatus.PENDING: lattice_rank(CanonicalStatus.PRE_TRANSIT),
    ShipmentStatus.APPROVED: lattice_rank(CanonicalStatus.PRE_TRANSIT),
    ShipmentStatus.IN_TRANSIT: lattice_rank(CanonicalStatus.IN_TRANSIT),
    ShipmentStatus.DELIVERED: lattice_rank(CanonicalStatus.DELIVERED),
}

CANONICAL_TO_SHIPMENT = {
    CanonicalStatus.IN_TRANSIT: ShipmentStatus.IN_TRANSIT,
    CanonicalStatus.OUT_FOR_DELIVERY: ShipmentStatus.IN_TRANSIT,
    CanonicalStatus.DELIVERED: ShipmentStatus.DELIVERED,
}

# 목표 상태별로 전이를 허용하는 현재 상태
ADVANCEABLE_FROM = {
    ShipmentStatus.IN_TRANSIT: frozenset({ShipmentStatus.APPROVED}),
    ShipmentStatus.DELIVERED: frozenset(
        {ShipmentStatus.PENDING, ShipmentStatus.APPROVED, ShipmentStatus.IN_TRANSIT}
    ),
}


def next_shipment_status(current: str, canonical: CanonicalStatus) -> Optional[str]:
    """
    택배사 정규화 상태로 플랫폼 상태를 전진시킬지 결정.
    반환: 새 상태 (변경 없으면 None). 역행은 절대 반환하지 않는다.
    """
    target = CANONICAL_TO_SHIPMENT.get(canonical)
    if target is None or current == target:
        return None
    if current not in ADVANCEABLE_FROM[target]:
        return None
    cur_rank = SHIPMENT_STATUS_RANK.get(current)
    if cur_rank is None or SHIPMENT_STATUS_RANK[target] <= cur_rank:
        return None
    return target.value


def is_side_state(status: CanonicalStatus) -> bool:
    return status in SIDE_STATES
