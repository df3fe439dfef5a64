# domains/tracking/customs.py
"""
UPS 관세 청구 여부 판별.

status type 'X'(면제 코드) 활동의 설명문만 본다.
이미 통관/납부 완료 또는 서류 요청 문구가 먼저 매칭되면 청구 없음.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Tuple

CUSTOMS_STATUS_TYPE = "X"

# 통관 완료, 납부 완료, 서류만 요청
CLEARED_PHRASES: Tuple[str, ...] = (
    "cleared customs",
    "customs cleared",
    "cleared through customs",
    "released from customs",
    "customs clearance complete",
    "have been paid",
    "has been paid",
    "been paid",
    "already paid",
    "payment received",
    "payment complete",
    "payment processed",
    "charges paid",
    "been collected",
    "been settled",
    "been processed",
    "collection complete",
    "settlement complete",
    "documentation needed",
    "documents needed",
    "document required",
    "documentation requirements",
    "document requirements",
    "clearance needed",
    "information needed",
    "payment requirements fulfilled",
    "payment requirements satisfied",
    "payment requirements completed",
    "payment requirements met",
)

# 납부 의무 문구 (단어 단독 매칭은 오탐이 많아 조합 문구만)
PAYMENT_DUE_PHRASES: Tuple[str, ...] = (
    # charges / fees
    "charges due", "charges are due", "charges owed", "charges required", "charges must",
    "charges need to be paid", "charges require payment", "charges requires payment",
    "fees due", "fees are due", "fees owed", "fees required", "fees must",
    "fees need to be paid", "fees require payment", "fees requires payment",
    # payment
    "payment due", "payment is due", "payment owed", "payment required", "payment is required",
    "payment must", "payment needs to be", "payment need to be", "requires payment",
    "require payment", "payment requirements outstanding", "payment requirements pending",
    # duty / duties
    "duty due", "duty owed", "duty required", "duty must",
    "duty needs to be paid", "duty requires payment",
    "duties due", "duties owed", "duties required", "duties must",
    "duties need to be paid", "duties require payment",
    "duties and taxes due", "duties and taxes are due",
    # tax / taxes
    "tax due", "tax owed", "tax required", "tax must",
    "tax needs to be paid", "tax requires payment",
    "taxes due", "taxes owed", "taxes required", "taxes must",
    "taxes need to be paid", "taxes require payment",
    "taxes and duties due", "taxes and duties are due",
    # 행동 요구
    "need to pay", "needs to pay", "must pay", "must be paid", "need to be paid", "needs to be paid",
    # brokerage
    "brokerage due", "brokerage fees due", "brokerage owed", "brokerage requires payment",
)


def has_customs_charges(status_type: Optional[str], description: Optional[str]) -> bool:
    if (status_type or "") != CUSTOMS_STATUS_TYPE:
        return False
    text = (description or "").lower()
    if any(p in text for p in CLEARED_PHRASES):
        return False
    return any(p in text for p in PAYMENT_DUE_PHRASES)


def scan_activities(activities: Iterable[Mapping[str, Any]]) -> Tuple[bool, Optional[str]]:
    """
    전체 활동 이력을 훑어 첫 청구 문구에서 멈춘다.
    반환: (청구 여부, 해당 활동 설명)
    """
    for activity in activities or ():
        status = (activity or {}).get("status") or {}
        description = status.get("description") or ""
        if has_customs_charges(status.get("type"), description):
            return True, description
    return False, None
