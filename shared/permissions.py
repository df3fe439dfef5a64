# shared/permissions.py
from __future__ import annotations

from rest_framework.permissions import BasePermission

# ---- helpers ---------------------------------------------------------------


def _is_schema_generation(view) -> bool:
    """drf-spectacular 스키마 생성 시 True (권한을 널널하게 통과시켜 문서 생성 편의)."""
    return bool(getattr(view, "swagger_fake_view", False))


def _is_staff(user) -> bool:
    return bool(
        getattr(user, "is_authenticated", False)
        and getattr(user, "is_active", False)
        and getattr(user, "is_staff", False)
    )


# ---- staff-based permissions -----------------------------------------------


class IsStaff(BasePermission):
    """운영자(is_staff) 전용: 배치 실행/중단 등 특권 작업"""

    def has_permission(self, request, view):
        if _is_schema_generation(view):
            return True
        return _is_staff(request.user)


__all__ = ["IsStaff"]
