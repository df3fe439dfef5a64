# shared/api_markers.py
"""
API 문서화용 마커 시리얼라이저.

@extend_schema 에서 요청 바디가 없는 엔드포인트 / 단순 메시지 응답에 쓴다.
"""
from rest_framework import serializers


class EmptySerializer(serializers.Serializer):
    """본문이 없는 요청에 쓰는 더미 시리얼라이저"""
    pass


class DetailResponseSerializer(serializers.Serializer):
    """{"detail": "..."} 형태 응답"""
    detail = serializers.CharField()
