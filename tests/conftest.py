# tests/conftest.py
from unittest.mock import Mock

import pytest
import requests
from django.core.cache import cache
from rest_framework.test import APIClient

from config import celery_app
from domains.tracking.adapters.auth import TokenProvider

from .factories import FakeAdapter, create_shipment, create_user, make_response


# ─────────────────────────────────────────────────────────────
# 전역 테스트 환경 (celery eager / 캐시 / 토큰 / 웹훅)
# ─────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _tracking_env(settings):
    """
    celery 는 동기 실행, 웹훅은 미설정(로그만), 토큰/중단플래그 캐시는 테스트마다 초기화
    """
    celery_app.conf.CELERY_TASK_ALWAYS_EAGER = True
    celery_app.conf.task_eager_propagates = True
    settings.SHIPMENTS_NOTIFY_WEBHOOK = None
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
    TokenProvider.reset()
    cache.clear()
    yield
    TokenProvider.reset()
    cache.clear()


# ─────────────────────────────────────────────────────────────
# 클라이언트 & 인증
# ─────────────────────────────────────────────────────────────
@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user(db):
    return create_user()


@pytest.fixture
def staff(db):
    return create_user(is_staff=True)


@pytest.fixture
def user_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def staff_client(staff):
    c = APIClient()
    c.force_authenticate(user=staff)
    return c


# ─────────────────────────────────────────────────────────────
# 배송건 / 가짜 택배사
# ─────────────────────────────────────────────────────────────
@pytest.fixture
def shipment_factory(db):
    return create_shipment


@pytest.fixture
def fake_adapters():
    """
    사용법:
        adapters = fake_adapters({CarrierTag.UPS: {"1Z...": result}})
        BatchTracker(adapter_factory=adapters.get)
    """

    class _Registry:
        def __init__(self, table):
            self.adapters = {tag: FakeAdapter(tag, responses) for tag, responses in table.items()}

        def get(self, tag):
            from domains.tracking.exceptions import UnsupportedCarrierError

            if tag not in self.adapters:
                raise UnsupportedCarrierError(tag.value, [t.value for t in self.adapters])
            return self.adapters[tag]

    return _Registry


@pytest.fixture
def mock_session():
    """adapter(session=...) 주입용. request.side_effect 에 응답을 순서대로 넣는다."""
    return Mock(spec=requests.Session)


@pytest.fixture
def response():
    return make_response
