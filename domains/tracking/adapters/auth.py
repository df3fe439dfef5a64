# domains/tracking/adapters/auth.py
"""
OAuth client-credentials 토큰 캐시.

(택배사, client_id) 계정마다 TokenProvider 하나. 만료 REFRESH_MARGIN 초 전부터
재발급하며, 동시에 만료를 본 호출자들은 락 뒤에서 한 번의 발급만 기다린다.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from django.conf import settings

logger = logging.getLogger(__name__)

# () -> (access_token, expires_in_seconds)
TokenFetcher = Callable[[], Tuple[str, int]]


class TokenProvider:
    _instances: Dict[Tuple[str, str], "TokenProvider"] = {}
    _instances_lock = threading.Lock()

    def __init__(
        self,
        carrier: str,
        client_id: str,
        *,
        margin: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.carrier = carrier
        self.client_id = client_id
        self.margin = settings.TRACKING["TOKEN_REFRESH_MARGIN"] if margin is None else margin
        self._clock = clock
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._expires_at = 0.0

    @classmethod
    def for_account(cls, carrier: str, client_id: str) -> "TokenProvider":
        key = (carrier, client_id or "")
        with cls._instances_lock:
            provider = cls._instances.get(key)
            if provider is None:
                provider = cls(carrier, client_id)
                cls._instances[key] = provider
            return provider

    @classmethod
    def reset(cls) -> None:
        """테스트용: 모든 계정 캐시 제거"""
        with cls._instances_lock:
            cls._instances.clear()

    def _current(self) -> Optional[str]:
        """유효한 토큰 또는 None. 토큰은 한 번만 읽는다 (락 밖에서 invalidate 와 겹칠 수 있음)"""
        token = self._token
        if token is not None and self._clock() < self._expires_at:
            return token
        return None

    def get_token(self, fetch: TokenFetcher) -> str:
        token = self._current()
        if token is not None:
            return token
        with self._lock:
            # 락 대기 중 다른 스레드가 이미 갱신했을 수 있음
            token = self._current()
            if token is not None:
                return token
            token, expires_in = fetch()
            self._token = token
            self._expires_at = self._clock() + max(0, int(expires_in) - self.margin)
            logger.info("%s access token refreshed (expires_in=%s)", self.carrier, expires_in)
            return token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = 0.0
