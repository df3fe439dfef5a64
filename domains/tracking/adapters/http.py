# domains/tracking/adapters/http.py
from __future__ import annotations

from typing import Optional

import requests
from django.conf import settings
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# 일시적 장애로 보고 재시도할 응답 코드
RETRY_STATUSES = (429, 500, 502, 503, 504)


def build_session(retries: Optional[int] = None, backoff: Optional[float] = None) -> requests.Session:
    """
    택배사 호출용 세션. 연결 실패/일시 장애는 지수 백오프로 재시도.
    4xx 응답은 그대로 돌려준다 (어댑터가 NOT_FOUND/ERROR 로 해석).
    """
    conf = settings.TRACKING
    retry = Retry(
        total=conf["HTTP_RETRIES"] if retries is None else retries,
        backoff_factor=conf["HTTP_BACKOFF"] if backoff is None else backoff,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=frozenset({"GET", "POST"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"Accept": "application/json"})
    return session


def default_timeout() -> float:
    return float(settings.TRACKING["HTTP_TIMEOUT"])
