from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict

# 클라이언트별 요청 시각을 창(window) 단위로 기록해 API 남용을 막는 슬라이딩 윈도우 제한기입니다.


class SlidingWindowLimiter:
    """Allow at most ``limit`` hits per ``window_sec`` for each client key."""

    def __init__(self, limit: int = 100, window_sec: float = 15 * 60, clock: Callable[[], float] = time.monotonic):
        self.limit = int(limit)
        self.window_sec = float(window_sec)
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)

    def _trim(self, dq: Deque[float], now: float) -> None:
        while dq and (now - dq[0]) >= self.window_sec:
            dq.popleft()

    def hit(self, client: str) -> bool:
        """Record a request; False when the client is over the limit (the hit is not counted)."""
        now = self._clock()
        dq = self._hits[client]
        self._trim(dq, now)
        if len(dq) >= self.limit:
            return False
        dq.append(now)
        return True

    def retry_after(self, client: str) -> int:
        """Seconds until the oldest hit leaves the window."""
        dq = self._hits.get(client)
        if not dq:
            return 0
        return max(0, int(self.window_sec - (self._clock() - dq[0])) + 1)

    def prune(self) -> None:
        now = self._clock()
        for client in list(self._hits):
            dq = self._hits[client]
            self._trim(dq, now)
            if not dq:
                del self._hits[client]
