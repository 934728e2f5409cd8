"""
services/deadline_monitor.py

시험 마감 감시.
남은 시간은 저장된 started_at + 제한 시간으로 매번 다시 계산한다 (누적 카운터 없음).
따라서 감시 프로세스가 재시작되어도 마감 시각은 변하지 않는다.
"""

import logging
import math
import threading
import time
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


def deadline_of(started_at: float, duration_minutes: int) -> float:
    return started_at + duration_minutes * 60


def remaining_seconds(started_at: float, duration_minutes: int, now: float) -> int:
    """
    남은 시간 (초, 올림). 마감이 지났으면 0.
    """
    return max(0, math.ceil(deadline_of(started_at, duration_minutes) - now))


def is_expired(started_at: float, duration_minutes: int, now: float) -> bool:
    return remaining_seconds(started_at, duration_minutes, now) == 0


class DeadlineMonitor:
    """
    세션 하나의 마감을 주기적으로 확인하는 데몬 스레드.

    마감에 도달하면 on_expire(session_id) 를 정확히 한 번 호출한다.
    cancel() 은 즉시 효력이 있으며, 이후에는 콜백이 호출되지 않는다.
    """

    def __init__(
        self,
        session_id: str,
        deadline: float,
        on_expire: Callable[[str], Any],
        interval: float = 1.0,
        clock: Callable[[], float] = time.time,
    ):
        self.session_id = session_id
        self.deadline = deadline
        self._on_expire = on_expire
        self._interval = interval
        self._clock = clock
        self._stop = threading.Event()
        self._latch = threading.Lock()
        self._fired = False
        self._thread: Optional[threading.Thread] = None

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def remaining(self) -> int:
        return max(0, math.ceil(self.deadline - self._clock()))

    def start(self) -> "DeadlineMonitor":
        self._thread = threading.Thread(
            target=self._run,
            name=f"deadline-{self.session_id}",
            daemon=True,
        )
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def check(self) -> bool:
        """한 번 확인. 마감이면 콜백을 호출하고 True."""
        if self._stop.is_set():
            return False
        if self.remaining() > 0:
            return False
        self._fire()
        return True

    def _run(self) -> None:
        while not self._stop.is_set():
            if self.check():
                break
            if self._stop.wait(self._interval):
                break

    def _fire(self) -> None:
        with self._latch:
            if self._fired or self._stop.is_set():
                return
            self._fired = True

        logger.info(f"시험 시간 종료 — 세션 {self.session_id} 자동 제출")
        try:
            self._on_expire(self.session_id)
        except Exception:
            logger.exception(f"세션 {self.session_id} 자동 제출 실패")
        finally:
            self._stop.set()


class MonitorRegistry:
    """세션 ID별 DeadlineMonitor 하나씩 관리."""

    def __init__(self, interval: float = 1.0, clock: Callable[[], float] = time.time):
        self._interval = interval
        self._clock = clock
        self._lock = threading.Lock()
        self._monitors: Dict[str, DeadlineMonitor] = {}

    def watch(
        self,
        session_id: str,
        deadline: float,
        on_expire: Callable[[str], Any],
    ) -> DeadlineMonitor:
        """감시 시작. 같은 세션에 살아 있는 감시자가 있으면 그것을 반환."""
        with self._lock:
            current = self._monitors.get(session_id)
            if current is not None and not current.cancelled:
                return current

            def _expire(sid: str) -> None:
                try:
                    on_expire(sid)
                finally:
                    self._discard(sid, monitor)

            monitor = DeadlineMonitor(
                session_id, deadline, _expire, interval=self._interval, clock=self._clock
            )
            self._monitors[session_id] = monitor

        monitor.start()
        return monitor

    def cancel(self, session_id: str) -> bool:
        with self._lock:
            monitor = self._monitors.pop(session_id, None)
        if monitor is None:
            return False
        monitor.cancel()
        return True

    def cancel_all(self) -> int:
        with self._lock:
            monitors = list(self._monitors.values())
            self._monitors.clear()
        for monitor in monitors:
            monitor.cancel()
        if monitors:
            logger.info(f"마감 감시 {len(monitors)}개 중단")
        return len(monitors)

    def get(self, session_id: str) -> Optional[DeadlineMonitor]:
        with self._lock:
            return self._monitors.get(session_id)

    def active_sessions(self) -> List[str]:
        with self._lock:
            return [sid for sid, m in self._monitors.items() if not m.cancelled]

    def _discard(self, session_id: str, monitor: DeadlineMonitor) -> None:
        with self._lock:
            if self._monitors.get(session_id) is monitor:
                del self._monitors[session_id]
