import random
import threading
import time

from school_cbt.models.exam_model import Exam
from school_cbt.models.result_model import SubmissionType
from school_cbt.services.deadline_monitor import (
    DeadlineMonitor,
    MonitorRegistry,
    is_expired,
    remaining_seconds,
)
from school_cbt.services.session_service import ExamSessionService


def test_remaining_is_pure_function_of_start_and_duration():
    assert remaining_seconds(1000.0, 1, 1000.0) == 60
    assert remaining_seconds(1000.0, 1, 1059.2) == 1
    assert remaining_seconds(1000.0, 1, 1060.0) == 0
    assert remaining_seconds(1000.0, 1, 5000.0) == 0
    assert is_expired(1000.0, 1, 1060.0)
    assert not is_expired(1000.0, 1, 1000.0)


def test_monitor_fires_once_when_already_expired():
    calls = []
    done = threading.Event()

    def on_expire(sid):
        calls.append(sid)
        done.set()

    monitor = DeadlineMonitor("s1", deadline=time.time() - 1, on_expire=on_expire, interval=0.01)
    monitor.start()
    assert done.wait(2)
    monitor.join(1)

    assert calls == ["s1"]
    assert monitor.fired
    assert monitor.check() is False


def test_latch_prevents_second_invocation():
    calls = []
    monitor = DeadlineMonitor("s1", deadline=0.0, on_expire=calls.append, clock=lambda: 10.0)
    assert monitor.check() is True
    assert monitor.check() is False
    assert calls == ["s1"]


def test_cancelled_monitor_never_fires():
    calls = []
    now = [0.0]
    monitor = DeadlineMonitor("s1", deadline=5.0, on_expire=calls.append,
                              interval=0.01, clock=lambda: now[0])
    monitor.start()
    monitor.cancel()
    monitor.join(1)
    now[0] = 100.0
    assert monitor.check() is False
    assert calls == []


def test_callback_errors_are_contained():
    def boom(sid):
        raise RuntimeError("store down")

    monitor = DeadlineMonitor("s1", deadline=0.0, on_expire=boom, clock=lambda: 1.0)
    assert monitor.check() is True
    assert monitor.fired


def test_registry_reuses_live_monitor_and_cancels():
    registry = MonitorRegistry(interval=0.05)
    far = time.time() + 3600
    first = registry.watch("s1", far, lambda sid: None)
    again = registry.watch("s1", far, lambda sid: None)
    assert first is again
    assert registry.active_sessions() == ["s1"]

    assert registry.cancel("s1") is True
    assert first.cancelled
    assert registry.cancel("s1") is False
    assert registry.active_sessions() == []


def test_registry_cancel_all():
    registry = MonitorRegistry(interval=0.05)
    far = time.time() + 3600
    monitors = [registry.watch(f"s{i}", far, lambda sid: None) for i in range(3)]
    assert registry.cancel_all() == 3
    assert all(m.cancelled for m in monitors)


def test_engine_monitor_auto_submits_at_deadline(store):
    store.put_exam(Exam(id="short", title="Short", duration_minutes=1, question_ids=["q1", "q2"]))
    # 감시자 시계만 59.5초 앞당겨 마감 0.5초 전 상태로 만든다
    registry = MonitorRegistry(interval=0.02, clock=lambda: time.time() + 59.5)
    svc = ExamSessionService(store, monitors=registry, rng=random.Random(0))

    session = svc.start_session("short", "Ada", "001")
    monitor = registry.get(session.id)
    svc.save_progress(session.id, {"q1": "A"}, 0)

    deadline = time.time() + 3
    while time.time() < deadline and store.get_result_by_session(session.id) is None:
        time.sleep(0.02)

    monitor.join(2)

    result = store.get_result_by_session(session.id)
    assert result is not None
    assert result.submission_type == SubmissionType.AUTO
    assert result.score == 2
    assert session.id not in registry.active_sessions()
    svc.shutdown()


def test_user_submit_cancels_monitor(store):
    registry = MonitorRegistry(interval=0.05)
    svc = ExamSessionService(store, monitors=registry, rng=random.Random(0))
    session = svc.start_session("exam-1", "Ada", "001")
    monitor = registry.get(session.id)
    assert monitor is not None and not monitor.cancelled

    svc.submit(session.id, {"q1": "A"})
    assert monitor.cancelled
    assert registry.active_sessions() == []
    svc.shutdown()
