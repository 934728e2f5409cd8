from concurrent.futures import Future

import pytest

from school_cbt.errors import PersistenceTimeout, SessionAlreadyCompleted, SessionNotFound
from school_cbt.models.result_model import Result
from school_cbt.models.session_state import ExamSession, SessionStatus
from school_cbt.services.document_store import InMemoryDocumentStore, wait_for_write


def _session(sid="s1"):
    return ExamSession(id=sid, exam_id="e1", student_name="Ada", student_id="001",
                       session_question_ids=["q1", "q2"])


def _result(rid, sid="s1", score=1):
    return Result(id=rid, session_id=sid, exam_id="e1", student_name="Ada",
                  student_id="001", score=score, total_points=2, percentage=50)


def test_reads_return_copies():
    store = InMemoryDocumentStore()
    store.insert_session(_session())
    copy = store.get_session("s1")
    copy.answers["q1"] = "tampered"
    assert store.get_session("s1").answers == {}


def test_duplicate_session_id_rejected():
    store = InMemoryDocumentStore()
    store.insert_session(_session())
    with pytest.raises(ValueError):
        store.insert_session(_session())


def test_questions_by_ids_keeps_order_and_skips_missing(store):
    ids = [q.id for q in store.get_questions_by_ids(["q3", "ghost", "q1"])]
    assert ids == ["q3", "q1"]


def test_merge_progress_transitions_and_rejects_after_completion():
    store = InMemoryDocumentStore()
    store.insert_session(_session())

    merged = store.merge_session_progress("s1", {"q1": "A"}, 1)
    assert merged.status == SessionStatus.IN_PROGRESS

    store.finalize_session("s1", {"q2": "B"}, 99.0, _result("r1"))
    with pytest.raises(SessionAlreadyCompleted):
        store.merge_session_progress("s1", {"q1": "C"})
    with pytest.raises(SessionNotFound):
        store.merge_session_progress("nope", {})

    final = store.get_session("s1")
    assert final.answers == {"q1": "A", "q2": "B"}
    assert final.ended_at == 99.0


def test_finalize_keeps_first_result():
    store = InMemoryDocumentStore()
    store.insert_session(_session())
    first = store.finalize_session("s1", {}, 1.0, _result("r1", score=1))
    second = store.finalize_session("s1", {"q1": "X"}, 2.0, _result("r2", score=2))

    assert second.id == first.id == "r1"
    assert store.get_result("r2") is None
    assert store.get_session("s1").ended_at == 1.0
    assert [r.id for r in store.list_results("e1")] == ["r1"]
    assert store.list_results("other") == []


def test_wait_for_write_times_out_without_cancelling():
    future = Future()
    with pytest.raises(PersistenceTimeout):
        wait_for_write(future, "test", 0.01)
    future.set_result("done")
    assert future.result() == "done"
