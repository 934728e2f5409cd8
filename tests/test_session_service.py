import random
import threading
import time

import pytest

from school_cbt.errors import ExamNotFound, SessionAlreadyCompleted, SessionNotFound
from school_cbt.models.exam_model import Exam
from school_cbt.models.result_model import SubmissionType
from school_cbt.models.session_state import SessionStatus
from school_cbt.services.document_store import InMemoryDocumentStore
from school_cbt.services.session_service import ExamSessionService


def test_start_session_freezes_question_set(engine, store):
    session = engine.start_session("exam-1", " Ada Obi ", "JSS1-001")

    assert session.student_name == "Ada Obi"
    assert session.status == SessionStatus.CREATED
    assert session.answers == {}
    assert session.current_question_index == 0
    assert sorted(session.session_question_ids) == ["q1", "q2", "q3", "q4"]

    stored = store.get_session(session.id)
    assert stored.session_question_ids == session.session_question_ids
    # 재조회해도 같은 문제 세트
    assert engine.get_session(session.id).session_question_ids == session.session_question_ids


def test_session_question_ids_cannot_be_reassigned(engine):
    session = engine.start_session("exam-1", "Ada", "001")
    with pytest.raises(Exception):
        session.session_question_ids = ["q1"]


def test_display_count_truncates_per_session(store, clock):
    store.put_exam(Exam(id="exam-2", title="Capped", question_ids=["q1", "q2", "q3", "q4"],
                        number_of_questions_to_display=2))
    svc = ExamSessionService(store, rng=random.Random(1), clock=clock)
    seen = set()
    for i in range(15):
        ids = svc.start_session("exam-2", "Student", f"S{i}").session_question_ids
        assert len(ids) == 2 and len(set(ids)) == 2
        seen.add(tuple(ids))
    assert len(seen) > 1
    svc.shutdown()


def test_unknown_exam_raises(engine):
    with pytest.raises(ExamNotFound):
        engine.start_session("nope", "Ada", "001")


def test_unknown_session_raises(engine):
    with pytest.raises(SessionNotFound):
        engine.get_session("nope")
    with pytest.raises(SessionNotFound):
        engine.save_progress("nope", {"q1": "A"}, 0)
    with pytest.raises(SessionNotFound):
        engine.submit("nope")


def test_sequential_saves_merge_answers(engine):
    session = engine.start_session("exam-1", "Ada", "001")
    engine.save_progress(session.id, {"q1": "A"}, 0)
    engine.save_progress(session.id, {"q2": "B"}, 1)

    current = engine.get_session(session.id)
    assert current.answers == {"q1": "A", "q2": "B"}
    assert current.current_question_index == 1
    assert current.status == SessionStatus.IN_PROGRESS


def test_record_answer_last_write_wins_per_question(engine):
    session = engine.start_session("exam-1", "Ada", "001")
    engine.record_answer(session.id, "q1", "B", 0)
    engine.record_answer(session.id, "q1", "A", 2)
    current = engine.get_session(session.id)
    assert current.answers == {"q1": "A"}
    assert current.current_question_index == 2


def test_concurrent_saves_to_different_questions_do_not_clobber(engine):
    session = engine.start_session("exam-1", "Ada", "001")
    question_ids = ["q1", "q2", "q3", "q4"]
    threads = [
        threading.Thread(target=engine.record_answer, args=(session.id, qid, f"ans-{qid}"))
        for qid in question_ids
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert engine.get_session(session.id).answers == {q: f"ans-{q}" for q in question_ids}


def test_submit_grades_and_completes(engine, store, clock):
    session = engine.start_session("exam-1", "Ada", "001")
    engine.save_progress(session.id, {"q1": "a", "q2": "B"}, 1)
    clock.advance(60)

    result = engine.submit(session.id, {"q3": "true"})

    assert result.score == 6
    assert result.total_points == 7
    assert result.percentage == 86
    assert result.passed is True
    assert result.submission_type == SubmissionType.STUDENT

    completed = store.get_session(session.id)
    assert completed.is_completed is True
    assert completed.ended_at == clock.now
    assert completed.answers == {"q1": "a", "q2": "B", "q3": "true"}


def test_submit_is_idempotent(engine):
    session = engine.start_session("exam-1", "Ada", "001")
    first = engine.submit(session.id, {"q1": "A"})
    second = engine.submit(session.id, {"q1": "wrong", "q2": "B"}, SubmissionType.AUTO)

    assert second.id == first.id
    assert second.score == first.score
    assert second.percentage == first.percentage
    assert second.submission_type == SubmissionType.STUDENT


def test_mutation_after_completion_is_rejected(engine):
    session = engine.start_session("exam-1", "Ada", "001")
    engine.submit(session.id, {"q1": "A"})

    with pytest.raises(SessionAlreadyCompleted):
        engine.save_progress(session.id, {"q2": "B"}, 1)
    assert engine.get_session(session.id).answers == {"q1": "A"}


def test_concurrent_submits_produce_one_result(store, clock):
    svc = ExamSessionService(store, rng=random.Random(0), clock=clock, write_workers=8)
    session = svc.start_session("exam-1", "Ada", "001")

    results = []
    barrier = threading.Barrier(6)

    def _submit(kind):
        barrier.wait()
        results.append(svc.submit(session.id, {"q1": "A"}, kind))

    threads = [
        threading.Thread(target=_submit, args=(SubmissionType.AUTO if i % 2 else SubmissionType.STUDENT,))
        for i in range(6)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({r.id for r in results}) == 1
    assert len(store.list_results()) == 1
    svc.shutdown()


def test_expired_session_auto_submits_on_access(engine, store, clock):
    session = engine.start_session("exam-1", "Ada", "001")
    engine.save_progress(session.id, {"q2": "B"}, 1)
    clock.advance(30 * 60)

    loaded = engine.get_session(session.id)

    assert loaded.is_completed is True
    result = store.get_result_by_session(session.id)
    assert result is not None
    assert result.submission_type == SubmissionType.AUTO
    assert result.score == 3


def test_save_after_deadline_forces_completion(engine, store, clock):
    session = engine.start_session("exam-1", "Ada", "001")
    clock.advance(31 * 60)
    with pytest.raises(SessionAlreadyCompleted):
        engine.record_answer(session.id, "q1", "A")
    assert store.get_result_by_session(session.id).submission_type == SubmissionType.AUTO
    assert "q1" not in store.get_session(session.id).answers


def test_late_submit_grades_stored_answers_as_auto(engine, store, clock):
    session = engine.start_session("exam-1", "Ada", "001")
    engine.save_progress(session.id, {"q3": "True"}, 2)
    clock.advance(31 * 60)

    result = engine.submit(session.id, {"q1": "A", "q2": "B"})

    assert result.submission_type == SubmissionType.AUTO
    assert result.score == 1
    assert result.answers == {"q3": "True"}
    assert store.get_session(session.id).answers == {"q3": "True"}
    assert store.get_result_by_session(session.id).id == result.id


def test_submit_exactly_at_deadline_is_auto(engine, clock):
    session = engine.start_session("exam-1", "Ada", "001")
    clock.advance(30 * 60)
    result = engine.submit(session.id, {"q1": "A"})
    assert result.submission_type == SubmissionType.AUTO
    assert result.score == 0


def test_remaining_seconds(engine, clock):
    session = engine.start_session("exam-1", "Ada", "001")
    exam = engine.store.get_exam("exam-1")
    assert engine.remaining(session, exam) == 30 * 60
    clock.advance(90.5)
    assert engine.remaining(session, exam) == 30 * 60 - 90


class SlowStore(InMemoryDocumentStore):
    def __init__(self, delay):
        super().__init__()
        self.delay = delay

    def insert_session(self, session):
        time.sleep(self.delay)
        return super().insert_session(session)

    def finalize_session(self, session_id, answers, ended_at, result):
        time.sleep(self.delay)
        return super().finalize_session(session_id, answers, ended_at, result)


def test_slow_persistence_proceeds_optimistically(store, clock):
    slow = SlowStore(0.3)
    for q in store.list_questions():
        slow.put_question(q)
    for e in store.list_exams():
        slow.put_exam(e)

    svc = ExamSessionService(slow, clock=clock, session_write_timeout=0.05, result_write_timeout=0.05)
    session = svc.start_session("exam-1", "Ada", "001")
    assert slow.get_session(session.id) is None

    time.sleep(0.6)
    stored = slow.get_session(session.id)
    assert stored is not None
    assert stored.id == session.id

    result = svc.submit(session.id, {"q1": "A"})
    assert result.score == 2
    time.sleep(0.6)
    assert slow.get_result_by_session(session.id).id == result.id
    svc.shutdown()
