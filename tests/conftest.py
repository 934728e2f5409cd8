import random

import pytest

from school_cbt.models.exam_model import Exam
from school_cbt.models.question_model import ExamType, Question, QuestionType
from school_cbt.services.document_store import InMemoryDocumentStore
from school_cbt.services.session_service import ExamSessionService


class FakeClock:
    """테스트용 시계. advance() 로 시간을 진행시킨다."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_questions():
    return [
        Question(id="q1", question_text="2 + 2 = ?", options=["3", "4"], correct_answer="A", points=2),
        Question(id="q2", question_text="Capital of Nigeria?", options=["Lagos", "Abuja"],
                 correct_answer="B", points=3),
        Question(id="q3", question_text="Water boils at 100°C.", question_type=QuestionType.TRUE_FALSE,
                 correct_answer="True"),
        Question(id="q4", question_text="Name a mammal.", question_type=QuestionType.SHORT_ANSWER,
                 correct_answer="Goat"),
        Question(id="t1", question_text="Explain photosynthesis.", question_type=QuestionType.THEORY,
                 exam_type=ExamType.THEORY, points=4),
    ]


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store():
    s = InMemoryDocumentStore()
    for q in make_questions():
        s.put_question(q)
    s.put_exam(Exam(
        id="exam-1",
        title="Mock Exam",
        duration_minutes=30,
        passing_score=60,
        question_ids=["q1", "q2", "q3", "q4"],
    ))
    return s


@pytest.fixture()
def engine(store, clock):
    svc = ExamSessionService(
        store,
        rng=random.Random(42),
        clock=clock,
        session_write_timeout=1.0,
        result_write_timeout=1.0,
    )
    yield svc
    svc.shutdown()
