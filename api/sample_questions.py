"""
api/sample_questions.py — 데모용 샘플 문제은행 + 시험
"""

import logging

from school_cbt.models.exam_model import Exam, TheoryConfig, TheoryMode, TheorySettings
from school_cbt.models.question_model import ExamType, Question, QuestionType
from school_cbt.services.document_store import DocumentStore
from school_cbt.services.exam_builder import create_exam

logger = logging.getLogger(__name__)

SAMPLE_QUESTIONS: list[Question] = [
    Question(
        id="math-001", class_level="JSS1", subject="Mathematics", term="First Term",
        question_text="What is the value of 12 × 8?",
        options=["86", "96", "106", "92"], correct_answer="96", points=1,
    ),
    Question(
        id="math-002", class_level="JSS1", subject="Mathematics", term="First Term",
        question_text="Which of these numbers is a prime number?",
        options=["21", "27", "29", "33"], correct_answer="29", points=1,
    ),
    Question(
        id="math-003", class_level="JSS1", subject="Mathematics", term="First Term",
        question_text="Simplify 3/4 + 1/8.",
        options=["7/8", "4/12", "1", "5/8"], correct_answer="7/8", points=2,
    ),
    Question(
        id="math-004", class_level="JSS1", subject="Mathematics", term="First Term",
        question_text="An even number is always divisible by 2.",
        question_type=QuestionType.TRUE_FALSE, correct_answer="True", points=1,
    ),
    Question(
        id="math-005", class_level="JSS1", subject="Mathematics", term="First Term",
        question_text="Write 0.25 as a fraction in its lowest terms.",
        question_type=QuestionType.SHORT_ANSWER, correct_answer="1/4", points=2,
    ),
    Question(
        id="math-006", class_level="JSS1", subject="Mathematics", term="First Term",
        question_text="How many sides does a hexagon have?",
        options=["5", "6", "7", "8"], correct_answer="6", points=1,
    ),
    Question(
        id="sci-t01", class_level="JSS1", subject="Basic Science", term="First Term",
        question_text="Describe the three states of matter with one example each.",
        question_type=QuestionType.THEORY, exam_type=ExamType.THEORY, points=5,
    ),
    Question(
        id="sci-t02", class_level="JSS1", subject="Basic Science", term="First Term",
        question_text="Explain the process of evaporation.",
        question_type=QuestionType.THEORY, exam_type=ExamType.THEORY, points=3,
    ),
    Question(
        id="sci-t03", class_level="JSS1", subject="Basic Science", term="First Term",
        question_text="List four characteristics of living things.",
        question_type=QuestionType.THEORY, exam_type=ExamType.THEORY, points=4,
    ),
]


def load_sample(store: DocumentStore) -> dict:
    """샘플 문제와 객관식/서술형 시험을 하나씩 적재한다."""
    for q in SAMPLE_QUESTIONS:
        store.put_question(q)

    objectives = create_exam(store, Exam(
        id="sample-math",
        title="JSS1 Mathematics — First Term",
        subject="Mathematics",
        class_level="JSS1",
        term="First Term",
        duration_minutes=30,
        passing_score=50,
        number_of_questions_to_display=5,
    ))
    theory = create_exam(store, Exam(
        id="sample-science-theory",
        title="JSS1 Basic Science — Theory",
        subject="Basic Science",
        class_level="JSS1",
        term="First Term",
        duration_minutes=45,
        passing_score=50,
        exam_type=ExamType.THEORY,
        theory_config=TheoryConfig(
            mode=TheoryMode.AUTO,
            settings=TheorySettings(total_main_questions=3, include_alphabet=False),
        ),
        theory_instructions="Answer all questions.",
    ))

    logger.info(f"샘플 데이터 적재: 문제 {len(SAMPLE_QUESTIONS)}개, 시험 2개")
    return {
        "questions": len(SAMPLE_QUESTIONS),
        "exams": [objectives.id, theory.id],
    }
