"""
services/exam_builder.py

관리자 시험 생성. 문제 풀 결정, 서술형 구조 생성, 총점 계산까지 한 번에 처리한다.
"""

import logging
import random
from typing import List, Optional

from school_cbt.models.exam_model import Exam, TheoryMode
from school_cbt.models.question_model import ExamType, Question, QuestionType
from school_cbt.services.document_store import DocumentStore
from school_cbt.services.theory_structure import (
    extract_question_ids,
    generate_structure,
    validate_structure,
)

logger = logging.getLogger(__name__)


def matching_objective_pool(exam: Exam, questions: List[Question]) -> List[str]:
    """같은 학년(과목이 지정됐으면 같은 과목)의 모든 문제."""
    return [
        q.id for q in questions
        if q.class_level == exam.class_level
        and (not exam.subject or q.subject == exam.subject)
    ]


def matching_theory_pool(exam: Exam, questions: List[Question]) -> List[str]:
    """같은 학년·과목의 서술형 문제."""
    return [
        q.id for q in questions
        if (q.exam_type == ExamType.THEORY or q.question_type == QuestionType.THEORY)
        and q.class_level == exam.class_level
        and q.subject == exam.subject
    ]


def create_exam(
    store: DocumentStore,
    exam: Exam,
    rng: Optional[random.Random] = None,
) -> Exam:
    """
    시험을 저장소에 생성한다.

    - 객관식: 문제 풀이 비어 있고 표시 문항 수가 지정되면, 조건에 맞는 문제 전체를 풀로 저장
      (세션마다 그중 일부를 무작위로 뽑는다).
    - 서술형 auto: 조건에 맞는 서술형 문제로 구조를 생성. manual: 주어진 구조를 검증.
      두 경우 모두 풀은 구조에 배정된 문제 ID.
    - total_points: 풀에서 찾을 수 있는 문제의 배점 합계 (생성 시 한 번).
    """
    exam = exam.model_copy(deep=True)

    if exam.is_theory:
        config = exam.theory_config
        if config.mode == TheoryMode.AUTO:
            pool = matching_theory_pool(exam, store.list_questions())
            if not pool:
                logger.warning(
                    f"시험 {exam.id}: {exam.subject} ({exam.class_level}) 서술형 문제가 없습니다. "
                    f"문제 없이 구조만 생성합니다."
                )
            config.structure = generate_structure(config.settings, pool, rng)
        validate_structure(config.structure)
        exam.question_ids = extract_question_ids(config.structure)

    elif not exam.question_ids and (exam.number_of_questions_to_display or 0) > 0:
        exam.question_ids = matching_objective_pool(exam, store.list_questions())
        logger.info(f"시험 {exam.id}: 조건 일치 문제 {len(exam.question_ids)}개를 풀로 저장")

    exam.total_points = sum(q.points for q in store.get_questions_by_ids(exam.question_ids))
    store.put_exam(exam)
    logger.info(
        f"시험 생성: {exam.id} '{exam.title}' ({exam.exam_type.value}, "
        f"풀 {len(exam.question_ids)}문항, 총점 {exam.total_points})"
    )
    return exam
