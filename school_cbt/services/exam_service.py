"""
services/exam_service.py

시험 채점 및 결과 분석 비즈니스 로직.
순수 Python 함수로 구성 — 저장소 접근, 전역 상태 변경 없음.
세션당 한 번만 채점되도록 보장하는 것은 session_service + 저장소의 몫이다.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from school_cbt.models.exam_model import Exam
from school_cbt.models.question_model import Question
from school_cbt.models.result_model import Result, SubmissionType
from school_cbt.models.session_state import ExamSession


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


def is_correct(question: Question, answer: Optional[str], exam: Optional[Exam] = None) -> bool:
    """
    정답 판정.

    - 서술형 문제(또는 서술형 시험)는 별도 수기 검토 대상이므로 항상 정답 처리.
    - 그 외: 답안과 정답이 모두 비어 있지 않고, 공백 제거·대소문자 무시 비교가 같으면 정답.
    """
    if question.is_theory or (exam is not None and exam.is_theory):
        return True
    expected = _normalize(question.correct_answer)
    given = _normalize(answer)
    return bool(given) and bool(expected) and given == expected


def calculate_score(
    question_ids: Iterable[str],
    questions: Dict[str, Question],
    answers: Dict[str, str],
    exam: Optional[Exam] = None,
) -> Tuple[int, int, Dict[str, bool]]:
    """
    세션 문제 목록 기준으로 배점 합계를 계산한다.

    저장소에서 찾을 수 없는 문제 ID는 건너뛴다 (0점 처리하지 않음 — 감점 없음).

    Args:
        question_ids: 채점 대상 문제 ID (세션 고유 순서)
        questions:    {question.id: Question}
        answers:      사용자 답안지. {question.id: 답 문자열}

    Returns:
        (획득 점수, 총점, 문제별 정답 여부)
    """
    score = 0
    total = 0
    correct_map: Dict[str, bool] = {}

    for qid in question_ids:
        q = questions.get(qid)
        if q is None:
            continue
        total += q.points
        correct = is_correct(q, answers.get(qid), exam)
        correct_map[qid] = correct
        if correct:
            score += q.points

    return score, total, correct_map


def calculate_percentage(score: int, total: int) -> int:
    """총점이 0이면 0, 아니면 반올림한 백분율."""
    if total <= 0:
        return 0
    # 정수 연산 half-up 반올림
    return (score * 200 + total) // (total * 2)


def is_passed(percentage: int, pass_score: int) -> bool:
    """percentage >= pass_score 이면 합격."""
    return percentage >= pass_score


def grade(
    session: ExamSession,
    exam: Exam,
    questions: Iterable[Question],
    result_id: str,
    completed_at: float,
    submission_type: SubmissionType = SubmissionType.STUDENT,
    answers: Optional[Dict[str, str]] = None,
) -> Result:
    """
    완료된 세션을 채점하여 Result 를 만든다. 저장은 하지 않는다.

    채점 대상은 시험 풀 전체가 아니라 session.session_question_ids 이다.
    answers 가 주어지면 그것을, 아니면 세션에 기록된 답안을 사용한다.
    """
    question_map = {q.id: q for q in questions}
    final_answers = dict(session.answers if answers is None else answers)

    score, total, correct_map = calculate_score(
        session.session_question_ids, question_map, final_answers, exam
    )
    percentage = calculate_percentage(score, total)

    return Result(
        id=result_id,
        session_id=session.id,
        exam_id=exam.id,
        student_name=session.student_name,
        student_id=session.student_id,
        score=score,
        total_points=total,
        percentage=percentage,
        passed=is_passed(percentage, exam.passing_score),
        correct_answers=correct_map,
        answers=final_answers,
        submission_type=submission_type,
        completed_at=completed_at,
    )


def get_incorrect_question_ids(result: Result) -> List[str]:
    """
    오답 문제 ID 리스트 (오답 노트용). 채점 순서 유지.
    """
    return [qid for qid, correct in result.correct_answers.items() if not correct]


def calculate_subject_scores(
    result: Result,
    questions: Iterable[Question],
) -> List[Dict[str, object]]:
    """
    과목별 점수를 계산하여 반환한다.

    Returns:
        [{"subject": str, "total": int, "correct": int,
          "incorrect": int, "unanswered": int, "score": float}, ...]
        과목명 기준 정렬.
    """
    question_map = {q.id: q for q in questions}
    buckets: Dict[str, Dict[str, int]] = defaultdict(
        lambda: {"total": 0, "correct": 0, "incorrect": 0, "unanswered": 0}
    )

    for qid, correct in result.correct_answers.items():
        q = question_map.get(qid)
        subj = (q.subject if q else "") or "기타"
        buckets[subj]["total"] += 1

        if correct:
            buckets[subj]["correct"] += 1
        elif not _normalize(result.answers.get(qid)):
            buckets[subj]["unanswered"] += 1
        else:
            buckets[subj]["incorrect"] += 1

    summary = []
    for subj in sorted(buckets):
        b = buckets[subj]
        score = round(b["correct"] / b["total"] * 100, 1) if b["total"] else 0.0
        summary.append({"subject": subj, **b, "score": score})
    return summary
