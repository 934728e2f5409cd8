"""
services/session_service.py

시험 세션 엔진 — 세션 생성, 답안 저장, 제출(채점)까지의 상태 전이를 담당한다.

세션 상태는 모두 저장소에 있으며, 이 클래스가 가진 프로세스 내 상태는
마감 감시 레지스트리와 쓰기용 스레드 풀뿐이다.
"""

import logging
import random
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Tuple

import config
from school_cbt.errors import (
    ExamNotFound,
    PersistenceTimeout,
    SessionAlreadyCompleted,
    SessionNotFound,
)
from school_cbt.models.exam_model import Exam
from school_cbt.models.question_model import Question
from school_cbt.models.result_model import Result, SubmissionType
from school_cbt.models.session_state import ExamSession, SessionStatus
from school_cbt.services import exam_service
from school_cbt.services.deadline_monitor import MonitorRegistry, deadline_of, remaining_seconds
from school_cbt.services.document_store import DocumentStore, wait_for_write
from school_cbt.services.draw import select_session_questions

logger = logging.getLogger(__name__)


class ExamSessionService:
    """
    시험 세션 엔진.

    Args:
        store:                 문서 저장소
        monitors:              마감 감시 레지스트리 (None 이면 서버 측 감시 없음 — 접근 시에만 마감 확인)
        rng:                   문제 선택용 난수 생성기
        clock:                 현재 시각 (Unix timestamp)
        session_write_timeout: 세션 생성 쓰기 대기 한도 (초)
        result_write_timeout:  결과 저장 대기 한도 (초)
    """

    def __init__(
        self,
        store: DocumentStore,
        monitors: Optional[MonitorRegistry] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        session_write_timeout: float = config.SESSION_WRITE_TIMEOUT,
        result_write_timeout: float = config.RESULT_WRITE_TIMEOUT,
        write_workers: int = config.WRITE_WORKERS,
    ):
        self.store = store
        self.monitors = monitors
        self._rng = rng or random.Random()
        self._clock = clock
        self._session_write_timeout = session_write_timeout
        self._result_write_timeout = result_write_timeout
        self._writer = ThreadPoolExecutor(
            max_workers=write_workers, thread_name_prefix="cbt-write"
        )

    def shutdown(self) -> None:
        if self.monitors is not None:
            self.monitors.cancel_all()
        self._writer.shutdown(wait=False)

    # ── 조회 헬퍼 ──────────────────────────────────────────────────────────

    def _require_exam(self, exam_id: str) -> Exam:
        exam = self.store.get_exam(exam_id)
        if exam is None:
            logger.error(f"시험 없음: {exam_id}")
            raise ExamNotFound(exam_id)
        return exam

    def _require_session(self, session_id: str) -> ExamSession:
        session = self.store.get_session(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def now(self) -> float:
        return self._clock()

    def remaining(self, session: ExamSession, exam: Exam) -> int:
        if session.is_completed:
            return 0
        return remaining_seconds(session.started_at, exam.duration_minutes, self._clock())

    # ── 생성 ──────────────────────────────────────────────────────────────

    def start_session(self, exam_id: str, student_name: str, student_id: str) -> ExamSession:
        """
        세션 생성. 문제 선택은 여기서 단 한 번 수행되고 이후 바뀌지 않는다.

        저장 확인을 session_write_timeout 초까지 기다린 뒤, 확인되지 않아도
        저장소가 발급한 ID로 진행한다 (쓰기는 계속 진행 중).
        """
        exam = self._require_exam(exam_id)

        question_ids = select_session_questions(
            exam.question_ids, exam.number_of_questions_to_display, self._rng
        )
        session = ExamSession(
            id=self.store.new_id(),
            exam_id=exam.id,
            student_name=student_name.strip(),
            student_id=student_id.strip(),
            session_question_ids=question_ids,
            started_at=self._clock(),
        )

        future = self._writer.submit(self.store.insert_session, session)
        try:
            wait_for_write(future, f"세션 생성 {session.id}", self._session_write_timeout)
        except PersistenceTimeout as e:
            logger.warning(f"{e} 시험은 시작된 것으로 간주합니다.")

        logger.info(
            f"세션 시작: {session.id} (시험 {exam.id}, 응시자 {session.student_id}, "
            f"문항 {len(question_ids)}/{len(exam.question_ids)})"
        )
        self._watch(session, exam)
        return session

    # ── 조회 ──────────────────────────────────────────────────────────────

    def get_session(self, session_id: str) -> ExamSession:
        """
        세션 조회. 진행 중인데 이미 마감이 지났다면 즉시 자동 제출한 뒤
        완료된 상태를 반환한다. 진행 중이면 마감 감시를 다시 건다.
        """
        session = self._require_session(session_id)
        if session.is_completed:
            return session

        exam = self._require_exam(session.exam_id)
        if self.remaining(session, exam) == 0:
            logger.info(f"세션 {session_id}: 마감 경과 — 접근 시 자동 제출")
            self.submit(session_id, None, SubmissionType.AUTO)
            return self._require_session(session_id)

        self._watch(session, exam)
        return session

    def get_session_with_exam(self, session_id: str) -> Tuple[ExamSession, Exam]:
        session = self.get_session(session_id)
        return session, self._require_exam(session.exam_id)

    def get_session_questions(self, session_id: str) -> List[Question]:
        """세션 문제를 세션 순서대로 반환 (저장소에 없는 ID는 빠짐)."""
        session = self._require_session(session_id)
        return self.store.get_questions_by_ids(session.session_question_ids)

    def get_result(self, session_id: str) -> Optional[Result]:
        self._require_session(session_id)
        return self.store.get_result_by_session(session_id)

    # ── 답안 기록 ─────────────────────────────────────────────────────────

    def _ensure_open(self, session_id: str) -> None:
        """완료됐거나 마감이 지난 세션이면 SessionAlreadyCompleted."""
        session = self.get_session(session_id)
        if session.is_completed:
            raise SessionAlreadyCompleted(session_id)

    def save_progress(
        self,
        session_id: str,
        answers: Dict[str, str],
        position: Optional[int] = None,
    ) -> ExamSession:
        """
        답안을 기존 답안지에 병합하고 현재 위치를 갱신한다.
        다른 문제의 답안은 덮어쓰지 않는다 (문제 ID별 last-write-wins).
        """
        self._ensure_open(session_id)
        session = self.store.merge_session_progress(session_id, dict(answers), position)
        logger.debug(
            f"세션 {session_id}: 답안 {len(answers)}개 저장, 위치 {session.current_question_index}"
        )
        return session

    def record_answer(
        self,
        session_id: str,
        question_id: str,
        answer: str,
        position: Optional[int] = None,
    ) -> ExamSession:
        return self.save_progress(session_id, {question_id: answer}, position)

    # ── 제출 ──────────────────────────────────────────────────────────────

    def submit(
        self,
        session_id: str,
        answers: Optional[Dict[str, str]] = None,
        submission_type: SubmissionType = SubmissionType.STUDENT,
    ) -> Result:
        """
        세션 완료 + 채점. 멱등 — 이미 결과가 있으면 다시 채점하지 않고 그대로 반환한다.

        answers 가 주어지면 저장된 답안지 위에 병합한 것을 최종 답안으로 채점한다.
        마감이 지났으면 answers 와 submission_type 을 무시하고 저장된 답안지를 AUTO 로 채점한다.
        동시에 두 번 호출되어도 저장소 트랜잭션이 결과를 하나만 남기며,
        늦은 호출자는 먼저 저장된 결과를 받는다.
        """
        session = self._require_session(session_id)

        existing = self.store.get_result_by_session(session_id)
        if existing is not None:
            logger.info(f"세션 {session_id}: 이미 제출됨 — 기존 결과 반환")
            self._unwatch(session_id)
            return existing

        exam = self._require_exam(session.exam_id)
        questions = self.store.get_questions_by_ids(session.session_question_ids)

        if self.remaining(session, exam) == 0:
            # 마감 이후 도착한 답안은 받지 않는다 — 저장된 답안지로 자동 제출
            if answers or submission_type != SubmissionType.AUTO:
                logger.warning(f"세션 {session_id}: 마감 후 제출 요청 — 저장된 답안으로 자동 제출")
            answers = None
            submission_type = SubmissionType.AUTO

        final_answers = dict(session.answers)
        if answers:
            final_answers.update(answers)

        now = self._clock()
        result = exam_service.grade(
            session,
            exam,
            questions,
            result_id=self.store.new_id(),
            completed_at=now,
            submission_type=submission_type,
            answers=final_answers,
        )

        future = self._writer.submit(
            self.store.finalize_session, session_id, final_answers, now, result
        )
        try:
            result = wait_for_write(future, f"결과 저장 {session_id}", self._result_write_timeout)
        except PersistenceTimeout as e:
            logger.warning(f"{e} 계산된 결과로 진행합니다.")

        self._unwatch(session_id)
        logger.info(
            f"세션 {session_id} 제출({result.submission_type.value}): "
            f"{result.score}/{result.total_points} ({result.percentage}%) "
            f"{'합격' if result.passed else '불합격'}"
        )
        return result

    # ── 마감 감시 ─────────────────────────────────────────────────────────

    def _watch(self, session: ExamSession, exam: Exam) -> None:
        if self.monitors is None or session.status == SessionStatus.COMPLETED:
            return
        self.monitors.watch(
            session.id,
            deadline_of(session.started_at, exam.duration_minutes),
            self._auto_submit,
        )

    def _unwatch(self, session_id: str) -> None:
        if self.monitors is not None:
            self.monitors.cancel(session_id)

    def _auto_submit(self, session_id: str) -> None:
        self.submit(session_id, None, SubmissionType.AUTO)
