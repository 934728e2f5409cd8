"""
services/document_store.py — 문서 저장소 인터페이스 + 인메모리 구현

엔진은 DocumentStore 인터페이스로만 저장소에 접근한다.
InMemoryDocumentStore 는 컬렉션별 dict 를 하나의 Lock 으로 보호하며,
읽기/쓰기 모두 사본을 주고받아 호출자가 저장된 상태를 직접 바꾸지 못한다.

세션 완료(finalize_session)는 "결과가 없으면 생성" + 완료 플래그 설정을
하나의 임계 구역에서 처리하는 트랜잭션이다.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from concurrent.futures import Future, TimeoutError as FutureTimeout
from typing import Dict, List, Optional, Sequence

from school_cbt.errors import PersistenceTimeout, SessionAlreadyCompleted, SessionNotFound
from school_cbt.models.exam_model import Exam
from school_cbt.models.question_model import Question
from school_cbt.models.result_model import Result
from school_cbt.models.session_state import ExamSession, SessionStatus

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """엔진이 사용하는 문서 컬렉션 연산."""

    @abstractmethod
    def new_id(self) -> str:
        """새 문서 ID 발급. 세션/결과 ID는 항상 저장소가 정한다."""

    # ── 문제 ──────────────────────────────────────────────────────────────
    @abstractmethod
    def put_question(self, question: Question) -> Question: ...

    @abstractmethod
    def get_question(self, question_id: str) -> Optional[Question]: ...

    @abstractmethod
    def get_questions_by_ids(self, question_ids: Sequence[str]) -> List[Question]:
        """요청 순서대로 반환. 없는 ID는 빠진다."""

    @abstractmethod
    def list_questions(self) -> List[Question]: ...

    # ── 시험 ──────────────────────────────────────────────────────────────
    @abstractmethod
    def put_exam(self, exam: Exam) -> Exam: ...

    @abstractmethod
    def get_exam(self, exam_id: str) -> Optional[Exam]: ...

    @abstractmethod
    def list_exams(self) -> List[Exam]: ...

    # ── 세션 ──────────────────────────────────────────────────────────────
    @abstractmethod
    def insert_session(self, session: ExamSession) -> ExamSession: ...

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[ExamSession]: ...

    @abstractmethod
    def merge_session_progress(
        self,
        session_id: str,
        answers: Dict[str, str],
        position: Optional[int] = None,
    ) -> ExamSession:
        """
        답안을 기존 답안지에 병합하고 현재 위치를 갱신한다.
        완료된 세션이면 SessionAlreadyCompleted, 없으면 SessionNotFound.
        """

    @abstractmethod
    def finalize_session(
        self,
        session_id: str,
        answers: Dict[str, str],
        ended_at: float,
        result: Result,
    ) -> Result:
        """
        세션 완료 트랜잭션. 이미 결과가 있으면 그 결과를 그대로 반환하고,
        없으면 세션을 완료 처리하고 result 를 저장한 뒤 반환한다.
        """

    # ── 결과 ──────────────────────────────────────────────────────────────
    @abstractmethod
    def get_result(self, result_id: str) -> Optional[Result]: ...

    @abstractmethod
    def get_result_by_session(self, session_id: str) -> Optional[Result]: ...

    @abstractmethod
    def list_results(self, exam_id: Optional[str] = None) -> List[Result]: ...


class InMemoryDocumentStore(DocumentStore):
    """프로세스 내 저장소. 단일 Lock 으로 모든 read-modify-write 를 직렬화한다."""

    def __init__(self):
        self._lock = threading.Lock()
        self._questions: Dict[str, Question] = {}
        self._exams: Dict[str, Exam] = {}
        self._sessions: Dict[str, ExamSession] = {}
        self._results: Dict[str, Result] = {}
        self._results_by_session: Dict[str, str] = {}

    def new_id(self) -> str:
        return uuid.uuid4().hex

    def put_question(self, question: Question) -> Question:
        with self._lock:
            self._questions[question.id] = question.model_copy(deep=True)
        return question

    def get_question(self, question_id: str) -> Optional[Question]:
        with self._lock:
            q = self._questions.get(question_id)
            return q.model_copy(deep=True) if q else None

    def get_questions_by_ids(self, question_ids: Sequence[str]) -> List[Question]:
        with self._lock:
            return [
                self._questions[qid].model_copy(deep=True)
                for qid in question_ids
                if qid in self._questions
            ]

    def list_questions(self) -> List[Question]:
        with self._lock:
            return [q.model_copy(deep=True) for q in self._questions.values()]

    def put_exam(self, exam: Exam) -> Exam:
        with self._lock:
            self._exams[exam.id] = exam.model_copy(deep=True)
        return exam

    def get_exam(self, exam_id: str) -> Optional[Exam]:
        with self._lock:
            exam = self._exams.get(exam_id)
            return exam.model_copy(deep=True) if exam else None

    def list_exams(self) -> List[Exam]:
        with self._lock:
            return [e.model_copy(deep=True) for e in self._exams.values()]

    def insert_session(self, session: ExamSession) -> ExamSession:
        with self._lock:
            if session.id in self._sessions:
                raise ValueError(f"세션 ID 중복: {session.id}")
            self._sessions[session.id] = session.model_copy(deep=True)
        return session

    def get_session(self, session_id: str) -> Optional[ExamSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy(deep=True) if session else None

    def merge_session_progress(
        self,
        session_id: str,
        answers: Dict[str, str],
        position: Optional[int] = None,
    ) -> ExamSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            if session.is_completed:
                raise SessionAlreadyCompleted(session_id)

            session.answers.update(answers)
            if position is not None:
                session.current_question_index = max(0, position)
            session.transition(SessionStatus.IN_PROGRESS)
            return session.model_copy(deep=True)

    def finalize_session(
        self,
        session_id: str,
        answers: Dict[str, str],
        ended_at: float,
        result: Result,
    ) -> Result:
        with self._lock:
            existing_id = self._results_by_session.get(session_id)
            if existing_id is not None:
                return self._results[existing_id].model_copy(deep=True)

            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)

            session.answers.update(answers)
            session.ended_at = ended_at
            session.transition(SessionStatus.COMPLETED)

            self._results[result.id] = result.model_copy(deep=True)
            self._results_by_session[session_id] = result.id
            return result.model_copy(deep=True)

    def get_result(self, result_id: str) -> Optional[Result]:
        with self._lock:
            result = self._results.get(result_id)
            return result.model_copy(deep=True) if result else None

    def get_result_by_session(self, session_id: str) -> Optional[Result]:
        with self._lock:
            result_id = self._results_by_session.get(session_id)
            if result_id is None:
                return None
            return self._results[result_id].model_copy(deep=True)

    def list_results(self, exam_id: Optional[str] = None) -> List[Result]:
        with self._lock:
            results = [
                r.model_copy(deep=True)
                for r in self._results.values()
                if exam_id is None or r.exam_id == exam_id
            ]
        return sorted(results, key=lambda r: r.completed_at)


# ── 제한 시간 대기 ────────────────────────────────────────────────────────────

def wait_for_write(future: Future, operation: str, timeout: float):
    """
    쓰기 작업 Future 를 최대 timeout 초 기다린다.
    시간 내 확인되지 않으면 PersistenceTimeout. 작업 자체는 계속 진행되며,
    나중에 실패하면 로그로 남긴다.
    """
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        future.add_done_callback(lambda f: _log_late_failure(f, operation))
        raise PersistenceTimeout(operation, timeout)


def _log_late_failure(future: Future, operation: str) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error(f"{operation}: 지연된 저장 작업이 실패했습니다 — {exc}")
    else:
        logger.info(f"{operation}: 지연된 저장 작업이 완료되었습니다.")
