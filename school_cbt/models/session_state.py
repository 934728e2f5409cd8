"""
models/session_state.py

응시자 한 명의 시험 세션 상태를 담는 OMR 카드 모델.
Pydantic BaseModel 기반 — 저장소에 그대로 직렬화된다.

상태 전이: created → in-progress → completed. completed 에서 나가는 전이는 없다.
"""

import time
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, computed_field


class SessionStatus(str, Enum):
    CREATED = "created"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


_TRANSITIONS: Dict[SessionStatus, set] = {
    SessionStatus.CREATED: {SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED},
    SessionStatus.IN_PROGRESS: {SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED},
    SessionStatus.COMPLETED: set(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in _TRANSITIONS.get(current, set())


class ExamSession(BaseModel):
    """
    사용자의 시험 세션 전체 상태를 표현하는 모델.

    Attributes:
        session_question_ids:   세션 생성 시 한 번 정해지는 문제 순서. 이후 변경 불가.
        answers:                답안지. {question.id: 답 문자열}, 병합으로만 늘어난다.
        current_question_index: 마지막으로 본 문제 인덱스 (이어 풀기용, 0-based).
        started_at:             시험 시작 시각 (Unix timestamp). 마감 시각 계산의 기준.
        ended_at:               제출 시각. 완료 시 한 번만 기록된다.
    """

    id: str = Field(..., min_length=1)
    exam_id: str = Field(..., min_length=1)
    student_name: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    session_question_ids: List[str] = Field(
        default_factory=list,
        frozen=True,
        description="세션 전용 문제 ID 순서 (생성 시 고정)"
    )
    answers: Dict[str, str] = Field(default_factory=dict)
    current_question_index: int = Field(default=0, ge=0)
    started_at: float = Field(default_factory=time.time)
    ended_at: Optional[float] = None
    status: SessionStatus = SessionStatus.CREATED

    @computed_field
    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    def transition(self, target: SessionStatus) -> None:
        if not can_transition(self.status, target):
            raise ValueError(f"허용되지 않는 상태 전이: {self.status.value} → {target.value}")
        self.status = target
