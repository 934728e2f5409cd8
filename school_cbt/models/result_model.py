import time
from enum import Enum
from typing import Dict

from pydantic import BaseModel, Field


class SubmissionType(str, Enum):
    STUDENT = "student"
    AUTO = "auto"


class Result(BaseModel):
    """
    채점 결과. 세션당 하나만 생성되며 이후 다시 계산하지 않는다.
    """
    id: str = Field(..., min_length=1)
    session_id: str = Field(..., min_length=1)
    exam_id: str
    student_name: str
    student_id: str
    score: int = Field(0, ge=0, description="정답 문제 배점 합계")
    total_points: int = Field(0, ge=0, description="세션 문제 배점 합계")
    percentage: int = Field(0, ge=0, le=100)
    passed: bool = False
    correct_answers: Dict[str, bool] = Field(
        default_factory=dict,
        description="문제별 정답 여부"
    )
    answers: Dict[str, str] = Field(default_factory=dict, description="제출 시점 답안 스냅샷")
    submission_type: SubmissionType = SubmissionType.STUDENT
    completed_at: float = Field(default_factory=time.time)
