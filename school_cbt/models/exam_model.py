"""
models/exam_model.py

시험(Exam)과 서술형 문항 구조(TheorySlot) 모델.
total_points 는 시험 생성 시 한 번만 계산되며 세션마다 다시 계산하지 않는다.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from school_cbt.models.question_model import ExamType


class TheoryMode(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


class TheorySlot(BaseModel):
    """
    서술형 구조의 한 칸. level 1 = 대문항(1, 2…), 2 = 소문항(a, b…), 3 = 세부문항(i, ii…).
    question_id 가 없으면 안내용 자리표시 칸이다.
    """
    id: str = Field(..., description="경로 라벨 (예: '1', '1a', '1aii')")
    label: str = Field(..., description="표시 라벨 (예: '1', 'a', 'ii')")
    level: int = Field(..., ge=1, le=3)
    question_id: Optional[str] = None
    children: List[TheorySlot] = Field(default_factory=list)


class TheorySettings(BaseModel):
    total_main_questions: int = Field(4, ge=0, le=50)
    include_alphabet: bool = True
    include_roman: bool = False
    randomize_complexity: bool = False


class TheoryConfig(BaseModel):
    mode: TheoryMode = TheoryMode.MANUAL
    settings: TheorySettings = Field(default_factory=TheorySettings)
    structure: List[TheorySlot] = Field(default_factory=list)


class Exam(BaseModel):
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    subject: str = ""
    class_level: str = ""
    term: str = ""
    duration_minutes: int = Field(60, gt=0, description="시험 제한 시간 (분)")
    passing_score: int = Field(50, ge=0, le=100, description="합격 기준 백분율")
    question_ids: List[str] = Field(
        default_factory=list,
        description="문제 풀(pool). 객관식 시험은 표시 문항 수보다 클 수 있다."
    )
    number_of_questions_to_display: Optional[int] = Field(
        None,
        description="응시자별 표시 문항 수 상한 (없으면 풀 전체)"
    )
    exam_type: ExamType = ExamType.OBJECTIVES
    theory_config: Optional[TheoryConfig] = None
    theory_instructions: str = ""
    total_points: int = Field(0, ge=0)
    is_active: bool = True
    created_at: float = Field(default_factory=time.time)

    @model_validator(mode="after")
    def validate_exam_type(self) -> Exam:
        """
        서술형 시험은 구조가 문항 수를 결정하므로 표시 문항 수 상한을 쓰지 않는다.
        """
        if self.exam_type == ExamType.THEORY:
            self.number_of_questions_to_display = None
            if self.theory_config is None:
                self.theory_config = TheoryConfig()
        return self

    @property
    def is_theory(self) -> bool:
        return self.exam_type == ExamType.THEORY
