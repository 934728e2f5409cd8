from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"
    THEORY = "theory"


class ExamType(str, Enum):
    OBJECTIVES = "Objectives"
    THEORY = "Theory"


class Question(BaseModel):
    """
    학교 CBT 문제 모델
    시험 세션에서 참조되는 동안에는 변경하지 않는다.
    """
    id: str = Field(
        ...,
        min_length=1,
        description="문제 ID (저장소가 부여한 고유 식별자)"
    )
    question_text: str = Field(
        ...,
        min_length=1,
        description="발문/문제 내용"
    )
    question_type: QuestionType = Field(
        QuestionType.MULTIPLE_CHOICE,
        description="문제 유형"
    )
    options: List[str] = Field(
        default_factory=list,
        description="보기 리스트 (객관식에만 존재)"
    )
    correct_answer: Optional[str] = Field(
        None,
        description="정답 문자열 (서술형은 비어 있거나 자리표시 값)"
    )
    points: int = Field(
        1,
        description="배점 (양의 정수, 기본 1점)"
    )

    # ── 분류 태그 ─────────────────────────────────────────────────────────
    class_level: str = Field("", description="학년 (예: JSS1, SS2)")
    subject: str = Field("", description="과목명")
    term: str = Field("", description="학기 (예: First Term)")
    exam_type: ExamType = Field(ExamType.OBJECTIVES, description="시험 유형 분류")
    difficulty: str = Field("", description="난이도")

    @field_validator("points", mode="before")
    @classmethod
    def coerce_points(cls, v: Any) -> int:
        """
        배점이 비어 있거나 숫자가 아니거나 0 이하이면 1점으로 본다.
        """
        try:
            value = int(float(v))
        except (TypeError, ValueError):
            return 1
        return value if value > 0 else 1

    @model_validator(mode="after")
    def validate_options(self) -> "Question":
        """
        객관식은 보기가 최소 2개 이상이어야 하고,
        객관식이 아닌 문제는 보기를 갖지 않는다.
        """
        if self.question_type == QuestionType.MULTIPLE_CHOICE:
            if len(self.options) < 2:
                raise ValueError("객관식 문제는 보기(options)가 최소 2개 이상 필요합니다.")
        elif self.options:
            self.options = []
        return self

    @property
    def is_theory(self) -> bool:
        return self.question_type == QuestionType.THEORY

    def for_student(self) -> dict:
        """정답을 제외한 응시자용 표현."""
        return self.model_dump(mode="json", exclude={"correct_answer"})
