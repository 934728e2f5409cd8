"""
api/routes.py — FastAPI 엔드포인트
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field, ValidationError, field_validator

import config
from api.sample_questions import load_sample
from school_cbt.errors import ExamNotFound, InvalidStructure, SessionAlreadyCompleted, SessionNotFound
from school_cbt.models.exam_model import Exam, TheoryConfig, TheorySettings
from school_cbt.models.question_model import ExamType, Question
from school_cbt.models.result_model import SubmissionType
from school_cbt.models.session_state import ExamSession
from school_cbt.services.exam_builder import create_exam
from school_cbt.services.exam_service import calculate_subject_scores, get_incorrect_question_ids
from school_cbt.services.session_service import ExamSessionService
from school_cbt.services.theory_structure import generate_structure

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class ExamBody(BaseModel):
    title: str
    subject: str = ""
    class_level: str = ""
    term: str = ""
    duration_minutes: int = config.DEFAULT_DURATION_MINUTES
    passing_score: int = config.DEFAULT_PASSING_SCORE
    question_ids: list[str] = []
    number_of_questions_to_display: Optional[int] = None
    exam_type: ExamType = ExamType.OBJECTIVES
    theory_config: Optional[TheoryConfig] = None
    theory_instructions: str = ""

class GenerateStructureBody(BaseModel):
    settings: TheorySettings = Field(default_factory=TheorySettings)
    question_ids: list[str] = []

class StartSessionBody(BaseModel):
    exam_id: str
    student_name: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)

    @field_validator("student_name", "student_id", mode="before")
    @classmethod
    def strip_identity(cls, v):
        """공백만 있는 이름/번호는 빈 값으로 보고 거부한다."""
        return v.strip() if isinstance(v, str) else v

class SaveProgressBody(BaseModel):
    answers: dict[str, str] = {}
    current_question_index: Optional[int] = None

class SaveAnswerBody(BaseModel):
    question_id: str
    answer: str
    current_question_index: Optional[int] = None

class SubmitBody(BaseModel):
    answers: Optional[dict[str, str]] = None
    submission_type: SubmissionType = SubmissionType.STUDENT


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _engine(request: Request) -> ExamSessionService:
    return request.app.state.engine


def _validation_detail(e: ValidationError) -> list:
    return e.errors(include_url=False, include_context=False, include_input=False)


def _session_to_dict(engine: ExamSessionService, session: ExamSession) -> dict:
    exam = engine.store.get_exam(session.exam_id)
    d = session.model_dump(mode="json")
    d.update({
        "server_time": engine.now(),
        "remaining_seconds": engine.remaining(session, exam) if exam else 0,
        "duration_minutes": exam.duration_minutes if exam else None,
        "total": len(session.session_question_ids),
        "answered_count": len(session.answers),
    })
    return d


# ── 문제 / 시험 ──────────────────────────────────────────────────────────────

@router.get("/api/health")
async def health():
    return {"status": "healthy"}


@router.post("/api/load-sample")
async def api_load_sample(request: Request):
    return {"ok": True, **load_sample(_engine(request).store)}


@router.post("/api/questions")
async def put_questions(request: Request, body: list[dict]):
    engine = _engine(request)
    created = []
    for raw in body:
        data = dict(raw)
        data.setdefault("id", engine.store.new_id())
        try:
            q = Question.model_validate(data)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=_validation_detail(e))
        engine.store.put_question(q)
        created.append(q.id)
    return {"count": len(created), "ids": created, "ok": True}


@router.get("/api/questions")
async def list_questions(request: Request):
    return [q.model_dump(mode="json") for q in _engine(request).store.list_questions()]


@router.post("/api/exams")
async def api_create_exam(request: Request, body: ExamBody):
    engine = _engine(request)
    try:
        exam = Exam(id=engine.store.new_id(), **body.model_dump())
        exam = create_exam(engine.store, exam)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_validation_detail(e))
    except InvalidStructure as e:
        raise HTTPException(status_code=422, detail=str(e))
    return exam.model_dump(mode="json")


@router.get("/api/exams")
async def list_exams(request: Request):
    return [e.model_dump(mode="json") for e in _engine(request).store.list_exams()]


@router.get("/api/exams/{exam_id}")
async def get_exam(request: Request, exam_id: str):
    exam = _engine(request).store.get_exam(exam_id)
    if exam is None:
        raise HTTPException(status_code=404, detail=str(ExamNotFound(exam_id)))
    return exam.model_dump(mode="json")


@router.post("/api/theory/generate")
async def api_generate_structure(body: GenerateStructureBody):
    structure = generate_structure(body.settings, body.question_ids)
    return {"structure": [s.model_dump(mode="json") for s in structure]}


# ── 시험 세션 ────────────────────────────────────────────────────────────────

@router.post("/api/sessions")
async def start_session(request: Request, body: StartSessionBody):
    engine = _engine(request)
    try:
        session = await asyncio.to_thread(
            engine.start_session, body.exam_id, body.student_name, body.student_id
        )
    except ExamNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_validation_detail(e))
    return {"session_id": session.id, **_session_to_dict(engine, session), "ok": True}


@router.get("/api/sessions/{session_id}")
async def get_session(request: Request, session_id: str):
    engine = _engine(request)
    try:
        session = await asyncio.to_thread(engine.get_session, session_id)
    except (SessionNotFound, ExamNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _session_to_dict(engine, session)


@router.get("/api/sessions/{session_id}/questions")
async def get_session_questions(request: Request, session_id: str):
    try:
        questions = await asyncio.to_thread(_engine(request).get_session_questions, session_id)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return [q.for_student() for q in questions]


@router.put("/api/sessions/{session_id}/progress")
async def save_progress(request: Request, session_id: str, body: SaveProgressBody):
    engine = _engine(request)
    try:
        session = await asyncio.to_thread(
            engine.save_progress, session_id, body.answers, body.current_question_index
        )
    except (SessionNotFound, ExamNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SessionAlreadyCompleted:
        # 이미 제출된 시험은 변경하지 않고 현재 상태를 돌려준다
        session = await asyncio.to_thread(engine.get_session, session_id)
        return {"ok": False, **_session_to_dict(engine, session)}
    return {"ok": True, **_session_to_dict(engine, session)}


@router.post("/api/sessions/{session_id}/answer")
async def save_answer(request: Request, session_id: str, body: SaveAnswerBody):
    engine = _engine(request)
    try:
        session = await asyncio.to_thread(
            engine.record_answer,
            session_id, body.question_id, body.answer, body.current_question_index,
        )
    except (SessionNotFound, ExamNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SessionAlreadyCompleted:
        return {"ok": False, "is_completed": True}
    return {"ok": True, "answered_count": len(session.answers)}


@router.post("/api/sessions/{session_id}/submit")
async def submit_session(request: Request, session_id: str, body: Optional[SubmitBody] = None):
    body = body or SubmitBody()
    try:
        result = await asyncio.to_thread(
            _engine(request).submit, session_id, body.answers, body.submission_type
        )
    except (SessionNotFound, ExamNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    return result.model_dump(mode="json")


@router.get("/api/sessions/{session_id}/result")
async def get_session_result(request: Request, session_id: str):
    engine = _engine(request)
    try:
        result = await asyncio.to_thread(engine.get_result, session_id)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail="시험이 아직 제출되지 않았습니다.")

    questions = await asyncio.to_thread(
        engine.store.get_questions_by_ids, list(result.correct_answers)
    )
    d = result.model_dump(mode="json")
    d.update({
        "incorrect_question_ids": get_incorrect_question_ids(result),
        "subject_scores": calculate_subject_scores(result, questions),
    })
    return d


@router.get("/api/results")
async def list_results(request: Request, exam_id: Optional[str] = None):
    return [r.model_dump(mode="json") for r in _engine(request).store.list_results(exam_id)]
