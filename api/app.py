"""
api/app.py — FastAPI 앱 인스턴스 + 요청 로깅 미들웨어 + 시험 세션 엔진 구성
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from api.routes import router
from api.sample_questions import load_sample
from school_cbt.services.deadline_monitor import MonitorRegistry
from school_cbt.services.document_store import DocumentStore, InMemoryDocumentStore
from school_cbt.services.session_service import ExamSessionService

logger = logging.getLogger(__name__)

_LOG_LINE_LIMIT = 80


def create_app(
    store: Optional[DocumentStore] = None,
    engine: Optional[ExamSessionService] = None,
) -> FastAPI:
    if engine is None:
        engine = ExamSessionService(
            store or InMemoryDocumentStore(),
            monitors=MonitorRegistry(interval=config.DEADLINE_CHECK_INTERVAL),
        )

    # 프로세스 종료 시 마감 감시 스레드 정리
    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        engine.shutdown()

    app = FastAPI(title="School CBT", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.engine = engine

    if config.LOAD_SAMPLE_DATA:
        load_sample(engine.store)

    # CORS (학교 단말 브라우저 등 다양한 출처 허용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 요청 로깅 미들웨어: /api 요청의 메서드, 경로, 상태 코드, 처리 시간
    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        start = time.time()
        response: Response = await call_next(request)
        path = request.url.path
        if path.startswith("/api"):
            duration_ms = int((time.time() - start) * 1000)
            line = f"{request.method} {path} {response.status_code} in {duration_ms}ms"
            if len(line) > _LOG_LINE_LIMIT:
                line = line[: _LOG_LINE_LIMIT - 1] + "…"
            logger.info(line)
        return response

    # 처리되지 않은 예외는 항상 JSON 으로 응답
    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"처리되지 않은 오류: {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": str(exc) or "Internal Server Error"})

    app.include_router(router)

    return app
