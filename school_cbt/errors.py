"""
errors.py — 시험 세션 엔진 예외 계층

ExamNotFound / SessionNotFound 는 호출자에게 그대로 전달되고,
SessionAlreadyCompleted / PersistenceTimeout 은 엔진 또는 라우터에서 복구된다.
"""


class CbtError(Exception):
    """엔진 예외의 공통 부모."""


class ExamNotFound(CbtError):
    def __init__(self, exam_id: str):
        super().__init__(f"시험을 찾을 수 없습니다: {exam_id}")
        self.exam_id = exam_id


class SessionNotFound(CbtError):
    def __init__(self, session_id: str):
        super().__init__(f"시험 세션을 찾을 수 없습니다: {session_id}")
        self.session_id = session_id


class SessionAlreadyCompleted(CbtError):
    def __init__(self, session_id: str):
        super().__init__(f"이미 제출된 시험입니다: {session_id}")
        self.session_id = session_id


class PersistenceTimeout(CbtError):
    def __init__(self, operation: str, timeout: float):
        super().__init__(f"{operation}: 저장소 응답이 {timeout}초 내에 확인되지 않았습니다.")
        self.operation = operation
        self.timeout = timeout


class InvalidStructure(CbtError):
    """서술형 문항 구조가 규칙을 위반했을 때."""
