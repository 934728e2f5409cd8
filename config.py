import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
LOG_FILE = os.getenv("LOG_FILE", os.path.join(BASE_DIR, "launch.log"))

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "0.0.0.0")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))

# 영속화 대기 설정 (초) — 저장소 응답이 늦어도 이 시간 이후에는 낙관적으로 진행
SESSION_WRITE_TIMEOUT = float(os.getenv("SESSION_WRITE_TIMEOUT", "2.0"))
RESULT_WRITE_TIMEOUT = float(os.getenv("RESULT_WRITE_TIMEOUT", "3.0"))
WRITE_WORKERS = int(os.getenv("WRITE_WORKERS", "4"))

# 타이머 설정
DEADLINE_CHECK_INTERVAL = float(os.getenv("DEADLINE_CHECK_INTERVAL", "1.0"))

# 시험 기본값
DEFAULT_DURATION_MINUTES = int(os.getenv("DEFAULT_DURATION_MINUTES", "60"))
DEFAULT_PASSING_SCORE = int(os.getenv("DEFAULT_PASSING_SCORE", "50"))

# 시작 시 샘플 문제은행 적재 여부
LOAD_SAMPLE_DATA = os.getenv("LOAD_SAMPLE_DATA", "false").lower() == "true"
