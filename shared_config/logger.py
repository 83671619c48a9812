"""
CPG 추출기 로깅 설정 (loguru)

- 콘솔: stderr, 레벨은 CLI/설정에서 조정
- 파일: 실행 단위 로그 (로테이션/보관, 병렬 투영 스레드에서도 안전하게 enqueue)
- LogStage: 추출 단계별 시작/완료/실패와 소요 시간
"""
import sys
import time
from pathlib import Path

from loguru import logger

logger.remove()

# file.path:line 형식은 에디터에서 클릭해 이동할 수 있음
CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <7}</level> | "
    "<cyan>{file.path}</cyan>:<cyan>{line}</cyan> in <cyan>{function}()</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <7} | {thread.name} | {file.path}:{line} | {message}"

LOG_FILE_NAME = "{time:YYYY-MM-DD}_cpg.log"
LOG_ROTATION = "1 day"
LOG_RETENTION = "7 days"

_console_handler_id = logger.add(sys.stderr, format=CONSOLE_FORMAT, level="INFO", colorize=True)


def setup_console_logging(level: str = "INFO") -> int:
    """콘솔 핸들러를 주어진 레벨로 교체하고 새 핸들러 ID를 반환"""
    global _console_handler_id
    logger.remove(_console_handler_id)
    _console_handler_id = logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level.upper(), colorize=True)
    return _console_handler_id


def setup_file_logging(log_dir: str, level: str = "DEBUG") -> int:
    """
    log_dir 아래에 일별 로그 파일 핸들러 추가

    Returns:
        추가된 핸들러 ID
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    handler_id = logger.add(
        str(log_path / LOG_FILE_NAME),
        format=FILE_FORMAT,
        level=level.upper(),
        rotation=LOG_ROTATION,
        retention=LOG_RETENTION,
        encoding="utf-8",
        enqueue=True,
    )
    logger.info(f"파일 로깅 시작: {log_path}")
    return handler_id


class LogStage:
    """
    추출 단계 추적

    사용 예:
        with LogStage("정점 하향", files=2):
            ...
    """

    def __init__(self, stage_name: str, **context):
        self.stage_name = stage_name
        self.context = context
        self.elapsed = 0.0
        self._started = 0.0

    def __enter__(self):
        detail = ", ".join(f"{k}={v}" for k, v in self.context.items())
        logger.info(f"[시작] {self.stage_name}" + (f" ({detail})" if detail else ""))
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.perf_counter() - self._started
        if exc_type:
            logger.error(f"[실패] {self.stage_name} ({self.elapsed:.3f}s): {exc_val}")
        else:
            logger.success(f"[완료] {self.stage_name} ({self.elapsed:.3f}s)")
        return False


__all__ = [
    "logger",
    "setup_console_logging",
    "setup_file_logging",
    "LogStage",
]
