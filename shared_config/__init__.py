"""
shared_config 모듈
공통 로깅 설정을 중앙 관리합니다.
"""

from .logger import (
    logger,
    setup_console_logging,
    setup_file_logging,
    LogStage,
)

__all__ = [
    "logger",
    "setup_console_logging",
    "setup_file_logging",
    "LogStage",
]
