"""
로깅 설정 테스트 - LogStage, 파일 로깅
"""
import os
import sys

import pytest

# 상위 디렉토리를 path에 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shared_config.logger import logger, LogStage, setup_console_logging, setup_file_logging


@pytest.fixture
def messages():
    collected = []
    handler_id = logger.add(lambda m: collected.append(m.record["message"]), format="{message}", level="DEBUG")
    yield collected
    logger.remove(handler_id)


class TestLogStage:
    """단계 추적"""

    def test_success(self, messages):
        with LogStage("정점 하향", files=2) as stage:
            pass

        assert messages[0] == "[시작] 정점 하향 (files=2)"
        assert messages[-1].startswith("[완료] 정점 하향 (")
        assert stage.elapsed >= 0.0

    def test_failure_propagates(self, messages):
        with pytest.raises(ValueError):
            with LogStage("CPG 투영"):
                raise ValueError("boom")

        assert messages[0] == "[시작] CPG 투영"
        assert messages[-1].startswith("[실패] CPG 투영")
        assert messages[-1].endswith("boom")


class TestHandlers:
    """콘솔/파일 핸들러"""

    def test_file_logging(self, tmp_path):
        handler_id = setup_file_logging(str(tmp_path / "logs"), level="debug")
        logger.debug("파일 로그 확인")
        logger.remove(handler_id)

        files = list((tmp_path / "logs").glob("*_cpg.log"))
        assert len(files) == 1
        assert "파일 로그 확인" in files[0].read_text(encoding="utf-8")

    def test_console_level_replaced(self):
        first = setup_console_logging("DEBUG")
        second = setup_console_logging("info")
        assert first != second
