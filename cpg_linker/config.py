"""
추출기 설정 모듈

ExtractorConfig 클래스를 통해 투영 동작을 설정합니다.
"""

import json
import os
from dataclasses import dataclass, field, fields
from typing import Tuple, Optional

import yaml

from .errors import ConfigError
from .files import HASH_SEED
from .frontend import IR_EXTENSIONS


@dataclass
class ExtractorConfig:
    """추출기 설정"""

    # 메서드 병렬 투영 작업자 수 (1이면 순차 처리)
    max_workers: int = 1

    # True면 첫 치명적 오류에서 전체 배치를 중단, False면 메서드 단위로 격리 후 기록
    fail_fast: bool = False

    # 로그 설정
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    # IR 파일 확장자
    ir_extensions: Tuple[str, ...] = field(default_factory=lambda: IR_EXTENSIONS)

    # 변경 감지 해시 시드
    hash_seed: int = HASH_SEED

    def __post_init__(self):
        if self.max_workers < 1:
            raise ConfigError(f"max_workers는 1 이상이어야 합니다: {self.max_workers}")
        self.ir_extensions = tuple(ext.lower() for ext in self.ir_extensions)

    @classmethod
    def from_yaml(cls, config_path: str) -> 'ExtractorConfig':
        """
        YAML/JSON 설정 파일에서 로드

        Args:
            config_path: 설정 파일 경로
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"파일을 찾을 수 없습니다: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            if config_path.endswith('.json'):
                config = json.load(f)
            else:
                config = yaml.safe_load(f)

        config = config or {}
        if not isinstance(config, dict):
            raise ConfigError(f"잘못된 설정 형식: 딕셔너리가 필요합니다 ({config_path})")

        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise ConfigError(f"알 수 없는 설정 키: {sorted(unknown)} ({config_path})")

        if 'ir_extensions' in config:
            config['ir_extensions'] = tuple(config['ir_extensions'])
        return cls(**config)

    @classmethod
    def from_env(cls) -> 'ExtractorConfig':
        """
        환경변수에서 설정 로드

        환경변수:
            CPG_MAX_WORKERS: 병렬 작업자 수
            CPG_FAIL_FAST: 첫 오류에서 중단 (true/false)
            CPG_LOG_LEVEL: 로그 레벨
            CPG_LOG_DIR: 로그 파일 디렉토리
        """
        return cls(
            max_workers=int(os.getenv('CPG_MAX_WORKERS', '1')),
            fail_fast=os.getenv('CPG_FAIL_FAST', 'false').lower() == 'true',
            log_level=os.getenv('CPG_LOG_LEVEL', 'INFO').upper(),
            log_dir=os.getenv('CPG_LOG_DIR') or None
        )
