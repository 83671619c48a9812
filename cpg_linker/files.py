"""
파일 분류 및 해시 모듈

확장자로 언어를 분류하고, 변경 감지용 xxHash32 값을 계산합니다.
해시는 캐시 키 용도이며 보안 용도가 아닙니다.
"""

from enum import Enum
from pathlib import Path
from typing import Union

import xxhash


# 고정 시드 (부호 있는 32비트 -0x68b84d74)
HASH_SEED = 0x9747B28C
CHUNK_SIZE = 8192


class SupportedFile(Enum):
    """지원 파일 종류"""
    JAVA = "java"
    PYTHON = "python"
    JAVASCRIPT = "javascript"
    JVM_CLASS = "jvm_class"
    UNSUPPORTED = "unsupported"


EXTENSION_MAP = {
    ".java": SupportedFile.JAVA,
    ".py": SupportedFile.PYTHON,
    ".js": SupportedFile.JAVASCRIPT,
    ".class": SupportedFile.JVM_CLASS,
}


def classify(path: Union[str, Path]) -> SupportedFile:
    """경로의 확장자로 언어 분류"""
    return EXTENSION_MAP.get(Path(path).suffix.lower(), SupportedFile.UNSUPPORTED)


def file_hash(path: Union[str, Path], seed: int = HASH_SEED) -> int:
    """파일 전체 내용의 xxHash32 값

    Raises:
        FileNotFoundError: 파일이 없는 경우
    """
    hasher = xxhash.xxh32(seed=seed)
    with open(path, 'rb') as f:
        while True:
            chunk = f.read(CHUNK_SIZE)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.intdigest()


def bytes_hash(data: bytes, seed: int = HASH_SEED) -> int:
    """메모리 내용의 xxHash32 값"""
    return xxhash.xxh32(data, seed=seed).intdigest()
