"""
파일 분류 및 xxHash32 변경 감지 테스트
"""
import os
import sys

import pytest
import xxhash

# 상위 디렉토리를 path에 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cpg_linker import SupportedFile, classify, file_hash
from cpg_linker.files import HASH_SEED, CHUNK_SIZE, bytes_hash


class TestClassify:
    """확장자 분류"""

    @pytest.mark.parametrize("path,expected", [
        ("Main.java", SupportedFile.JAVA),
        ("src/app/Util.JAVA", SupportedFile.JAVA),
        ("script.py", SupportedFile.PYTHON),
        ("index.js", SupportedFile.JAVASCRIPT),
        ("build/Main.class", SupportedFile.JVM_CLASS),
        ("README.md", SupportedFile.UNSUPPORTED),
        ("Makefile", SupportedFile.UNSUPPORTED),
    ])
    def test_classify(self, path, expected):
        assert classify(path) == expected


class TestFileHash:
    """xxHash32 해시"""

    def test_matches_xxh32(self, tmp_path):
        data = b"class Main { void f() {} }"
        path = tmp_path / "Main.java"
        path.write_bytes(data)

        assert file_hash(path) == xxhash.xxh32(data, seed=HASH_SEED).intdigest()
        assert file_hash(path) == bytes_hash(data)

    def test_chunked_read(self, tmp_path):
        """청크 경계를 넘는 파일도 전체 내용 해시와 같음"""
        data = bytes(range(256)) * ((CHUNK_SIZE * 3) // 256 + 7)
        path = tmp_path / "big.class"
        path.write_bytes(data)

        assert file_hash(path) == xxhash.xxh32(data, seed=HASH_SEED).intdigest()

    def test_content_sensitive(self, tmp_path):
        first = tmp_path / "a.java"
        second = tmp_path / "b.java"
        first.write_bytes(b"int x = 1;")
        second.write_bytes(b"int x = 2;")

        assert file_hash(first) != file_hash(second)

    def test_seed_changes_hash(self, tmp_path):
        path = tmp_path / "a.java"
        path.write_bytes(b"int x = 1;")
        assert file_hash(path, seed=0) != file_hash(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.java"
        path.write_bytes(b"")
        assert file_hash(path) == xxhash.xxh32(b"", seed=HASH_SEED).intdigest()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            file_hash(tmp_path / "missing.java")
