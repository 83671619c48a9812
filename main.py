"""
CPG 추출기의 메인 진입점입니다.
커맨드 라인 인자를 처리하고 투영 작업을 시작합니다.
"""
import sys

from cpg_linker.cli import main

if __name__ == "__main__":
    sys.exit(main())
