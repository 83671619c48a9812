"""
CPG 투영 예외 정의

흐름 엣지 투영 및 호출 그래프 연결 중 발생하는 예외 계층입니다.

- MissingAssociation: 비치명적 (해당 홉만 건너뜀)
- ProjectionError 계열: 해당 메서드에 대해 치명적
"""

from typing import Optional


class CPGError(Exception):
    """CPG 모듈 기본 예외"""


class MissingAssociation(CPGError):
    """분석 단위에 투영된 정점이 없음 (예: 생략된 identity 문)"""

    def __init__(self, key: str):
        super().__init__(f"연관 정점이 없습니다: {key}")
        self.key = key


class ProjectionError(CPGError):
    """메서드 단위 투영을 중단시키는 치명적 오류"""

    def __init__(self, message: str, method_signature: Optional[str] = None):
        super().__init__(message)
        self.method_signature = method_signature

    def __str__(self) -> str:
        message = super().__str__()
        if self.method_signature:
            return f"[{self.method_signature}] {message}"
        return message


class MalformedBranchOrSwitch(ProjectionError):
    """선언된 분기 대상 수와 합성된 JumpTarget 집합이 일치하지 않음"""


class GotoCycle(ProjectionError):
    """goto 체인이 goto가 아닌 문장에 도달하지 못함"""


class StorageFailure(ProjectionError):
    """저장소가 엣지/정점 삽입을 거부함"""


class ConfigError(CPGError):
    """설정 파일 오류"""
