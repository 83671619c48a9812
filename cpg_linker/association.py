"""
연관 테이블 (Association Table)

분석 단위(문장/메서드) → 하향된 정점 목록 매핑입니다.
상류 하향 단계에서 한 번 채워진 뒤 봉인(seal)되며, 투영 단계에서는 읽기 전용입니다.
분기/스위치 문장의 JumpTarget 계약 검사도 이 모듈에서 담당합니다.
"""

import threading
from typing import List, Dict, Optional, Set, Tuple, Union

from .errors import MissingAssociation, MalformedBranchOrSwitch
from .models import (
    Vertex, VertexLabel, MethodVertex, ControlStructureVertex, JumpTargetVertex,
    TRUE_TARGET, FALSE_TARGET, DEFAULT_TARGET
)
from .units import AnalysisUnit, UnitKind, SWITCH_KINDS


def _key(unit) -> str:
    return unit if isinstance(unit, str) else unit.key


class AssociationTable:
    """분석 단위 → 정점 목록 테이블

    Usage:
        table = AssociationTable()
        table.put(unit, [vertex], owner=method.signature)
        table.seal()

        vertex = table.first(unit)
    """

    def __init__(self):
        self._entries: Dict[str, List[Vertex]] = {}
        # 메서드 시그니처 → 소유한 key 목록 (재분석 시 제거용)
        self._owners: Dict[str, Set[str]] = {}
        self._sealed = False
        self._lock = threading.Lock()

    @property
    def sealed(self) -> bool:
        return self._sealed

    def open(self):
        """채우기(population) 단계 시작"""
        self._sealed = False

    def seal(self):
        """채우기 단계 종료. 이후 동시 읽기만 허용됩니다."""
        self._sealed = True

    def put(self, unit: Union[AnalysisUnit, str], vertices: List[Vertex], owner: str):
        """단위의 정점 목록 등록 (단위당 한 번)"""
        key = _key(unit)
        with self._lock:
            if self._sealed:
                raise RuntimeError(f"봉인된 연관 테이블에 쓸 수 없습니다: {key}")
            if key in self._entries:
                raise ValueError(f"이미 등록된 분석 단위입니다: {key}")
            self._entries[key] = list(vertices)
            self._owners.setdefault(owner, set()).add(key)

    def evict(self, owner: str) -> Set[str]:
        """메서드가 소유한 모든 항목 제거

        Returns:
            제거된 key 집합
        """
        with self._lock:
            if self._sealed:
                raise RuntimeError(f"봉인된 연관 테이블에서 제거할 수 없습니다: {owner}")
            keys = self._owners.pop(owner, set())
            for key in keys:
                self._entries.pop(key, None)
            return keys

    def get(self, unit: Union[AnalysisUnit, str]) -> Optional[List[Vertex]]:
        if not self._sealed:
            raise RuntimeError("채우기 단계가 끝나지 않은 연관 테이블은 읽을 수 없습니다")
        return self._entries.get(_key(unit))

    def require(self, unit: Union[AnalysisUnit, str]) -> List[Vertex]:
        vertices = self.get(unit)
        if not vertices:
            raise MissingAssociation(_key(unit))
        return vertices

    def first(self, unit: Union[AnalysisUnit, str], label: Optional[VertexLabel] = None) -> Vertex:
        """첫 번째 정점 (label 지정 시 해당 타입의 첫 정점)"""
        vertices = self.require(unit)
        if label is None:
            return vertices[0]
        for vertex in vertices:
            if vertex.label == label:
                return vertex
        raise MissingAssociation(f"{_key(unit)} ({label.value})")

    def method_vertex(self, signature: str) -> Optional[MethodVertex]:
        vertices = self.get(signature) or []
        return next((v for v in vertices if isinstance(v, MethodVertex)), None)

    def owners(self) -> List[str]:
        return list(self._owners)

    def __contains__(self, unit) -> bool:
        return _key(unit) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# JumpTarget 계약 검사
# =============================================================================

def _control_structure(unit: AnalysisUnit, vertices: List[Vertex]) -> ControlStructureVertex:
    cs = next((v for v in vertices if isinstance(v, ControlStructureVertex)), None)
    if cs is None:
        raise MalformedBranchOrSwitch(
            f"ControlStructure 정점이 없습니다: {unit.id}", unit.method_signature
        )
    return cs


def check_branch_targets(unit: AnalysisUnit, vertices: Optional[List[Vertex]]
                         ) -> Tuple[ControlStructureVertex, Dict[str, JumpTargetVertex]]:
    """if 문의 정점 집합 검사: JumpTarget은 정확히 TRUE, FALSE 두 개

    Returns:
        (ControlStructure 정점, {이름: JumpTarget})
    """
    if unit.kind != UnitKind.IF:
        raise ValueError(f"if 문이 아닙니다: {unit.kind.value}")
    vertices = vertices or []
    cs = _control_structure(unit, vertices)
    targets = [v for v in vertices if isinstance(v, JumpTargetVertex)]
    names = sorted(t.name for t in targets)
    if names != sorted([TRUE_TARGET, FALSE_TARGET]):
        raise MalformedBranchOrSwitch(
            f"분기 {unit.id}의 JumpTarget은 TRUE/FALSE 두 개여야 합니다 (실제: {names})",
            unit.method_signature
        )
    return cs, {t.name: t for t in targets}


def check_switch_targets(unit: AnalysisUnit, vertices: Optional[List[Vertex]]
                         ) -> Tuple[ControlStructureVertex, JumpTargetVertex, Dict[int, JumpTargetVertex]]:
    """switch 문의 정점 집합 검사: case 값마다 하나 + DEFAULT 하나

    Returns:
        (ControlStructure 정점, DEFAULT JumpTarget, {case 값: JumpTarget})
    """
    if unit.kind not in SWITCH_KINDS:
        raise ValueError(f"switch 문이 아닙니다: {unit.kind.value}")
    vertices = vertices or []
    cs = _control_structure(unit, vertices)
    targets = [v for v in vertices if isinstance(v, JumpTargetVertex)]
    defaults = [t for t in targets if t.name == DEFAULT_TARGET]
    cases = [t for t in targets if t.name != DEFAULT_TARGET]
    by_value = {t.argument_index: t for t in cases}

    expected = set(unit.cases)
    if len(defaults) != 1 or len(cases) != len(expected) or set(by_value) != expected:
        raise MalformedBranchOrSwitch(
            f"switch {unit.id}: case {len(expected)}개 + DEFAULT 1개가 필요하지만 "
            f"JumpTarget {len(targets)}개 (DEFAULT {len(defaults)}개)가 있습니다",
            unit.method_signature
        )
    return cs, defaults[0], by_value
