"""
분석 단위 모델

프런트엔드가 하향(lowering)한 문장 단위 IR을 표현합니다.
- AnalysisUnit: 문장 핸들 (kind + 선언된 분기 대상)
- MethodUnit / MethodBody: 메서드와 문장 목록, 후속(successor) 관계
- CallGraph: 해석된 호출 그래프 오라클
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Iterable
from enum import Enum


class UnitKind(Enum):
    """문장 종류"""
    IDENTITY = "identity"             # this/파라미터 바인딩 (정점 없음)
    ASSIGN = "assign"
    INVOKE = "invoke"                 # 호출을 포함하는 문장
    IF = "if"
    TABLE_SWITCH = "table_switch"
    LOOKUP_SWITCH = "lookup_switch"
    GOTO = "goto"
    RETURN = "return"
    RETURN_VOID = "return_void"


SWITCH_KINDS = frozenset({UnitKind.TABLE_SWITCH, UnitKind.LOOKUP_SWITCH})
RETURN_KINDS = frozenset({UnitKind.RETURN, UnitKind.RETURN_VOID})


@dataclass(frozen=True)
class MethodRef:
    """메서드 식별자 (정규화된 시그니처 기준)"""
    signature: str
    name: str = ""
    declaring_type: Optional[str] = None
    return_type: str = "void"

    @property
    def key(self) -> str:
        return self.signature


@dataclass(eq=False)
class AnalysisUnit:
    """문장 단위 분석 핸들"""
    id: str
    kind: UnitKind
    code: str = ""
    operator: Optional[str] = None
    method_signature: str = ""          # 소속 메서드
    line: Optional[int] = None
    # goto
    target: Optional[str] = None
    # if
    true_target: Optional[str] = None
    false_target: Optional[str] = None
    # table_switch / lookup_switch: case 값 → 대상 문장 id
    cases: Dict[int, str] = field(default_factory=dict)
    default_target: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.method_signature}#{self.id}"

    def declared_targets(self) -> List[str]:
        """선언된 분기 대상 목록 (중복 제거, 선언 순서 유지)"""
        if self.kind == UnitKind.GOTO:
            targets = [self.target]
        elif self.kind == UnitKind.IF:
            targets = [self.true_target, self.false_target]
        elif self.kind in SWITCH_KINDS:
            targets = list(self.cases.values()) + [self.default_target]
        else:
            targets = []
        return list(dict.fromkeys(t for t in targets if t is not None))


@dataclass
class MethodUnit:
    """메서드 단위"""
    signature: str
    name: str
    declaring_type: Optional[str] = None
    is_static: bool = False
    parameters: List[str] = field(default_factory=list)
    locals: Dict[str, Optional[str]] = field(default_factory=dict)  # 이름 → 타입
    return_type: str = "void"

    @property
    def key(self) -> str:
        return self.signature

    @property
    def ref(self) -> MethodRef:
        return MethodRef(
            signature=self.signature,
            name=self.name,
            declaring_type=self.declaring_type,
            return_type=self.return_type
        )


class MethodBody:
    """메서드 본문: 문장 목록과 후속 관계

    후속 관계가 명시되지 않은 문장은 다음 규칙으로 유도합니다.
    - goto: 대상
    - if/switch: 선언된 대상들
    - return: 없음
    - 그 외: 다음 문장 (fall-through)
    """

    def __init__(self, method: MethodUnit, units: List[AnalysisUnit],
                 successors: Optional[Dict[str, List[str]]] = None):
        self.method = method
        self.units = list(units)
        self._by_id: Dict[str, AnalysisUnit] = {}

        for unit in self.units:
            if unit.id in self._by_id:
                raise ValueError(f"중복된 문장 id입니다: {method.signature}#{unit.id}")
            unit.method_signature = method.signature
            self._by_id[unit.id] = unit

        explicit = successors or {}
        self._successors: Dict[str, List[str]] = {}
        for index, unit in enumerate(self.units):
            if unit.id in explicit:
                succ_ids = list(explicit[unit.id])
            else:
                succ_ids = self._derive_successors(index, unit)
            for succ_id in succ_ids + unit.declared_targets():
                if succ_id not in self._by_id:
                    raise ValueError(
                        f"존재하지 않는 대상 문장입니다: {method.signature}#{unit.id} -> {succ_id}"
                    )
            self._successors[unit.id] = succ_ids

    def _derive_successors(self, index: int, unit: AnalysisUnit) -> List[str]:
        if unit.kind in RETURN_KINDS:
            return []
        if unit.kind == UnitKind.GOTO or unit.kind == UnitKind.IF or unit.kind in SWITCH_KINDS:
            return unit.declared_targets()
        if index + 1 < len(self.units):
            return [self.units[index + 1].id]
        return []

    @property
    def heads(self) -> List[AnalysisUnit]:
        """CFG 진입 문장"""
        return self.units[:1]

    def unit(self, unit_id: str) -> AnalysisUnit:
        return self._by_id[unit_id]

    def successors_of(self, unit: AnalysisUnit) -> List[AnalysisUnit]:
        return [self._by_id[s] for s in self._successors.get(unit.id, [])]

    def __iter__(self):
        return iter(self.units)

    def __len__(self) -> int:
        return len(self.units)


@dataclass(frozen=True)
class ResolvedCallEdge:
    """해석된 호출 엣지 (호출 문장 → 대상 메서드)"""
    source_key: str
    target: MethodRef


class CallGraph:
    """해석된 호출 그래프 오라클"""

    def __init__(self):
        # 호출 문장 key → 대상 목록
        self._edges: Dict[str, List[ResolvedCallEdge]] = {}

    def add_edge(self, unit: AnalysisUnit, target: MethodRef):
        """호출 엣지 추가"""
        self._edges.setdefault(unit.key, []).append(
            ResolvedCallEdge(source_key=unit.key, target=target)
        )

    def edges_out_of(self, unit: AnalysisUnit) -> List[ResolvedCallEdge]:
        return list(self._edges.get(unit.key, []))

    def merge(self, other: 'CallGraph'):
        """다른 호출 그래프와 병합"""
        for key, edges in other._edges.items():
            self._edges.setdefault(key, []).extend(edges)

    def drop_units(self, keys: Iterable[str]):
        """재분석으로 사라진 호출 문장 제거"""
        for key in keys:
            self._edges.pop(key, None)
