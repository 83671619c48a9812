"""
CFG 투영 모듈

메서드의 문장 목록과 후속 관계를 순회하며 CFG 엣지를 생성합니다.
- goto: 연쇄된 goto를 따라가 첫 번째 goto가 아닌 문장으로 해석
- if: ControlStructure → TRUE/FALSE JumpTarget → 후속 문장
- switch: ControlStructure → DEFAULT/case JumpTarget → 대상 문장
- return: 문장 → MethodReturn
- 그 외: 문장 → 각 후속 문장
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from shared_config.logger import logger

from .association import AssociationTable, check_branch_targets, check_switch_targets
from .drivers import GraphDriver
from .errors import MissingAssociation, MalformedBranchOrSwitch, GotoCycle
from .models import (
    Vertex, EdgeLabel, VertexLabel, TRUE_TARGET, FALSE_TARGET
)
from .units import AnalysisUnit, MethodBody, UnitKind


@dataclass
class _Walk:
    """메서드 하나의 투영 상태"""
    body: MethodBody
    added: int = 0

    @property
    def signature(self) -> str:
        return self.body.method.signature


class CFGBuilder:
    """CFG 엣지 투영기

    Args:
        driver: 엣지를 기록할 저장소
        table: 봉인된 연관 테이블
    """

    def __init__(self, driver: GraphDriver, table: AssociationTable):
        self.driver = driver
        self.table = table
        self._handlers: Dict[UnitKind, Callable[[_Walk, AnalysisUnit], None]] = {
            UnitKind.GOTO: self._project_goto,
            UnitKind.IF: self._project_if,
            UnitKind.TABLE_SWITCH: self._project_switch,
            UnitKind.LOOKUP_SWITCH: self._project_switch,
            UnitKind.RETURN: self._project_return,
            UnitKind.RETURN_VOID: self._project_return,
            UnitKind.IDENTITY: self._project_plain,
            UnitKind.ASSIGN: self._project_plain,
            UnitKind.INVOKE: self._project_plain,
        }
        missing = set(UnitKind) - set(self._handlers)
        if missing:
            raise ValueError(f"처리기가 없는 문장 종류: {sorted(k.value for k in missing)}")

    def build(self, body: MethodBody) -> int:
        """메서드의 CFG 엣지 생성

        Returns:
            새로 추가된 CFG 엣지 수
        """
        walk = _Walk(body=body)
        logger.debug(f"CFG 구성: {walk.signature}")

        # 진입 블록 → 첫 번째 CFG 정점
        block = self._vertex_of(body.method.key, VertexLabel.BLOCK)
        for head in body.heads:
            successors = body.successors_of(head)
            if not successors or block is None:
                continue
            first = self.resolve_entry(body, successors[0])
            if first is not None:
                self._connect(walk, block, first)

        for unit in body.units:
            self._project_unit(walk, unit)

        logger.debug(f"CFG 완료: {walk.signature} (엣지 {walk.added}개)")
        return walk.added

    def resolve_goto(self, body: MethodBody, unit: AnalysisUnit) -> AnalysisUnit:
        """goto 체인을 따라 첫 번째 goto가 아닌 문장을 반환

        Raises:
            GotoCycle: goto 체인이 순환하는 경우
        """
        path: List[str] = []
        visited = set()
        current = unit
        while current.kind == UnitKind.GOTO:
            if current.id in visited:
                path.append(current.id)
                raise GotoCycle(f"goto 순환: {' -> '.join(path)}", body.method.signature)
            visited.add(current.id)
            path.append(current.id)
            current = body.unit(current.target)
        return current

    def resolve_entry(self, body: MethodBody, unit: AnalysisUnit) -> Optional[AnalysisUnit]:
        """this/파라미터 바인딩과 goto를 건너뛴 첫 번째 실제 문장

        Returns:
            첫 문장 (바인딩 뒤에 문장이 없으면 None)
        """
        visited = set()
        current = self.resolve_goto(body, unit)
        while current.kind == UnitKind.IDENTITY:
            if current.id in visited:
                raise GotoCycle(f"진입 바인딩 순환: {current.id}", body.method.signature)
            visited.add(current.id)
            successors = body.successors_of(current)
            if not successors:
                return None
            current = self.resolve_goto(body, successors[0])
        return current

    # ===== 문장 종류별 투영 =====

    def _project_unit(self, walk: _Walk, unit: AnalysisUnit):
        self._handlers[unit.kind](walk, unit)

    def _project_goto(self, walk: _Walk, unit: AnalysisUnit):
        self._project_unit(walk, self.resolve_goto(walk.body, unit))

    def _project_if(self, walk: _Walk, unit: AnalysisUnit):
        body = walk.body
        if unit.true_target is None or unit.false_target is None:
            raise MalformedBranchOrSwitch(f"분기 {unit.id}에 TRUE/FALSE 대상이 모두 선언되지 않았습니다",
                                          walk.signature)
        control, jump_targets = check_branch_targets(unit, self.table.get(unit))
        true_unit = self.resolve_goto(body, body.unit(unit.true_target))
        false_unit = self.resolve_goto(body, body.unit(unit.false_target))

        for successor in body.successors_of(unit):
            resolved = self.resolve_goto(body, successor)
            matched = []
            if successor.id == unit.true_target or resolved is true_unit:
                matched.append(TRUE_TARGET)
            if successor.id == unit.false_target or resolved is false_unit:
                matched.append(FALSE_TARGET)
            if not matched:
                raise MalformedBranchOrSwitch(
                    f"분기 {unit.id}의 후속 문장 {successor.id}가 선언된 대상이 아닙니다",
                    walk.signature
                )
            for name in matched:
                self._add(walk, control, jump_targets[name])
                self._connect(walk, jump_targets[name], resolved)

    def _project_switch(self, walk: _Walk, unit: AnalysisUnit):
        body = walk.body
        if unit.default_target is None:
            raise MalformedBranchOrSwitch(f"switch {unit.id}에 default 대상이 없습니다", walk.signature)
        control, default_target, case_targets = check_switch_targets(unit, self.table.get(unit))

        self._add(walk, control, default_target)
        self._connect(walk, default_target, self.resolve_goto(body, body.unit(unit.default_target)))

        for value, target_id in unit.cases.items():
            if target_id == unit.default_target:
                continue
            jump_target = case_targets[value]
            self._add(walk, control, jump_target)
            self._connect(walk, jump_target, self.resolve_goto(body, body.unit(target_id)))

    def _project_return(self, walk: _Walk, unit: AnalysisUnit):
        source = self._vertex_of(unit)
        method_return = self._vertex_of(walk.body.method.key, VertexLabel.METHOD_RETURN)
        if source is None or method_return is None:
            return
        self._add(walk, source, method_return)

    def _project_plain(self, walk: _Walk, unit: AnalysisUnit):
        source = self._vertex_of(unit)
        if source is None:
            return
        for successor in walk.body.successors_of(unit):
            self._connect(walk, source, self.resolve_goto(walk.body, successor))

    # ===== 헬퍼 =====

    def _vertex_of(self, unit, label: Optional[VertexLabel] = None) -> Optional[Vertex]:
        try:
            return self.table.first(unit, label)
        except MissingAssociation as e:
            logger.trace(f"건너뜀: {e}")
            return None

    def _connect(self, walk: _Walk, source: Vertex, target_unit: AnalysisUnit):
        target = self._vertex_of(target_unit)
        if target is not None:
            self._add(walk, source, target)

    def _add(self, walk: _Walk, source: Vertex, target: Vertex):
        if self.driver.add_edge(source, target, EdgeLabel.CFG):
            walk.added += 1
