"""
호출 그래프 연결 모듈

해석된 호출 그래프 오라클로부터 메서드 간 REF 엣지를 생성합니다.
분석 대상 밖의 호출 대상은 시그니처당 하나의 팬텀 Method 정점으로 연결합니다.
"""

import threading
from typing import Dict, Optional

from shared_config.logger import logger

from .association import AssociationTable
from .drivers import GraphDriver
from .models import MethodVertex, EdgeLabel
from .reconciliation import ReconciliationManager
from .units import AnalysisUnit, CallGraph, MethodBody, MethodRef, UnitKind


class PhantomRegistry:
    """외부 메서드 팬텀 정점 등록소

    비교 후 삽입(compare-and-insert)으로 같은 시그니처에 팬텀이 둘 생기지 않도록 합니다.
    """

    def __init__(self, driver: GraphDriver):
        self.driver = driver
        self._phantoms: Dict[str, MethodVertex] = {}
        self._lock = threading.Lock()

    def get_or_create(self, ref: MethodRef) -> MethodVertex:
        with self._lock:
            phantom = self._phantoms.get(ref.signature)
            if phantom is not None and self.driver.has_vertex(phantom):
                return phantom
            # 이전 실행에서 만들어진 정점 재사용
            existing = self.driver.find_method(ref.signature)
            if existing is not None:
                self._phantoms[ref.signature] = existing
                return existing
            phantom = MethodVertex(
                id=f"phantom:{ref.signature}",
                name=ref.name or ref.signature,
                code=ref.signature,
                method_signature=ref.signature,
                signature=ref.signature,
                declaring_type=ref.declaring_type,
                is_phantom=True
            )
            self.driver.add_vertex(phantom)
            self._phantoms[ref.signature] = phantom
            logger.debug(f"팬텀 메서드 생성: {ref.signature}")
            return phantom

    def discard(self, signature: str):
        """메서드가 실제로 분석되면 팬텀 항목 제거"""
        with self._lock:
            self._phantoms.pop(signature, None)

    def __len__(self) -> int:
        return len(self._phantoms)


class CallGraphBuilder:
    """메서드 간 호출(REF) 엣지 생성기"""

    def __init__(self, driver: GraphDriver, table: AssociationTable, call_graph: CallGraph,
                 reconciliation: ReconciliationManager, phantoms: Optional[PhantomRegistry] = None):
        self.driver = driver
        self.table = table
        self.call_graph = call_graph
        self.reconciliation = reconciliation
        self.phantoms = phantoms or PhantomRegistry(driver)

    def build(self, body: MethodBody) -> int:
        """메서드의 호출 엣지 생성

        Returns:
            새로 추가된 REF 엣지 수 (재연결 포함)
        """
        sig = body.method.signature
        logger.debug(f"호출 그래프 엣지 구성: {sig}")
        added = 0

        # 이전 실행의 호출자를 먼저 재연결
        method_vertex = self.table.method_vertex(sig)
        if method_vertex is not None:
            added += self._reconnect_prior_edges(sig, method_vertex)

        for unit in body.units:
            if unit.kind == UnitKind.IDENTITY:
                continue
            added += self._project_unit(unit)
        return added

    def _project_unit(self, unit: AnalysisUnit) -> int:
        edges = self.call_graph.edges_out_of(unit)
        if not edges:
            return 0
        vertices = self.table.get(unit)
        if not vertices:
            return 0
        source = vertices[0]

        added = 0
        for edge in edges:
            if not edge.target.signature:
                logger.warning(f"시그니처가 없는 호출 대상은 건너뜁니다: {unit.key}")
                continue
            target = self.table.method_vertex(edge.target.signature)
            if target is None or not self.driver.has_vertex(target):
                target = self.phantoms.get_or_create(edge.target)
            if self.driver.add_edge(source, target, EdgeLabel.REF):
                added += 1
        return added

    def _reconnect_prior_edges(self, sig: str, method_vertex: MethodVertex) -> int:
        callers = self.reconciliation.record_incoming(sig)
        if not callers:
            logger.debug("이전 호출 그래프 엣지가 없습니다")
            return 0

        logger.debug(f"저장된 호출 그래프 엣지 발견 - 호출자 {len(callers)}개 재연결")
        added = 0
        for caller in callers:
            # 같은 실행에서 재분석된 호출자는 새 호출 문장이 엣지를 다시 만듭니다
            if not self.driver.has_vertex(caller):
                continue
            if self.driver.add_edge(caller, method_vertex, EdgeLabel.REF):
                added += 1
        return added
