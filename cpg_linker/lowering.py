"""
정점 하향(lowering) 모듈

메서드 본문의 분석 단위를 정점으로 하향하고 연관 테이블을 채웁니다.
분기/스위치 문장의 JumpTarget(TRUE/FALSE/DEFAULT/case 값)도 여기서 합성합니다.
identity, goto 문장은 정점을 만들지 않습니다.
"""

import itertools
import threading
from typing import List

from shared_config.logger import logger

from .association import AssociationTable
from .drivers import GraphDriver
from .models import (
    Vertex, EdgeLabel, MethodVertex, BlockVertex, MethodReturnVertex,
    ControlStructureVertex, JumpTargetVertex, CallVertex, LocalVertex, ReturnVertex,
    TRUE_TARGET, FALSE_TARGET, DEFAULT_TARGET
)
from .units import AnalysisUnit, MethodBody, UnitKind, SWITCH_KINDS, RETURN_KINDS


def local_key(signature: str, name: str) -> str:
    return f"{signature}$local:{name}"


class VertexLowerer:
    """분석 단위 → 정점 하향기"""

    def __init__(self, driver: GraphDriver, table: AssociationTable):
        self.driver = driver
        self.table = table
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

    def _next_id(self, prefix: str) -> str:
        with self._id_lock:
            return f"{prefix}:{next(self._ids)}"

    def lower(self, body: MethodBody) -> int:
        """메서드 본문 하향

        Returns:
            생성된 정점 수
        """
        method = body.method
        sig = method.signature
        created = 0

        method_v = MethodVertex(
            id=self._next_id("method"),
            name=method.name,
            code=sig,
            method_signature=sig,
            signature=sig,
            declaring_type=method.declaring_type,
            is_static=method.is_static
        )
        block_v = BlockVertex(id=self._next_id("block"), name="BLOCK", method_signature=sig)
        return_v = MethodReturnVertex(
            id=self._next_id("method_return"),
            name="RETURN",
            code=method.return_type,
            method_signature=sig,
            type_full_name=method.return_type
        )
        for vertex in (method_v, block_v, return_v):
            self.driver.add_vertex(vertex)
        self.driver.add_edge(method_v, block_v, EdgeLabel.AST)
        self.driver.add_edge(method_v, return_v, EdgeLabel.AST)
        self.table.put(sig, [method_v, block_v, return_v], owner=sig)
        created += 3

        # 지역 변수
        for order, (name, type_name) in enumerate(method.locals.items(), 1):
            local_v = LocalVertex(
                id=self._next_id("local"),
                name=name,
                code=name,
                method_signature=sig,
                order=order,
                type_full_name=type_name
            )
            self.driver.add_vertex(local_v)
            self.driver.add_edge(block_v, local_v, EdgeLabel.AST)
            self.table.put(local_key(sig, name), [local_v], owner=sig)
            created += 1

        for order, unit in enumerate(body.units, 1):
            vertices = self._lower_unit(unit, order)
            if not vertices:
                continue
            for vertex in vertices:
                self.driver.add_vertex(vertex)
            self.driver.add_edge(block_v, vertices[0], EdgeLabel.AST)
            for child in vertices[1:]:
                self.driver.add_edge(vertices[0], child, EdgeLabel.AST)
            self.table.put(unit, vertices, owner=sig)
            created += len(vertices)

        logger.debug(f"하향 완료: {sig} (정점 {created}개)")
        return created

    def _lower_unit(self, unit: AnalysisUnit, order: int) -> List[Vertex]:
        sig = unit.method_signature
        common = dict(method_signature=sig, order=order, code=unit.code)
        if unit.line is not None:
            common["attributes"] = {"line_number": unit.line}

        if unit.kind in (UnitKind.IDENTITY, UnitKind.GOTO):
            return []

        if unit.kind == UnitKind.IF:
            return [
                ControlStructureVertex(id=self._next_id("control"), name="IF", **common),
                JumpTargetVertex(id=self._next_id("jump"), name=TRUE_TARGET, method_signature=sig, order=order),
                JumpTargetVertex(id=self._next_id("jump"), name=FALSE_TARGET, method_signature=sig, order=order),
            ]

        if unit.kind in SWITCH_KINDS:
            vertices: List[Vertex] = [
                ControlStructureVertex(id=self._next_id("control"), name="SWITCH", **common)
            ]
            for value in dict.fromkeys(unit.cases):
                vertices.append(JumpTargetVertex(
                    id=self._next_id("jump"),
                    name=f"CASE {value}",
                    method_signature=sig,
                    order=order,
                    argument_index=value
                ))
            vertices.append(JumpTargetVertex(
                id=self._next_id("jump"), name=DEFAULT_TARGET, method_signature=sig, order=order
            ))
            return vertices

        if unit.kind in RETURN_KINDS:
            return [ReturnVertex(id=self._next_id("return"), name="RETURN", **common)]

        return [CallVertex(
            id=self._next_id("call"),
            name=unit.operator or ("INVOKE" if unit.kind == UnitKind.INVOKE else "ASSIGN"),
            **common
        )]
