"""
CFGBuilder 테스트 - 분기/스위치/루프/return/goto 투영
"""
import os
import sys

import pytest

# 상위 디렉토리를 path에 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cpg_linker import (
    AssociationTable, CFGBuilder, MemoryDriver, VertexLowerer, parse_source,
    EdgeLabel, VertexLabel, ControlStructureVertex, JumpTargetVertex,
    MethodReturnVertex, ReturnVertex, BlockVertex, MethodVertex, CallVertex,
    AnalysisUnit, MethodBody, MethodUnit, UnitKind,
    GotoCycle, MalformedBranchOrSwitch,
)


def lower(*methods):
    """IR 메서드를 하향하고 봉인된 테이블을 반환"""
    source = parse_source({'source': 'Test.java', 'methods': list(methods)})
    driver = MemoryDriver()
    table = AssociationTable()
    lowerer = VertexLowerer(driver, table)
    for body in source.bodies:
        lowerer.lower(body)
    table.seal()
    return source, driver, table


def cfg_out(driver, vertex):
    return [e.target for e in driver.edges_out(vertex, EdgeLabel.CFG)]


def cfg_in(driver, vertex):
    return [e.source for e in driver.edges_in(vertex, EdgeLabel.CFG)]


def of_type(driver, cls):
    return [v for v in driver.vertices() if isinstance(v, cls)]


def reachable(driver, start):
    seen = set()
    stack = [start]
    while stack:
        vertex = stack.pop()
        for target in cfg_out(driver, vertex):
            if target not in seen:
                seen.add(target)
                stack.append(target)
    return seen


IF_METHOD = {
    'signature': 'intraprocedural.Basic1.main()void',
    'static': True,
    'units': [
        {'id': 's1', 'kind': 'assign', 'code': 'x = 0'},
        {'id': 's2', 'kind': 'if', 'code': 'if x > 1', 'true_target': 's3', 'false_target': 's4'},
        {'id': 's3', 'kind': 'assign', 'code': 'x = 2'},
        {'id': 's4', 'kind': 'return_void', 'code': 'return'},
    ]
}

WHILE_METHOD = {
    'signature': 'intraprocedural.Loop1.main()void',
    'static': True,
    'locals': ['a', 'b'],
    'units': [
        {'id': 's0', 'kind': 'assign', 'code': 'a = 1'},
        {'id': 's1', 'kind': 'if', 'code': 'if a < b', 'true_target': 's2', 'false_target': 's4'},
        {'id': 's2', 'kind': 'assign', 'code': 'a = a + 1', 'operator': 'ADD'},
        {'id': 's3', 'kind': 'goto', 'target': 's1'},
        {'id': 's4', 'kind': 'return_void', 'code': 'return'},
    ]
}

LOOKUP_SWITCH_METHOD = {
    'signature': 'intraprocedural.Switch1.main(int)void',
    'static': True,
    'parameters': ['x'],
    'units': [
        {'id': 's1', 'kind': 'lookup_switch', 'code': 'switch x',
         'cases': {1: 's2', 5: 's3', 9: 's4'}, 'default': 's5'},
        {'id': 's2', 'kind': 'assign', 'code': 'y = 1'},
        {'id': 'g2', 'kind': 'goto', 'target': 's6'},
        {'id': 's3', 'kind': 'assign', 'code': 'y = 5'},
        {'id': 'g3', 'kind': 'goto', 'target': 's6'},
        {'id': 's4', 'kind': 'assign', 'code': 'y = 9'},
        {'id': 'g4', 'kind': 'goto', 'target': 's6'},
        {'id': 's5', 'kind': 'assign', 'code': 'y = -1'},
        {'id': 's6', 'kind': 'return_void', 'code': 'return'},
    ]
}


class TestEntryAndPlain:
    """진입 엣지 및 일반 문장"""

    def test_block_connects_to_first_statement(self):
        """Block → identity 다음의 첫 문장"""
        source, driver, table = lower(IF_METHOD)
        body = source.bodies[0]
        CFGBuilder(driver, table).build(body)

        block = of_type(driver, BlockVertex)[0]
        assert cfg_out(driver, block) == [table.first(body.unit('s1'))]

    @pytest.mark.parametrize("static,parameters", [
        (False, []),
        (False, ['p']),
        (False, ['p', 'q']),
        (True, ['p']),
        (True, ['p', 'q', 'r']),
    ])
    def test_block_skips_all_bindings(self, static, parameters):
        """this/파라미터 바인딩 수와 관계없이 Block → 첫 실제 문장"""
        method = {
            'signature': 'pkg.T.h(int)void',
            'static': static,
            'parameters': parameters,
            'units': [
                {'id': 's1', 'kind': 'assign', 'code': 'x = 1'},
                {'id': 's2', 'kind': 'return_void'},
            ]
        }
        source, driver, table = lower(method)
        body = source.bodies[0]
        CFGBuilder(driver, table).build(body)

        block = of_type(driver, BlockVertex)[0]
        assert [v.code for v in cfg_out(driver, block)] == ['x = 1']
        assert table.first(body.unit('s2')) in reachable(driver, block)

    def test_block_through_bindings_and_goto(self):
        """바인딩 뒤의 goto도 해석"""
        method = {
            'signature': 'pkg.T.k(int,int)void',
            'static': True,
            'parameters': ['a', 'b'],
            'units': [
                {'id': 'g0', 'kind': 'goto', 'target': 's2'},
                {'id': 's1', 'kind': 'assign', 'code': 'x = 0'},
                {'id': 's2', 'kind': 'assign', 'code': 'x = 1'},
                {'id': 's3', 'kind': 'return_void'},
            ]
        }
        source, driver, table = lower(method)
        body = source.bodies[0]
        CFGBuilder(driver, table).build(body)

        block = of_type(driver, BlockVertex)[0]
        assert cfg_out(driver, block) == [table.first(body.unit('s2'))]

    def test_bindings_only(self):
        """바인딩만 있는 본문은 진입 엣지 없음"""
        source = parse_source({'methods': [{
            'signature': 'pkg.T.empty(int)void', 'parameters': ['p'], 'units': []
        }]})
        driver = MemoryDriver()
        table = AssociationTable()
        VertexLowerer(driver, table).lower(source.bodies[0])
        table.seal()

        assert CFGBuilder(driver, table).build(source.bodies[0]) == 0

    def test_plain_statement_falls_through(self):
        """assign → 다음 문장"""
        source, driver, table = lower(IF_METHOD)
        body = source.bodies[0]
        CFGBuilder(driver, table).build(body)

        s1 = table.first(body.unit('s1'))
        s2 = table.first(body.unit('s2'))
        assert cfg_out(driver, s1) == [s2]

    def test_identity_successor_is_skipped(self):
        """정점이 없는 문장으로의 홉은 오류 없이 건너뜀"""
        method = {
            'signature': 'Test.skip()void',
            'static': True,
            'units': [
                {'id': 's1', 'kind': 'assign', 'code': 'x = 1'},
                {'id': 'e1', 'kind': 'identity', 'code': 'e := @caughtexception'},
                {'id': 's2', 'kind': 'return_void'},
            ]
        }
        source, driver, table = lower(method)
        body = source.bodies[0]
        CFGBuilder(driver, table).build(body)

        assert body.unit('e1') not in table
        assert cfg_out(driver, table.first(body.unit('s1'))) == []

    def test_rebuild_is_idempotent(self):
        """같은 메서드를 다시 투영해도 엣지가 늘지 않음"""
        source, driver, table = lower(WHILE_METHOD)
        builder = CFGBuilder(driver, table)
        first_count = builder.build(source.bodies[0])
        total = len(driver.get_whole_graph().get_edges_by_label(EdgeLabel.CFG))

        assert first_count == total
        assert builder.build(source.bodies[0]) == 0
        assert len(driver.get_whole_graph().get_edges_by_label(EdgeLabel.CFG)) == total


class TestBranch:
    """if 문 투영"""

    def test_if_has_true_and_false_jump_targets(self):
        """JumpTarget은 TRUE/FALSE 두 개, 각각 ControlStructure에서 들어오는 CFG 엣지 하나"""
        source, driver, table = lower(IF_METHOD)
        CFGBuilder(driver, table).build(source.bodies[0])

        control = of_type(driver, ControlStructureVertex)[0]
        jump_targets = of_type(driver, JumpTargetVertex)
        assert sorted(jt.name for jt in jump_targets) == ['FALSE', 'TRUE']
        for jt in jump_targets:
            assert cfg_in(driver, jt) == [control]

    def test_if_targets(self):
        """TRUE → then 블록, FALSE → 분기 이후 문장"""
        source, driver, table = lower(IF_METHOD)
        body = source.bodies[0]
        CFGBuilder(driver, table).build(body)

        by_name = {jt.name: jt for jt in of_type(driver, JumpTargetVertex)}
        assert cfg_out(driver, by_name['TRUE']) == [table.first(body.unit('s3'))]
        assert cfg_out(driver, by_name['FALSE']) == [table.first(body.unit('s4'))]

    def test_while_loop_forms_cycle(self):
        """while (a < b) { a = a + 1; } → IF, TRUE → 본문, FALSE → 루프 이후, 본문 → IF"""
        source, driver, table = lower(WHILE_METHOD)
        body = source.bodies[0]
        CFGBuilder(driver, table).build(body)

        controls = [v for v in of_type(driver, ControlStructureVertex) if v.name == 'IF']
        assert len(controls) == 1
        if_vertex = controls[0]
        assert len(of_type(driver, JumpTargetVertex)) == 2

        by_name = {jt.name: jt for jt in cfg_out(driver, if_vertex)}
        loop_body = table.first(body.unit('s2'))
        after_loop = table.first(body.unit('s4'))
        assert cfg_out(driver, by_name['TRUE']) == [loop_body]
        assert cfg_out(driver, by_name['FALSE']) == [after_loop]
        assert cfg_out(driver, loop_body) == [if_vertex]
        assert if_vertex in reachable(driver, if_vertex)

    def test_branch_successor_not_declared(self):
        """선언된 대상이 아닌 후속 문장은 치명적 오류"""
        method = {
            'signature': 'Test.bad(boolean)void',
            'static': True,
            'parameters': ['c'],
            'units': [
                {'id': 's1', 'kind': 'if', 'true_target': 's2', 'false_target': 's3',
                 'successors': ['s2', 's4']},
                {'id': 's2', 'kind': 'return_void'},
                {'id': 's3', 'kind': 'return_void'},
                {'id': 's4', 'kind': 'return_void'},
            ]
        }
        source, driver, table = lower(method)
        with pytest.raises(MalformedBranchOrSwitch) as exc_info:
            CFGBuilder(driver, table).build(source.bodies[0])
        assert exc_info.value.method_signature == 'Test.bad(boolean)void'


class TestSwitch:
    """switch 문 투영"""

    def test_lookup_switch(self):
        """case k개 → JumpTarget k+1개, ControlStructure에서 나가는 CFG 엣지 k+1개 (DEFAULT 포함)"""
        source, driver, table = lower(LOOKUP_SWITCH_METHOD)
        body = source.bodies[0]
        CFGBuilder(driver, table).build(body)

        control = of_type(driver, ControlStructureVertex)[0]
        assert len(of_type(driver, JumpTargetVertex)) == 4
        outgoing = cfg_out(driver, control)
        assert len(outgoing) == 4
        assert sorted(jt.name for jt in outgoing) == ['CASE 1', 'CASE 5', 'CASE 9', 'DEFAULT']

        by_value = {jt.argument_index: jt for jt in outgoing}
        assert cfg_out(driver, by_value[1]) == [table.first(body.unit('s2'))]
        assert cfg_out(driver, by_value[9]) == [table.first(body.unit('s4'))]
        assert cfg_out(driver, by_value[None]) == [table.first(body.unit('s5'))]

    def test_case_goto_is_resolved(self):
        """case 본문 뒤 goto는 최종 대상으로 연결"""
        source, driver, table = lower(LOOKUP_SWITCH_METHOD)
        body = source.bodies[0]
        CFGBuilder(driver, table).build(body)

        end = table.first(body.unit('s6'))
        for uid in ('s2', 's3', 's4', 's5'):
            assert cfg_out(driver, table.first(body.unit(uid))) == [end]

    def test_table_switch_values(self):
        """table switch의 case 값은 low부터 연속"""
        method = {
            'signature': 'Test.table(int)void',
            'static': True,
            'parameters': ['x'],
            'units': [
                {'id': 's1', 'kind': 'table_switch', 'low': 3, 'targets': ['s2', 's3'], 'default': 's4'},
                {'id': 's2', 'kind': 'return_void'},
                {'id': 's3', 'kind': 'return_void'},
                {'id': 's4', 'kind': 'return_void'},
            ]
        }
        source, driver, table = lower(method)
        body = source.bodies[0]
        CFGBuilder(driver, table).build(body)

        control = of_type(driver, ControlStructureVertex)[0]
        by_value = {jt.argument_index: jt for jt in cfg_out(driver, control)}
        assert set(by_value) == {3, 4, None}
        assert cfg_out(driver, by_value[4]) == [table.first(body.unit('s3'))]

    def test_case_sharing_default_target(self):
        """default와 같은 대상의 case는 CFG 엣지를 만들지 않음"""
        method = {
            'signature': 'Test.shared(int)void',
            'static': True,
            'parameters': ['x'],
            'units': [
                {'id': 's1', 'kind': 'lookup_switch', 'cases': {1: 's2', 2: 's3'}, 'default': 's3'},
                {'id': 's2', 'kind': 'return_void'},
                {'id': 's3', 'kind': 'return_void'},
            ]
        }
        source, driver, table = lower(method)
        CFGBuilder(driver, table).build(source.bodies[0])

        control = of_type(driver, ControlStructureVertex)[0]
        assert len(of_type(driver, JumpTargetVertex)) == 3
        assert sorted(jt.name for jt in cfg_out(driver, control)) == ['CASE 1', 'DEFAULT']

    def test_missing_jump_targets(self):
        """JumpTarget이 합성되지 않은 switch는 치명적 오류"""
        method = MethodUnit(signature='Test.broken(int)void', name='broken', is_static=True)
        units = [
            AnalysisUnit(id='s1', kind=UnitKind.LOOKUP_SWITCH, cases={1: 's2'}, default_target='s3'),
            AnalysisUnit(id='s2', kind=UnitKind.RETURN_VOID),
            AnalysisUnit(id='s3', kind=UnitKind.RETURN_VOID),
        ]
        body = MethodBody(method, units)

        driver = MemoryDriver()
        table = AssociationTable()
        sig = method.signature
        method_vertices = [
            MethodVertex(id='m', method_signature=sig, signature=sig),
            BlockVertex(id='b', method_signature=sig),
            MethodReturnVertex(id='mr', method_signature=sig),
        ]
        control = ControlStructureVertex(id='cs', name='SWITCH', method_signature=sig)
        returns = [ReturnVertex(id=f'r{i}', method_signature=sig) for i in (2, 3)]
        for vertex in method_vertices + [control] + returns:
            driver.add_vertex(vertex)
        table.put(sig, method_vertices, owner=sig)
        table.put(body.unit('s1'), [control], owner=sig)
        table.put(body.unit('s2'), [returns[0]], owner=sig)
        table.put(body.unit('s3'), [returns[1]], owner=sig)
        table.seal()

        with pytest.raises(MalformedBranchOrSwitch):
            CFGBuilder(driver, table).build(body)


class TestReturn:
    """return 문 투영"""

    def test_each_return_reaches_method_return(self):
        """return마다 MethodReturn으로 CFG 엣지 하나, MethodReturn에는 그 외 입력 없음"""
        method = {
            'signature': 'Test.pick(boolean)int',
            'static': True,
            'parameters': ['c'],
            'units': [
                {'id': 's1', 'kind': 'if', 'true_target': 's2', 'false_target': 's3'},
                {'id': 's2', 'kind': 'return', 'code': 'return 1'},
                {'id': 's3', 'kind': 'return', 'code': 'return 0'},
            ]
        }
        source, driver, table = lower(method)
        body = source.bodies[0]
        CFGBuilder(driver, table).build(body)

        method_returns = of_type(driver, MethodReturnVertex)
        assert len(method_returns) == 1
        method_return = method_returns[0]
        returns = [table.first(body.unit('s2')), table.first(body.unit('s3'))]
        for ret in returns:
            assert cfg_out(driver, ret) == [method_return]
        assert sorted(v.id for v in cfg_in(driver, method_return)) == sorted(v.id for v in returns)
        assert method_return.type_full_name == 'int'


class TestGoto:
    """goto 해석"""

    def test_goto_chain_collapses(self):
        """goto L1; L1: goto L2; L2: x = 1 → 선행 문장에서 x = 1로 엣지 하나"""
        method = {
            'signature': 'Test.chain()void',
            'static': True,
            'units': [
                {'id': 'p', 'kind': 'assign', 'code': 'y = 0'},
                {'id': 'g0', 'kind': 'goto', 'target': 'g1'},
                {'id': 'g1', 'kind': 'goto', 'target': 's'},
                {'id': 's', 'kind': 'assign', 'code': 'x = 1'},
                {'id': 'r', 'kind': 'return_void'},
            ]
        }
        source, driver, table = lower(method)
        body = source.bodies[0]
        CFGBuilder(driver, table).build(body)

        assert cfg_out(driver, table.first(body.unit('p'))) == [table.first(body.unit('s'))]
        assert body.unit('g0') not in table
        assert body.unit('g1') not in table
        assert not [v for v in driver.vertices() if isinstance(v, CallVertex) and v.code.startswith('goto')]

    @pytest.mark.parametrize("units", [
        [{'id': 'g0', 'kind': 'goto', 'target': 'g0'}],
        [{'id': 'g0', 'kind': 'goto', 'target': 'g1'}, {'id': 'g1', 'kind': 'goto', 'target': 'g0'}],
    ])
    def test_goto_cycle(self, units):
        """goto 순환은 무한 루프가 아닌 GotoCycle"""
        method = {
            'signature': 'Test.spin()void',
            'static': True,
            'units': [{'id': 'p', 'kind': 'assign', 'code': 'y = 0'}] + units,
        }
        source, driver, table = lower(method)
        with pytest.raises(GotoCycle) as exc_info:
            CFGBuilder(driver, table).build(source.bodies[0])
        assert exc_info.value.method_signature == 'Test.spin()void'
