"""
IR 프런트엔드 모듈

이미 하향된 문장 단위 IR(YAML/JSON)을 읽어 MethodBody와 CallGraph를 만듭니다.

IR 형식:
    source: Loop1.java
    methods:
      - signature: "intraprocedural.Loop1.main(String[])void"
        static: true
        parameters: [args]
        locals: [a, b]
        units:
          - {id: s1, kind: assign, code: "a = 1"}
          - {id: s2, kind: if, code: "if a < b", true_target: s3, false_target: s5}
          - {id: s3, kind: assign, code: "a = a + 1", operator: ADD}
          - {id: s4, kind: goto, target: s2}
          - {id: s5, kind: return_void}
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Dict, Any, Optional, Union

import yaml

from shared_config.logger import logger

from .files import SupportedFile, classify, bytes_hash, HASH_SEED
from .units import AnalysisUnit, CallGraph, MethodBody, MethodRef, MethodUnit, UnitKind


IR_EXTENSIONS = ('.yaml', '.yml', '.json')


@dataclass
class SourceUnit:
    """IR 파일 하나 (원본 소스 파일 하나에 대응)"""
    path: str
    source: Optional[str] = None
    language: SupportedFile = SupportedFile.UNSUPPORTED
    content_hash: int = 0
    bodies: List[MethodBody] = field(default_factory=list)
    call_graph: CallGraph = field(default_factory=CallGraph)

    @property
    def signatures(self) -> List[str]:
        return [body.method.signature for body in self.bodies]


def load_source_file(path: Union[str, Path], seed: int = HASH_SEED) -> SourceUnit:
    """
    IR 파일을 로드합니다.

    Args:
        path: YAML/JSON 파일 경로
        seed: 변경 감지 해시 시드

    Returns:
        SourceUnit

    Raises:
        FileNotFoundError: 파일이 존재하지 않을 경우
        ValueError: IR 형식 오류
    """
    file_path = Path(path)
    if not file_path.exists():
        logger.error(f"파일을 찾을 수 없습니다: {path}")
        raise FileNotFoundError(f"파일을 찾을 수 없습니다: {path}")

    logger.debug(f"IR 파일 로드: {path}")
    raw = file_path.read_bytes()
    if file_path.suffix.lower() == '.json':
        data = json.loads(raw.decode('utf-8'))
    else:
        data = yaml.safe_load(raw)

    return parse_source(data, str(file_path), content_hash=bytes_hash(raw, seed))


def parse_source(data: Dict[str, Any], path: str = "<memory>",
                 content_hash: Optional[int] = None) -> SourceUnit:
    """딕셔너리 형태의 IR을 SourceUnit으로 변환합니다."""
    if not isinstance(data, dict):
        raise ValueError(f"잘못된 IR 형식: 딕셔너리가 필요합니다 ({path})")
    methods = data.get('methods') or []
    if not isinstance(methods, list):
        raise ValueError(f"잘못된 IR 형식: 'methods'는 리스트여야 합니다 ({path})")

    if content_hash is None:
        content_hash = bytes_hash(json.dumps(data, sort_keys=True, default=str).encode('utf-8'))

    source = data.get('source')
    unit = SourceUnit(
        path=path,
        source=source,
        language=classify(source or path),
        content_hash=content_hash
    )
    for i, item in enumerate(methods):
        if not isinstance(item, dict):
            raise ValueError(f"메서드 {i}: 딕셔너리가 아닙니다 ({path})")
        unit.bodies.append(_parse_method(item, unit.call_graph, path))
    return unit


def method_ref(value: Union[str, Dict[str, Any]]) -> MethodRef:
    """호출 대상 표기(문자열 시그니처 또는 딕셔너리)를 MethodRef로 변환"""
    if isinstance(value, dict):
        signature = str(value.get('signature') or '')
        name, declaring_type, return_type = _split_signature(signature)
        return MethodRef(
            signature=signature,
            name=value.get('name') or name,
            declaring_type=value.get('declaring_type') or declaring_type,
            return_type=value.get('return_type') or return_type
        )
    signature = str(value or '')
    name, declaring_type, return_type = _split_signature(signature)
    return MethodRef(signature=signature, name=name, declaring_type=declaring_type, return_type=return_type)


def _split_signature(signature: str):
    """'pkg.Type.name(Params)Ret' → (name, 'pkg.Type', 'Ret')"""
    head, _, tail = signature.partition('(')
    declaring_type, _, name = head.rpartition('.')
    return_type = tail.partition(')')[2] or "void"
    return name or head, declaring_type or None, return_type


def _parse_method(item: Dict[str, Any], call_graph: CallGraph, path: str) -> MethodBody:
    signature = item.get('signature')
    if not signature:
        raise ValueError(f"메서드에 'signature' 키가 없습니다 ({path})")
    name, declaring_type, return_type = _split_signature(signature)

    raw_locals = item.get('locals') or []
    if isinstance(raw_locals, dict):
        local_vars = {str(k): v for k, v in raw_locals.items()}
    else:
        local_vars = {str(k): None for k in raw_locals}

    method = MethodUnit(
        signature=signature,
        name=item.get('name') or name,
        declaring_type=item.get('declaring_type') or declaring_type,
        is_static=bool(item.get('static', False)),
        parameters=[str(p) for p in item.get('parameters') or []],
        locals=local_vars,
        return_type=item.get('return_type') or return_type
    )

    raw_units = item.get('units') or []
    units = _identity_units(method) + [_parse_unit(raw, signature) for raw in raw_units]
    successors = {
        str(raw['id']): [str(s) for s in raw['successors']]
        for raw in raw_units if 'successors' in raw
    }
    body = MethodBody(method, units, successors)

    for raw in raw_units:
        for callee in raw.get('callees') or []:
            call_graph.add_edge(body.unit(str(raw['id'])), method_ref(callee))
    return body


def _identity_units(method: MethodUnit) -> List[AnalysisUnit]:
    """this/파라미터 바인딩 문장. 둘 다 없으면 '@entry' 하나"""
    units = []
    if not method.is_static:
        units.append(AnalysisUnit(
            id="@this", kind=UnitKind.IDENTITY, code=f"this := @this: {method.declaring_type}"
        ))
    for i, param in enumerate(method.parameters):
        units.append(AnalysisUnit(
            id=f"@param{i}", kind=UnitKind.IDENTITY, code=f"{param} := @parameter{i}"
        ))
    if not units:
        units.append(AnalysisUnit(id="@entry", kind=UnitKind.IDENTITY, code="@entry"))
    return units


def _parse_unit(raw: Dict[str, Any], signature: str) -> AnalysisUnit:
    if not isinstance(raw, dict) or 'id' not in raw:
        raise ValueError(f"문장에 'id' 키가 없습니다: {signature}")
    unit_id = str(raw['id'])
    try:
        kind = UnitKind(str(raw.get('kind', 'assign')).lower())
    except ValueError:
        raise ValueError(f"알 수 없는 문장 종류입니다: {signature}#{unit_id} ({raw.get('kind')})")

    unit = AnalysisUnit(
        id=unit_id,
        kind=kind,
        code=str(raw.get('code', kind.value)),
        operator=raw.get('operator'),
        line=raw.get('line')
    )

    if kind == UnitKind.GOTO:
        unit.target = _optional_id(raw.get('target'))
    elif kind == UnitKind.IF:
        # YAML 1.1에서 true/false 키는 불리언으로 읽힙니다
        unit.true_target = _optional_id(_first_of(raw, 'true_target', 'true', True))
        unit.false_target = _optional_id(_first_of(raw, 'false_target', 'false', False))
    elif kind == UnitKind.TABLE_SWITCH:
        low = int(raw.get('low', 0))
        unit.cases = {low + i: str(t) for i, t in enumerate(raw.get('targets') or [])}
        unit.default_target = _optional_id(raw.get('default'))
    elif kind == UnitKind.LOOKUP_SWITCH:
        unit.cases = _parse_cases(raw.get('cases') or {})
        unit.default_target = _optional_id(raw.get('default'))
    return unit


def _parse_cases(raw_cases) -> Dict[int, str]:
    if isinstance(raw_cases, dict):
        return {int(value): str(target) for value, target in raw_cases.items()}
    return {int(case['value']): str(case['target']) for case in raw_cases}


def _first_of(raw: Dict[Any, Any], *keys):
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _optional_id(value) -> Optional[str]:
    return None if value is None else str(value)
