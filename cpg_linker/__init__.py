"""
cpg_linker 모듈

하향된 문장 IR과 해석된 호출 그래프로부터 Code Property Graph 엣지를 생성합니다.
- CFG 엣지 투영 (분기/스위치/루프/return/goto)
- 메서드 간 호출(REF) 엣지 및 팬텀 메서드
- 재분석 시 기존 호출 엣지 재연결
"""

from .models import (
    CPG, Vertex, Edge, VertexLabel, EdgeLabel,
    MethodVertex, BlockVertex, ControlStructureVertex, JumpTargetVertex,
    MethodReturnVertex, CallVertex, LocalVertex, ReturnVertex,
    TRUE_TARGET, FALSE_TARGET, DEFAULT_TARGET,
)
from .errors import (
    CPGError, MissingAssociation, ProjectionError,
    MalformedBranchOrSwitch, GotoCycle, StorageFailure, ConfigError,
)
from .units import (
    UnitKind, AnalysisUnit, MethodUnit, MethodBody, MethodRef,
    CallGraph, ResolvedCallEdge,
)
from .association import AssociationTable, check_branch_targets, check_switch_targets
from .drivers import GraphDriver, MemoryDriver
from .lowering import VertexLowerer
from .cfg_builder import CFGBuilder
from .call_graph import CallGraphBuilder, PhantomRegistry
from .reconciliation import ReconciliationManager
from .files import SupportedFile, classify, file_hash
from .frontend import SourceUnit, load_source_file, parse_source
from .config import ExtractorConfig
from .exporters import export_json, export_jsonl, export_dot, Neo4jExporter
from .extractor import Extractor, ProjectionReport, MethodResult

__all__ = [
    'Extractor', 'ProjectionReport', 'MethodResult', 'ExtractorConfig',
    'CFGBuilder', 'CallGraphBuilder', 'PhantomRegistry', 'ReconciliationManager',
    'AssociationTable', 'check_branch_targets', 'check_switch_targets',
    'VertexLowerer', 'GraphDriver', 'MemoryDriver',
    'CPG', 'Vertex', 'Edge', 'VertexLabel', 'EdgeLabel',
    'MethodVertex', 'BlockVertex', 'ControlStructureVertex', 'JumpTargetVertex',
    'MethodReturnVertex', 'CallVertex', 'LocalVertex', 'ReturnVertex',
    'TRUE_TARGET', 'FALSE_TARGET', 'DEFAULT_TARGET',
    'CPGError', 'MissingAssociation', 'ProjectionError',
    'MalformedBranchOrSwitch', 'GotoCycle', 'StorageFailure', 'ConfigError',
    'UnitKind', 'AnalysisUnit', 'MethodUnit', 'MethodBody', 'MethodRef',
    'CallGraph', 'ResolvedCallEdge',
    'SupportedFile', 'classify', 'file_hash',
    'SourceUnit', 'load_source_file', 'parse_source',
    'export_json', 'export_jsonl', 'export_dot', 'Neo4jExporter',
]
