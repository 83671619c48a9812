"""
CPG 추출기 모듈

IR 파일을 로드하고, 변경된 파일의 메서드만 다시 하향한 뒤
메서드 단위로 CFG 엣지와 호출(REF) 엣지를 투영합니다.

실행 순서:
    1. 변경 감지 (xxHash32)
    2. 채우기 단계: 기존 호출자 기록 → 이전 정점 삭제 → 새 정점 하향
       (파일에서 사라진 메서드의 호출자는 팬텀으로 재연결)
    3. 연관 테이블 봉인
    4. 메서드별 투영: CFGBuilder → CallGraphBuilder (순차 또는 병렬)

실패 정책:
    fail_fast=False (기본) - 치명적 오류를 해당 메서드에 귀속시켜 기록하고 나머지는 계속 진행
    fail_fast=True - 첫 치명적 오류에서 배치를 중단하고 예외를 다시 발생
"""

import concurrent.futures
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union, Any

from shared_config.logger import logger, LogStage

from .association import AssociationTable
from .call_graph import CallGraphBuilder, PhantomRegistry
from .cfg_builder import CFGBuilder
from .config import ExtractorConfig
from .drivers import GraphDriver
from .errors import ProjectionError
from .exporters import export_json, export_jsonl, export_dot, Neo4jExporter
from .files import SupportedFile
from .frontend import SourceUnit, load_source_file, method_ref
from .lowering import VertexLowerer
from .models import CPG, EdgeLabel
from .reconciliation import ReconciliationManager
from .units import CallGraph, MethodBody


EXPORT_FORMATS = ("json", "jsonl", "dot", "cypher")


@dataclass
class MethodResult:
    """메서드 투영 결과"""
    signature: str
    success: bool
    cfg_edges: int = 0
    ref_edges: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'signature': self.signature,
            'success': self.success,
            'cfg_edges': self.cfg_edges,
            'ref_edges': self.ref_edges,
            'error': self.error
        }


@dataclass
class ProjectionReport:
    """한 번의 project() 실행 결과"""
    results: List[MethodResult] = field(default_factory=list)
    projected_files: List[str] = field(default_factory=list)
    unchanged_files: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> List[MethodResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[MethodResult]:
        return [r for r in self.results if not r.success]

    def result_for(self, signature: str) -> Optional[MethodResult]:
        return next((r for r in self.results if r.signature == signature), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'results': [r.to_dict() for r in self.results],
            'projected_files': self.projected_files,
            'unchanged_files': self.unchanged_files
        }

    def summary(self) -> str:
        """요약 정보 반환"""
        lines = ["=" * 50]
        lines.append("CPG Projection Summary")
        lines.append("=" * 50)
        lines.append(f"투영 파일 수: {len(self.projected_files)}")
        lines.append(f"변경 없음: {len(self.unchanged_files)}")
        lines.append(f"메서드 성공: {len(self.succeeded)}")
        lines.append(f"메서드 실패: {len(self.failed)}")
        for result in self.failed:
            lines.append(f"  - {result.signature}: {result.error}")
        lines.append("=" * 50)
        return "\n".join(lines)


class Extractor:
    """
    CPG 추출기

    Usage:
        driver = MemoryDriver()
        extractor = Extractor(driver)

        extractor.load("ir/")
        report = extractor.project()

        # 파일 하나만 바뀐 뒤 다시 투영 (기존 호출 엣지 보존)
        extractor.load("ir/Callee.yaml")
        extractor.project()
    """

    def __init__(self, driver: GraphDriver, config: Optional[ExtractorConfig] = None):
        self.driver = driver
        self.config = config or ExtractorConfig()

        self.table = AssociationTable()
        self.call_graph = CallGraph()
        self.reconciliation = ReconciliationManager()
        self.phantoms = PhantomRegistry(driver)

        self.lowerer = VertexLowerer(driver, self.table)
        self.cfg_builder = CFGBuilder(driver, self.table)
        self.call_graph_builder = CallGraphBuilder(
            driver, self.table, self.call_graph, self.reconciliation, self.phantoms
        )

        self._pending: List[Union[str, SourceUnit]] = []
        # 파일 경로 → 마지막으로 투영한 해시 / 메서드 시그니처 목록
        self._hashes: Dict[str, int] = {}
        self._file_methods: Dict[str, List[str]] = {}
        self.table.seal()

    # ===== 로드 =====

    def load(self, *sources: Union[str, Path, SourceUnit]) -> 'Extractor':
        """
        투영할 IR 파일/디렉토리 또는 SourceUnit을 등록합니다.

        Raises:
            FileNotFoundError: 경로가 존재하지 않을 경우
        """
        for source in sources:
            if isinstance(source, SourceUnit):
                self._pending.append(source)
                continue
            path = Path(source)
            if not path.exists():
                raise FileNotFoundError(f"파일을 찾을 수 없습니다: {source}")
            if path.is_dir():
                for file_path in sorted(path.rglob('*')):
                    if file_path.is_file() and file_path.suffix.lower() in self.config.ir_extensions:
                        self._pending.append(str(file_path.resolve()))
            else:
                self._pending.append(str(path.resolve()))
        return self

    # ===== 투영 =====

    def project(self) -> ProjectionReport:
        """등록된 파일 중 변경된 것만 투영합니다."""
        pending, self._pending = self._pending, []
        report = ProjectionReport()

        with LogStage("CPG 투영", files=len(pending)):
            changed = self._collect_changed(pending, report)
            with LogStage("정점 하향", files=len(changed)):
                self._populate(changed)
            bodies = [body for unit in changed for body in unit.bodies]
            report.results = self._project_bodies(bodies)

        if report.failed:
            logger.warning(f"투영 실패 메서드: {len(report.failed)}개")
        return report

    def _collect_changed(self, pending: List[Union[str, SourceUnit]],
                         report: ProjectionReport) -> List[SourceUnit]:
        changed: Dict[str, SourceUnit] = {}
        for item in pending:
            unit = item if isinstance(item, SourceUnit) else load_source_file(item, self.config.hash_seed)
            if unit.source and unit.language == SupportedFile.UNSUPPORTED:
                logger.warning(f"지원하지 않는 파일 형식입니다, 건너뜁니다: {unit.source}")
                continue
            if self._hashes.get(unit.path) == unit.content_hash:
                logger.debug(f"변경 없음: {unit.path}")
                if unit.path not in report.unchanged_files:
                    report.unchanged_files.append(unit.path)
                continue
            changed[unit.path] = unit
        report.projected_files = list(changed)
        return list(changed.values())

    def _populate(self, changed: List[SourceUnit]):
        """채우기 단계: 이전 정점 정리 후 새 정점 하향"""
        signatures: List[str] = []
        for unit in changed:
            signatures.extend(self._file_methods.get(unit.path, []))
            signatures.extend(unit.signatures)
        signatures = list(dict.fromkeys(signatures))

        self.table.open()
        try:
            # 이전 정점이 삭제되기 전에 모든 호출자를 먼저 기록
            for sig in signatures:
                if self.driver.find_method(sig) is not None:
                    self.reconciliation.seed(sig, self.driver)
            for sig in signatures:
                self._discard_method(sig)

            for unit in changed:
                self.call_graph.merge(unit.call_graph)
                for body in unit.bodies:
                    self.lowerer.lower(body)
                self._file_methods[unit.path] = unit.signatures
                self._hashes[unit.path] = unit.content_hash

            # 파일에서 사라진 메서드의 호출자는 팬텀으로 옮김
            lowered = {sig for unit in changed for sig in unit.signatures}
            for sig in signatures:
                if sig not in lowered:
                    self._relink_to_phantom(sig)
        finally:
            self.table.seal()

    def _discard_method(self, signature: str):
        self.driver.delete_method(signature)
        keys = self.table.evict(signature)
        self.call_graph.drop_units(keys)
        self.phantoms.discard(signature)

    def _relink_to_phantom(self, signature: str) -> int:
        callers = [v for v in self.reconciliation.forget(signature) if self.driver.has_vertex(v)]
        if not callers:
            return 0
        phantom = self.phantoms.get_or_create(method_ref(signature))
        added = sum(1 for caller in callers if self.driver.add_edge(caller, phantom, EdgeLabel.REF))
        logger.debug(f"삭제된 메서드의 호출자 {added}개를 팬텀으로 연결: {signature}")
        return added

    def _project_bodies(self, bodies: List[MethodBody]) -> List[MethodResult]:
        if self.config.max_workers <= 1 or len(bodies) <= 1:
            return [self._project_method(body) for body in bodies]

        results: Dict[int, MethodResult] = {}
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = {
                executor.submit(self._project_method, body): i
                for i, body in enumerate(bodies)
            }
            for future in concurrent.futures.as_completed(futures):
                try:
                    results[futures[future]] = future.result()
                except ProjectionError:
                    for other in futures:
                        other.cancel()
                    raise
        return [results[i] for i in sorted(results)]

    def _project_method(self, body: MethodBody) -> MethodResult:
        """메서드 하나 투영: CFG 먼저, 그다음 호출 엣지"""
        sig = body.method.signature
        try:
            cfg_edges = self.cfg_builder.build(body)
            ref_edges = self.call_graph_builder.build(body)
        except ProjectionError as e:
            e.method_signature = sig
            logger.error(f"메서드 투영 실패: {e}")
            if self.config.fail_fast:
                raise
            return MethodResult(signature=sig, success=False, error=str(e))
        return MethodResult(signature=sig, success=True, cfg_edges=cfg_edges, ref_edges=ref_edges)

    # ===== 조회/내보내기 =====

    def get_whole_graph(self) -> CPG:
        return self.driver.get_whole_graph()

    def export(self, output_path: str, fmt: str = "json") -> str:
        """
        현재 그래프를 파일로 내보냅니다.

        Args:
            output_path: 출력 파일 경로
            fmt: json, jsonl, dot, cypher 중 하나
        """
        cpg = self.get_whole_graph()
        if fmt == "json":
            return export_json(cpg, output_path)
        if fmt == "jsonl":
            return export_jsonl(cpg, output_path)
        if fmt == "dot":
            return export_dot(cpg, output_path)
        if fmt == "cypher":
            return Neo4jExporter().save_cypher(cpg, output_path)
        raise ValueError(f"지원하지 않는 출력 형식입니다: {fmt}")
