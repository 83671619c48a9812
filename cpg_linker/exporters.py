"""
CPG 내보내기 모듈

저장된 그래프를 JSON, JSONL, Graphviz DOT, Neo4j Cypher 파일로 내보냅니다.
"""

import json
import os
from typing import Dict, Any

from shared_config.logger import logger

from .models import CPG, Vertex, Edge


def _prepare(output_path: str) -> str:
    output_path = os.path.abspath(output_path)
    os.makedirs(os.path.dirname(output_path), exist_ok=True)
    return output_path


def export_json(cpg: CPG, output_path: str, indent: int = 2) -> str:
    """
    CPG를 JSON 파일로 내보냅니다.

    Args:
        cpg: CPG 객체
        output_path: 출력 파일 경로
        indent: 들여쓰기 수준
    """
    output_path = _prepare(output_path)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(cpg.to_dict(), f, ensure_ascii=False, indent=indent)
    logger.info(f"JSON 출력 완료: {output_path}")
    return output_path


def export_jsonl(cpg: CPG, output_path: str) -> str:
    """
    CPG를 JSONL 파일로 내보냅니다 (정점/엣지 각 라인).
    """
    output_path = _prepare(output_path)
    with open(output_path, 'w', encoding='utf-8') as f:
        for vertex in cpg.vertices.values():
            f.write(json.dumps({"record_type": "vertex", **vertex.to_dict()},
                               ensure_ascii=False) + '\n')
        for edge in cpg.edges.values():
            f.write(json.dumps({"record_type": "edge", **edge.to_dict()},
                               ensure_ascii=False) + '\n')
    logger.info(f"JSONL 출력 완료: {output_path}")
    return output_path


def export_dot(cpg: CPG, output_path: str, title: str = "CPG") -> str:
    """
    CPG를 Graphviz DOT 파일로 내보냅니다.
    """
    output_path = _prepare(output_path)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(cpg.to_dot(title))
    logger.info(f"DOT 출력 완료: {output_path}")
    logger.info(f"시각화: dot -Tpng {output_path} -o output.png")
    return output_path


class Neo4jExporter:
    """
    CPG를 Neo4j Cypher로 변환하는 클래스

    정점 라벨은 VertexLabel 값(Block, Method, ...), 관계 타입은 EdgeLabel 값(CFG, REF, AST)을 그대로 사용합니다.

    Usage:
        exporter = Neo4jExporter()
        cypher = exporter.to_cypher(cpg)
        exporter.save_cypher(cpg, "output.cypher")
    """

    def to_cypher(self, cpg: CPG) -> str:
        """CPG를 MERGE 문으로 변환 (반복 실행해도 중복 없음)"""
        lines = []
        lines.append("// Neo4j MERGE Export (idempotent)")
        lines.append(f"// Vertices: {len(cpg.vertices)}, Edges: {len(cpg.edges)}")
        lines.append("")

        lines.append("// === Vertices ===")
        for vertex in cpg.vertices.values():
            lines.append(self._vertex_to_cypher(vertex))

        lines.append("")
        lines.append("// === Edges ===")
        for edge in cpg.edges.values():
            lines.append(self._edge_to_cypher(edge))

        return "\n".join(lines)

    def save_cypher(self, cpg: CPG, file_path: str) -> str:
        """Cypher 쿼리를 파일로 저장"""
        file_path = _prepare(file_path)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(self.to_cypher(cpg))
        logger.info(f"Cypher 출력 완료: {file_path}")
        return file_path

    def _vertex_to_cypher(self, vertex: Vertex) -> str:
        props = self._format_properties(vertex.to_dict())
        return f"MERGE (n:{vertex.label.value} {{id: '{self._escape_string(vertex.id)}'}}) SET n += {props};"

    def _edge_to_cypher(self, edge: Edge) -> str:
        return (
            f"MATCH (a {{id: '{self._escape_string(edge.source.id)}'}}), "
            f"(b {{id: '{self._escape_string(edge.target.id)}'}}) "
            f"MERGE (a)-[:{edge.label.value}]->(b);"
        )

    def _format_properties(self, props: Dict[str, Any]) -> str:
        """정점 속성을 Cypher 형식으로 변환 (중첩 속성은 제외)"""
        prop_strs = []
        for k, v in props.items():
            if k in ("label", "attributes"):
                continue
            if isinstance(v, bool):
                prop_strs.append(f"{k}: {'true' if v else 'false'}")
            elif isinstance(v, (int, float)):
                prop_strs.append(f"{k}: {v}")
            elif isinstance(v, str):
                prop_strs.append(f"{k}: '{self._escape_string(v)}'")
            elif v is not None:
                prop_strs.append(f"{k}: '{self._escape_string(str(v))}'")
        return "{" + ", ".join(prop_strs) + "}"

    def _escape_string(self, s: str) -> str:
        """Cypher 문자열 이스케이프"""
        return s.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
