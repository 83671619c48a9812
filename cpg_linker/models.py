"""
CPG 데이터 모델 정의

Vertex, Edge 및 CPG 그래프 클래스를 정의합니다.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Set, Tuple
from enum import Enum


# JumpTarget 이름
TRUE_TARGET = "TRUE"
FALSE_TARGET = "FALSE"
DEFAULT_TARGET = "DEFAULT"


class VertexLabel(Enum):
    """정점 타입 열거형"""
    METHOD = "Method"
    BLOCK = "Block"                          # 메서드 진입 블록
    CONTROL_STRUCTURE = "ControlStructure"   # 분기/스위치 헤드
    JUMP_TARGET = "JumpTarget"               # TRUE/FALSE/DEFAULT/case 값
    METHOD_RETURN = "MethodReturn"           # 메서드당 하나
    CALL = "Call"
    LOCAL = "Local"
    RETURN = "Return"


class EdgeLabel(Enum):
    """엣지 타입 열거형"""
    AST = "AST"    # 구조 포함 관계
    CFG = "CFG"    # 메서드 내부 제어 흐름
    REF = "REF"    # 메서드 간 호출


EdgeKey = Tuple[str, EdgeLabel, str]


@dataclass(eq=False)
class Vertex:
    """CPG 기본 정점

    실행마다 새로 생성되므로 동일성은 객체 단위로 판단합니다.
    """
    id: str
    label: VertexLabel = VertexLabel.CALL  # 기본값 (하위 클래스에서 __post_init__으로 재설정)
    name: str = ""
    code: str = ""
    method_signature: Optional[str] = None  # 소유 메서드
    order: int = 0
    attributes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label.value,
            "name": self.name,
            "code": self.code,
            "method_signature": self.method_signature,
            "order": self.order,
            "attributes": self.attributes
        }


@dataclass(eq=False)
class MethodVertex(Vertex):
    """메서드 정점 (실제 또는 팬텀)"""
    signature: str = ""
    declaring_type: Optional[str] = None
    is_static: bool = False
    is_phantom: bool = False

    def __post_init__(self):
        self.label = VertexLabel.METHOD

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d.update({
            "signature": self.signature,
            "declaring_type": self.declaring_type,
            "is_static": self.is_static,
            "is_phantom": self.is_phantom
        })
        return d


@dataclass(eq=False)
class BlockVertex(Vertex):
    """메서드 진입 블록 정점"""

    def __post_init__(self):
        self.label = VertexLabel.BLOCK


@dataclass(eq=False)
class ControlStructureVertex(Vertex):
    """분기/스위치 헤드 정점 (name: IF, SWITCH)"""

    def __post_init__(self):
        self.label = VertexLabel.CONTROL_STRUCTURE


@dataclass(eq=False)
class JumpTargetVertex(Vertex):
    """분기 결과 정점"""
    argument_index: Optional[int] = None  # case 값

    def __post_init__(self):
        self.label = VertexLabel.JUMP_TARGET

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["argument_index"] = self.argument_index
        return d


@dataclass(eq=False)
class MethodReturnVertex(Vertex):
    """메서드 반환 정점"""
    type_full_name: str = "void"

    def __post_init__(self):
        self.label = VertexLabel.METHOD_RETURN

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["type_full_name"] = self.type_full_name
        return d


@dataclass(eq=False)
class CallVertex(Vertex):
    """호출/연산 정점"""
    method_full_name: Optional[str] = None

    def __post_init__(self):
        self.label = VertexLabel.CALL

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["method_full_name"] = self.method_full_name
        return d


@dataclass(eq=False)
class LocalVertex(Vertex):
    """지역 변수 정점"""
    type_full_name: Optional[str] = None

    def __post_init__(self):
        self.label = VertexLabel.LOCAL

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["type_full_name"] = self.type_full_name
        return d


@dataclass(eq=False)
class ReturnVertex(Vertex):
    """return 문 정점"""

    def __post_init__(self):
        self.label = VertexLabel.RETURN


@dataclass(eq=False)
class Edge:
    """CPG 엣지"""
    source: Vertex
    target: Vertex
    label: EdgeLabel

    @property
    def key(self) -> EdgeKey:
        return (self.source.id, self.label, self.target.id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.id,
            "target": self.target.id,
            "label": self.label.value
        }


@dataclass
class CPG:
    """Code Property Graph 전체 구조

    동일한 (source, label, target) 엣지는 한 번만 저장됩니다.
    """
    vertices: Dict[str, Vertex] = field(default_factory=dict)
    edges: Dict[EdgeKey, Edge] = field(default_factory=dict)
    _out: Dict[str, Set[EdgeKey]] = field(default_factory=dict, repr=False)
    _in: Dict[str, Set[EdgeKey]] = field(default_factory=dict, repr=False)

    def add_vertex(self, vertex: Vertex):
        """정점 추가"""
        self.vertices[vertex.id] = vertex
        self._out.setdefault(vertex.id, set())
        self._in.setdefault(vertex.id, set())

    def add_edge(self, edge: Edge) -> bool:
        """엣지 추가 (이미 있으면 False)"""
        key = edge.key
        if key in self.edges:
            return False
        self.edges[key] = edge
        self._out[edge.source.id].add(key)
        self._in[edge.target.id].add(key)
        return True

    def has_vertex(self, vertex: Vertex) -> bool:
        return self.vertices.get(vertex.id) is vertex

    def remove_vertex(self, vertex: Vertex):
        """정점과 연결된 모든 엣지 제거"""
        if vertex.id not in self.vertices:
            return
        for key in self._out.pop(vertex.id, set()) | self._in.pop(vertex.id, set()):
            edge = self.edges.pop(key, None)
            if edge is None:
                continue
            self._out.get(edge.source.id, set()).discard(key)
            self._in.get(edge.target.id, set()).discard(key)
        del self.vertices[vertex.id]

    def get_vertex(self, vertex_id: str) -> Optional[Vertex]:
        """정점 조회"""
        return self.vertices.get(vertex_id)

    def get_vertices_by_label(self, label: VertexLabel) -> List[Vertex]:
        """타입별 정점 조회"""
        return [v for v in self.vertices.values() if v.label == label]

    def get_edges_by_label(self, label: EdgeLabel) -> List[Edge]:
        """타입별 엣지 조회"""
        return [e for e in self.edges.values() if e.label == label]

    def edges_out(self, vertex: Vertex, label: Optional[EdgeLabel] = None) -> List[Edge]:
        """나가는 엣지 조회"""
        keys = self._out.get(vertex.id, set())
        return [self.edges[k] for k in keys if label is None or k[1] == label]

    def edges_in(self, vertex: Vertex, label: Optional[EdgeLabel] = None) -> List[Edge]:
        """들어오는 엣지 조회"""
        keys = self._in.get(vertex.id, set())
        return [self.edges[k] for k in keys if label is None or k[1] == label]

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            "vertices": [v.to_dict() for v in self.vertices.values()],
            "edges": [e.to_dict() for e in self.edges.values()],
            "summary": {
                "total_vertices": len(self.vertices),
                "total_edges": len(self.edges)
            }
        }

    def to_dot(self, title: str = "CPG") -> str:
        """Graphviz DOT 형식으로 변환"""
        lines = [f'digraph "{title}" {{']
        lines.append('  rankdir=TB;')
        lines.append('  node [shape=box];')

        # 정점 타입별 스타일
        label_styles = {
            VertexLabel.METHOD: 'style=filled,fillcolor=lightblue',
            VertexLabel.BLOCK: 'shape=folder,style=filled,fillcolor=lightgray',
            VertexLabel.CONTROL_STRUCTURE: 'shape=diamond,style=filled,fillcolor=wheat',
            VertexLabel.JUMP_TARGET: 'shape=ellipse',
            VertexLabel.METHOD_RETURN: 'style=filled,fillcolor=lightgreen',
            VertexLabel.LOCAL: 'style=filled,fillcolor=lightyellow',
        }

        for vertex in self.vertices.values():
            style = label_styles.get(vertex.label, '')
            if isinstance(vertex, MethodVertex) and vertex.is_phantom:
                style = 'style=dashed'
            text = (vertex.code or vertex.name).replace('"', '\\"')
            label = f"{text}\\n({vertex.label.value})"
            lines.append(f'  "{vertex.id}" [label="{label}",{style}];')

        edge_styles = {
            EdgeLabel.CFG: 'color=black',
            EdgeLabel.REF: 'color=blue',
            EdgeLabel.AST: 'color=gray,style=dashed',
        }

        for edge in self.edges.values():
            style = edge_styles.get(edge.label, '')
            lines.append(f'  "{edge.source.id}" -> "{edge.target.id}" [label="{edge.label.value}",{style}];')

        lines.append('}')
        return '\n'.join(lines)
