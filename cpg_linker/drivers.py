"""
그래프 저장소 드라이버

투영 엔진이 사용하는 저장소 계약(GraphDriver)과 메모리 구현(MemoryDriver)입니다.
- add_edge는 동일한 (source, label, target)에 대해 멱등이어야 합니다.
- 모든 변경은 동시 호출에 안전해야 합니다.
"""

import threading
from abc import ABC, abstractmethod
from typing import List, Optional, Set

from shared_config.logger import logger

from .errors import StorageFailure
from .models import CPG, Vertex, Edge, EdgeLabel, MethodVertex, VertexLabel


class GraphDriver(ABC):
    """그래프 저장소 계약"""

    @abstractmethod
    def add_vertex(self, vertex: Vertex):
        pass

    @abstractmethod
    def add_edge(self, source: Vertex, target: Vertex, label: EdgeLabel) -> bool:
        """엣지 추가. 이미 있으면 아무 것도 하지 않고 False를 반환합니다.

        Raises:
            StorageFailure: 저장소가 삽입을 거부한 경우
        """
        pass

    @abstractmethod
    def has_vertex(self, vertex: Vertex) -> bool:
        pass

    @abstractmethod
    def find_method(self, signature: str) -> Optional[MethodVertex]:
        """시그니처로 Method 정점 조회 (실제/팬텀)"""
        pass

    @abstractmethod
    def incoming_edges(self, signature: str, label: EdgeLabel = EdgeLabel.REF) -> Set[Vertex]:
        """메서드 정점으로 들어오는 엣지의 출발 정점 집합"""
        pass

    @abstractmethod
    def delete_method(self, signature: str) -> int:
        """메서드가 소유한 모든 정점(과 엣지) 삭제

        Returns:
            삭제된 정점 수
        """
        pass

    @abstractmethod
    def edges_out(self, vertex: Vertex, label: Optional[EdgeLabel] = None) -> List[Edge]:
        pass

    @abstractmethod
    def edges_in(self, vertex: Vertex, label: Optional[EdgeLabel] = None) -> List[Edge]:
        pass

    @abstractmethod
    def vertices(self) -> List[Vertex]:
        pass

    @abstractmethod
    def get_whole_graph(self) -> CPG:
        pass

    @abstractmethod
    def clear(self):
        pass


class MemoryDriver(GraphDriver):
    """메모리 기반 저장소"""

    def __init__(self):
        self._graph = CPG()
        self._lock = threading.RLock()

    def add_vertex(self, vertex: Vertex):
        with self._lock:
            self._graph.add_vertex(vertex)

    def add_edge(self, source: Vertex, target: Vertex, label: EdgeLabel) -> bool:
        with self._lock:
            for vertex in (source, target):
                if not self._graph.has_vertex(vertex):
                    raise StorageFailure(
                        f"저장되지 않은 정점으로의 엣지입니다: {source.id} -[{label.value}]-> {target.id}",
                        vertex.method_signature
                    )
            return self._graph.add_edge(Edge(source=source, target=target, label=label))

    def has_vertex(self, vertex: Vertex) -> bool:
        with self._lock:
            return self._graph.has_vertex(vertex)

    def find_method(self, signature: str) -> Optional[MethodVertex]:
        with self._lock:
            for vertex in self._graph.get_vertices_by_label(VertexLabel.METHOD):
                if isinstance(vertex, MethodVertex) and vertex.signature == signature:
                    return vertex
        return None

    def incoming_edges(self, signature: str, label: EdgeLabel = EdgeLabel.REF) -> Set[Vertex]:
        with self._lock:
            method_vertex = self.find_method(signature)
            if method_vertex is None:
                return set()
            return {e.source for e in self._graph.edges_in(method_vertex, label)}

    def delete_method(self, signature: str) -> int:
        with self._lock:
            owned = [v for v in self._graph.vertices.values() if v.method_signature == signature]
            for vertex in owned:
                self._graph.remove_vertex(vertex)
        if owned:
            logger.debug(f"메서드 정점 삭제: {signature} ({len(owned)}개)")
        return len(owned)

    def edges_out(self, vertex: Vertex, label: Optional[EdgeLabel] = None) -> List[Edge]:
        with self._lock:
            return self._graph.edges_out(vertex, label)

    def edges_in(self, vertex: Vertex, label: Optional[EdgeLabel] = None) -> List[Edge]:
        with self._lock:
            return self._graph.edges_in(vertex, label)

    def vertices(self) -> List[Vertex]:
        with self._lock:
            return list(self._graph.vertices.values())

    def get_whole_graph(self) -> CPG:
        """현재 그래프의 복사본"""
        with self._lock:
            copy = CPG()
            for vertex in self._graph.vertices.values():
                copy.add_vertex(vertex)
            for edge in self._graph.edges.values():
                copy.add_edge(edge)
            return copy

    def clear(self):
        with self._lock:
            self._graph = CPG()
