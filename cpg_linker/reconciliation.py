"""
증분 재연결 관리자

재분석으로 메서드 정점이 교체되기 전에 들어오는 REF 엣지의 호출자 정점을
메서드 시그니처 기준으로 기록해 두고, 새 정점에 다시 연결할 수 있게 합니다.
정점은 실행마다 새로 만들어지므로 정점이 아닌 시그니처를 키로 사용합니다.
"""

import threading
from typing import Dict, Set

from shared_config.logger import logger

from .drivers import GraphDriver
from .models import Vertex, EdgeLabel


class ReconciliationManager:
    """메서드 시그니처 → 호출자 정점 집합"""

    def __init__(self):
        self._incoming: Dict[str, Set[Vertex]] = {}
        self._lock = threading.Lock()

    def seed(self, method_id: str, driver: GraphDriver) -> Set[Vertex]:
        """저장소에서 현재 들어오는 REF 엣지를 조회해 기록을 덮어씁니다.

        이전 정점이 삭제되기 전에 호출해야 합니다.
        """
        callers = driver.incoming_edges(method_id, EdgeLabel.REF)
        with self._lock:
            self._incoming[method_id] = set(callers)
        if callers:
            logger.debug(f"호출자 기록: {method_id} ({len(callers)}개)")
        return set(callers)

    def record_incoming(self, method_id: str) -> Set[Vertex]:
        """이전에 기록된 호출자 집합을 반환하고 새 실행을 위해 비웁니다."""
        with self._lock:
            previous = self._incoming.get(method_id, set())
            self._incoming[method_id] = set()
        return previous

    def forget(self, method_id: str) -> Set[Vertex]:
        """더 이상 분석되지 않는 메서드의 기록을 제거하고 마지막 호출자 집합을 반환합니다."""
        with self._lock:
            return self._incoming.pop(method_id, set())

    def __contains__(self, method_id: str) -> bool:
        return method_id in self._incoming
