"""In-memory ExecutionRepository adapter (Infrastructure).

保存实体副本，调用方拿到的对象修改后必须通过 update_* 写回。
引擎与查询通过 asyncio.to_thread 在不同线程访问，所有读写持有同一把锁。
"""

from __future__ import annotations

import copy
import threading

from flowrun.domain.entities.execution import Execution
from flowrun.domain.entities.node_execution import NodeExecution
from flowrun.domain.exceptions import DomainError, NotFoundError


class InMemoryExecutionRepository:
    def __init__(self) -> None:
        self._executions: dict[str, Execution] = {}
        self._node_executions: dict[str, NodeExecution] = {}
        self._lock = threading.RLock()

    def create_execution(self, execution: Execution) -> None:
        with self._lock:
            if execution.id in self._executions:
                raise DomainError(f"Execution already exists: {execution.id}")
            self._executions[execution.id] = copy.deepcopy(execution)

    def update_execution(self, execution: Execution) -> None:
        with self._lock:
            if execution.id not in self._executions:
                raise NotFoundError("Execution", execution.id)
            self._executions[execution.id] = copy.deepcopy(execution)

    def get_execution(self, execution_id: str) -> Execution:
        with self._lock:
            execution = self._executions.get(execution_id)
            if execution is None:
                raise NotFoundError("Execution", execution_id)
            return copy.deepcopy(execution)

    def list_executions(self, graph_id: str, limit: int = 50) -> list[Execution]:
        with self._lock:
            matched = [e for e in self._executions.values() if e.graph_id == graph_id]
            matched.sort(key=lambda e: e.started_at, reverse=True)
            return [copy.deepcopy(e) for e in matched[:limit]]

    def create_node_execution(self, node_execution: NodeExecution) -> None:
        with self._lock:
            if node_execution.id in self._node_executions:
                raise DomainError(f"NodeExecution already exists: {node_execution.id}")
            self._node_executions[node_execution.id] = copy.deepcopy(node_execution)

    def update_node_execution(self, node_execution: NodeExecution) -> None:
        with self._lock:
            if node_execution.id not in self._node_executions:
                raise NotFoundError("NodeExecution", node_execution.id)
            self._node_executions[node_execution.id] = copy.deepcopy(node_execution)

    def list_node_executions(self, execution_id: str) -> list[NodeExecution]:
        with self._lock:
            # 字典保持插入顺序，started_at 相同时按创建顺序
            matched = [
                ne for ne in self._node_executions.values() if ne.execution_id == execution_id
            ]
            matched.sort(key=lambda ne: ne.started_at)
            return [copy.deepcopy(ne) for ne in matched]
