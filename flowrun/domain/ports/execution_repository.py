"""ExecutionRepository Port - 执行记录存储接口

引擎是某个 execution_id 的唯一写入者（cancel 的状态翻转除外），
实现不需要加锁。

实现：
- InMemoryExecutionRepository（infrastructure/adapters）
- SQLAlchemyExecutionRepository（infrastructure/database/repositories）
"""

from typing import Protocol

from flowrun.domain.entities.execution import Execution
from flowrun.domain.entities.node_execution import NodeExecution


class ExecutionRepository(Protocol):
    """执行记录仓储接口"""

    def create_execution(self, execution: Execution) -> None:
        """新增执行记录（id 必须唯一）"""
        ...

    def update_execution(self, execution: Execution) -> None:
        """更新执行记录（必须已存在，否则抛 NotFoundError）"""
        ...

    def get_execution(self, execution_id: str) -> Execution:
        """按 ID 获取执行记录（不存在抛 NotFoundError）"""
        ...

    def list_executions(self, graph_id: str, limit: int = 50) -> list[Execution]:
        """列出工作流的执行记录，按开始时间倒序"""
        ...

    def create_node_execution(self, node_execution: NodeExecution) -> None:
        ...

    def update_node_execution(self, node_execution: NodeExecution) -> None:
        ...

    def list_node_executions(self, execution_id: str) -> list[NodeExecution]:
        """列出某次执行的节点记录，按开始时间正序"""
        ...
