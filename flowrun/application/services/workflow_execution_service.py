"""WorkflowExecutionService - 工作流执行入口（Application 层）

职责：
- validate：同步校验图结构
- execute：校验通过后创建 Execution，并在后台任务中运行引擎，立即返回 execution_id
- cancel：把 running 的执行翻转为 cancelled，并通知引擎停止
- get_execution / list_executions：查询执行状态（调用方轮询）

仓储调用通过 asyncio.to_thread 执行（数据库仓储为同步实现）。

后台任务由本服务持有强引用，任务结束后自动释放。
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from flowrun.domain.entities.execution import Execution
from flowrun.domain.entities.graph import Graph
from flowrun.domain.entities.node_execution import NodeExecution
from flowrun.domain.exceptions import WorkflowValidationError
from flowrun.domain.ports.execution_repository import ExecutionRepository
from flowrun.domain.services.graph_validator import GraphValidator
from flowrun.domain.services.workflow_engine import WorkflowEngine
from flowrun.domain.value_objects.cancellation import CancellationToken
from flowrun.domain.value_objects.validation import ValidationResult

logger = logging.getLogger(__name__)


@dataclass
class ExecutionDetail:
    """执行记录及其节点记录（按开始时间排序）"""

    execution: Execution
    node_executions: list[NodeExecution] = field(default_factory=list)


class WorkflowExecutionService:
    """工作流执行服务

    参数：
        engine: 执行引擎
        repository: 执行记录仓储（与引擎共用）
        validator: 图校验器（默认 GraphValidator()）
    """

    def __init__(
        self,
        *,
        engine: WorkflowEngine,
        repository: ExecutionRepository,
        validator: GraphValidator | None = None,
    ) -> None:
        self._engine = engine
        self._repository = repository
        self._validator = validator or GraphValidator()
        self._tasks: dict[str, asyncio.Task[Execution]] = {}
        self._tokens: dict[str, CancellationToken] = {}

    def validate(self, graph: Graph) -> ValidationResult:
        return self._validator.validate(graph)

    async def execute(
        self,
        graph: Graph,
        initial_input: dict[str, Any] | None = None,
        start_node_id: str | None = None,
    ) -> str:
        """启动一次执行

        参数：
            graph: 工作流图
            initial_input: 初始输入（开始节点的上下文）
            start_node_id: 指定入口开始节点（多个开始节点时使用）

        返回：
            execution_id（执行在后台继续）

        抛出：
            WorkflowValidationError: 图校验失败（不会创建任何执行记录）
        """
        result = self.validate(graph)
        if not result.valid:
            raise WorkflowValidationError(result)

        execution = Execution.create(graph.id, initial_input)
        await asyncio.to_thread(self._repository.create_execution, execution)

        token = CancellationToken(execution.id)
        self._tokens[execution.id] = token
        task = asyncio.create_task(
            self._engine.run(
                execution, graph, start_node_id=start_node_id, cancellation=token
            ),
            name=f"workflow-execution-{execution.id}",
        )
        self._tasks[execution.id] = task
        task.add_done_callback(partial(self._release, execution.id))

        logger.info(
            "workflow_execution_scheduled",
            extra={"execution_id": execution.id, "graph_id": graph.id},
        )
        return execution.id

    async def cancel(self, execution_id: str) -> bool:
        """取消执行

        返回：
            True 表示已从 running 翻转为 cancelled；执行已结束时返回 False

        抛出：
            NotFoundError: 执行不存在
        """
        if not await self._engine.mark_cancelled(execution_id):
            return False

        token = self._tokens.get(execution_id)
        if token is not None:
            token.cancel()

        logger.info("workflow_execution_cancel_requested", extra={"execution_id": execution_id})
        return True

    async def get_execution(self, execution_id: str) -> ExecutionDetail:
        execution = await asyncio.to_thread(self._repository.get_execution, execution_id)
        node_executions = await asyncio.to_thread(
            self._repository.list_node_executions, execution_id
        )
        return ExecutionDetail(execution=execution, node_executions=node_executions)

    async def list_executions(self, graph_id: str, limit: int = 50) -> list[Execution]:
        return await asyncio.to_thread(self._repository.list_executions, graph_id, limit)

    async def wait_for(self, execution_id: str) -> Execution:
        """等待后台执行结束并返回终态记录（执行已结束时直接返回）"""
        task = self._tasks.get(execution_id)
        if task is not None:
            await asyncio.shield(task)
        return await asyncio.to_thread(self._repository.get_execution, execution_id)

    async def shutdown(self) -> None:
        """取消仍在运行的后台任务（应用关闭时调用）"""
        for execution_id in list(self._tasks):
            token = self._tokens.get(execution_id)
            if token is not None:
                token.cancel()
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _release(self, execution_id: str, task: asyncio.Task[Execution]) -> None:
        self._tasks.pop(execution_id, None)
        self._tokens.pop(execution_id, None)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "workflow_execution_task_crashed",
                exc_info=task.exception(),
                extra={"execution_id": execution_id},
            )
