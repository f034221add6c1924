"""WorkflowEngine - 图遍历执行引擎（Domain）

遍历语义：
- 从开始节点出发深度优先遍历，每次访问创建一条 NodeExecution
- end 节点：分支结果为 end 节点的输出
- condition 节点：只沿 sourceHandle 等于 "true"/"false"（按 conditionResult）的边继续，
  找不到匹配边时分支静默结束
- 其他节点：按边的声明顺序依次访问所有下游节点，
  各分支结果按浅合并（后者覆盖前者）汇总；没有到达 end 的分支不贡献结果
- 任一节点失败：整个执行失败，不重试
- 取消：每个节点执行前检查取消令牌，已取消时停止遍历且不覆盖 cancelled 状态
- 仓储调用通过 asyncio.to_thread 在线程池中执行，不阻塞事件循环；
  终态写入与外部取消共用同一把锁，保证“读取状态 → 写入”不交错

实现说明：
- 用显式帧栈代替递归，深度不受解释器递归限制，访问顺序与递归形式一致
- 环不会被阻止（校验只给 warning）；max_node_visits > 0 时作为访问次数上限
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from flowrun.domain.entities.edge import Edge
from flowrun.domain.entities.execution import Execution
from flowrun.domain.entities.graph import Graph
from flowrun.domain.entities.node import Node
from flowrun.domain.entities.node_execution import NodeExecution
from flowrun.domain.exceptions import DomainError, WorkflowCancelledError
from flowrun.domain.ports.execution_repository import ExecutionRepository
from flowrun.domain.ports.node_executor import NodeExecutionContext, NodeExecutorRegistry
from flowrun.domain.value_objects.cancellation import CancellationToken
from flowrun.domain.value_objects.node_type import NodeType

logger = logging.getLogger(__name__)

TRUE_HANDLE = "true"
FALSE_HANDLE = "false"


@dataclass
class _Frame:
    """一次节点访问的遍历状态

    pending 为 None 表示节点尚未执行；执行后保存待访问的下游节点 ID。
    """

    node: Node
    inputs: dict[str, Any]
    output: dict[str, Any] = field(default_factory=dict)
    pending: deque[str] | None = None
    results: list[dict[str, Any]] = field(default_factory=list)


def merge_branch_results(results: list[dict[str, Any] | None]) -> dict[str, Any] | None:
    """浅合并扇出分支结果（后者覆盖前者），全部为空时返回 None"""
    merged: dict[str, Any] | None = None
    for result in results:
        if result is None:
            continue
        merged = {**(merged or {}), **result}
    return merged


def select_next_targets(node: Node, output: dict[str, Any], edges: list[Edge]) -> list[str]:
    """计算节点执行后要访问的下游节点 ID（保持边的声明顺序）"""
    if node.type is NodeType.END:
        return []

    if node.type is NodeType.CONDITION:
        handle = TRUE_HANDLE if output.get("conditionResult") else FALSE_HANDLE
        chosen = next((edge for edge in edges if edge.source_handle == handle), None)
        return [chosen.target] if chosen is not None else []

    return [edge.target for edge in edges]


class WorkflowEngine:
    """工作流执行引擎

    参数：
        executor_registry: 节点执行器注册表（显式注入）
        repository: 执行记录仓储
        max_node_visits: 单次执行允许的最大节点访问次数（0 表示不限制）
    """

    def __init__(
        self,
        *,
        executor_registry: NodeExecutorRegistry,
        repository: ExecutionRepository,
        max_node_visits: int = 0,
    ) -> None:
        self._executor_registry = executor_registry
        self._repository = repository
        self._max_node_visits = max(0, max_node_visits)
        self._transition_lock = asyncio.Lock()

    async def run(
        self,
        execution: Execution,
        graph: Graph,
        *,
        start_node_id: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> Execution:
        """执行已创建（RUNNING）的 Execution，直到终态

        返回：
            终态的 Execution（从仓储重新读取）

        说明：
            节点错误不会向外抛出，而是记录为 failed 状态
        """
        token = cancellation or CancellationToken(execution.id)
        context = NodeExecutionContext(
            execution_id=execution.id, graph_id=graph.id, cancellation=token
        )
        logger.info(
            "workflow_execution_started",
            extra={"execution_id": execution.id, "graph_id": graph.id},
        )

        try:
            start_node = self._resolve_start_node(graph, start_node_id)
            output = await self._traverse(graph, start_node, dict(execution.input), context)
        except WorkflowCancelledError:
            logger.info("workflow_execution_cancelled", extra={"execution_id": execution.id})
            return await self._finalize(execution.id, cancelled=True)
        except Exception as exc:  # noqa: BLE001 - 执行错误统一记录到 Execution
            message = str(exc) or exc.__class__.__name__
            logger.warning(
                "workflow_execution_failed",
                extra={"execution_id": execution.id, "graph_id": graph.id, "error": message},
            )
            return await self._finalize(execution.id, error=message)

        logger.info(
            "workflow_execution_completed",
            extra={"execution_id": execution.id, "has_output": output is not None},
        )
        return await self._finalize(execution.id, output=output)

    async def mark_cancelled(self, execution_id: str) -> bool:
        """把 running 的执行翻转为 cancelled

        返回：
            True 表示状态已翻转；执行已是终态时返回 False

        抛出：
            NotFoundError: 执行不存在
        """
        async with self._transition_lock:
            current = await asyncio.to_thread(self._repository.get_execution, execution_id)
            if current.status.is_terminal():
                return False
            current.cancel()
            await asyncio.to_thread(self._repository.update_execution, current)
            return True

    def _resolve_start_node(self, graph: Graph, start_node_id: str | None) -> Node:
        if start_node_id:
            node = graph.get_node(start_node_id)
            if node is None:
                raise DomainError(f"Start node not found: {start_node_id}")
            if node.type is not NodeType.START:
                raise DomainError(f"Node is not a start node: {start_node_id}")
            return node

        starts = graph.nodes_of_type(NodeType.START)
        if not starts:
            raise DomainError("Workflow has no start node")
        return starts[0]

    async def _traverse(
        self,
        graph: Graph,
        start_node: Node,
        initial_input: dict[str, Any],
        context: NodeExecutionContext,
    ) -> dict[str, Any] | None:
        adjacency = graph.outgoing_edges()
        nodes = graph.node_map()
        visits = 0
        final: list[dict[str, Any] | None] = []

        stack: list[_Frame] = [_Frame(node=start_node, inputs=initial_input)]

        def deliver(result: dict[str, Any] | None) -> None:
            if stack:
                if result is not None:
                    stack[-1].results.append(result)
            else:
                final.append(result)

        while stack:
            frame = stack[-1]

            if frame.pending is None:
                visits += 1
                if self._max_node_visits and visits > self._max_node_visits:
                    raise DomainError(
                        f"Execution exceeded max node visits ({self._max_node_visits})"
                    )

                context.cancellation.raise_if_cancelled()
                frame.output = await self._execute_node(frame.node, frame.inputs, context)

                if frame.node.type is NodeType.END:
                    stack.pop()
                    deliver(frame.output)
                    continue

                frame.pending = deque(
                    select_next_targets(frame.node, frame.output, adjacency.get(frame.node.id, []))
                )

            if frame.pending:
                target_id = frame.pending.popleft()
                target = nodes.get(target_id)
                if target is None:
                    logger.warning(
                        "edge_target_missing",
                        extra={"node_id": frame.node.id, "target_id": target_id},
                    )
                    continue
                stack.append(_Frame(node=target, inputs=frame.output))
                continue

            stack.pop()
            deliver(merge_branch_results(frame.results))

        return final[0] if final else None

    async def _execute_node(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        node_execution = NodeExecution.create(context.execution_id, node.id, inputs)
        await asyncio.to_thread(self._repository.create_node_execution, node_execution)

        try:
            executor = self._executor_registry.get(node.type)
            if executor is None:
                raise DomainError(f"Missing executor for node_type={node.type.value}")
            output = await executor.execute(node, dict(inputs), context)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            node_execution.fail(message)
            await asyncio.to_thread(self._repository.update_node_execution, node_execution)
            logger.warning(
                "node_execution_failed",
                extra={
                    "execution_id": context.execution_id,
                    "node_id": node.id,
                    "node_type": node.type.value,
                    "error": message,
                },
            )
            raise

        node_execution.complete(output)
        await asyncio.to_thread(self._repository.update_node_execution, node_execution)
        return output

    async def _finalize(
        self,
        execution_id: str,
        *,
        output: dict[str, Any] | None = None,
        error: str | None = None,
        cancelled: bool = False,
    ) -> Execution:
        """写入终态；已是终态（被外部取消）时保持不变"""
        async with self._transition_lock:
            current = await asyncio.to_thread(self._repository.get_execution, execution_id)
            if current.status.is_terminal():
                logger.info(
                    "workflow_execution_already_terminal",
                    extra={"execution_id": execution_id, "status": current.status.value},
                )
                return current

            if cancelled:
                current.cancel()
            elif error is not None:
                current.fail(error)
            else:
                current.complete(output)
            await asyncio.to_thread(self._repository.update_execution, current)
            return current


__all__ = ["WorkflowEngine", "merge_branch_results", "select_next_targets"]
