"""Base Executor（基础执行器）

Infrastructure 层：实现基础节点执行器

包括：
- StartExecutor: 开始节点（透传）
- EndExecutor: 结束节点（透传，引擎在此结束分支）
- CommentExecutor: 注释节点（透传）
- SubWorkflowExecutor: 子工作流节点（透传）
- DelayExecutor: 延时节点（可取消的等待后透传）
"""

import logging
from typing import Any

from flowrun.domain.entities.node import Node
from flowrun.domain.ports.node_executor import NodeExecutionContext, NodeExecutor
from flowrun.domain.value_objects.node_config import DelayConfig, SubWorkflowConfig

logger = logging.getLogger(__name__)


class StartExecutor(NodeExecutor):
    """Start 节点执行器"""

    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        return dict(inputs)


class EndExecutor(NodeExecutor):
    """End 节点执行器

    End 节点的输出即所在分支的结果
    """

    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        return dict(inputs)


class CommentExecutor(NodeExecutor):
    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        return dict(inputs)


class DelayExecutor(NodeExecutor):
    """Delay 节点执行器

    配置参数：
        delayMs: 等待毫秒数（取消令牌被设置时立即结束并抛出 WorkflowCancelledError）
    """

    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        config = self.require_config(node, DelayConfig)

        await context.cancellation.sleep(max(config.delay_ms, 0) / 1000)
        return dict(inputs)


class SubWorkflowExecutor(NodeExecutor):
    """SubWorkflow 节点执行器

    引擎不加载被引用的工作流，节点按透传处理，保证编辑器保存的图可以执行。
    """

    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        config = node.config
        workflow_id = config.workflow_id if isinstance(config, SubWorkflowConfig) else ""
        logger.debug(
            "sub_workflow_passthrough",
            extra={
                "execution_id": context.execution_id,
                "node_id": node.id,
                "workflow_id": workflow_id,
            },
        )
        return dict(inputs)
