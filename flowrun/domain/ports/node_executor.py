"""NodeExecutor Port（节点执行器端口）

Domain 层端口：定义节点执行器接口与注册表。

约定（黑板模式）：
- inputs 是上游累积的上下文字典
- 执行器返回 inputs 合并自身产出后的新字典（通常放在 output 键下）
- 执行器不得原地修改 inputs
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, TypeVar

from flowrun.domain.entities.node import Node
from flowrun.domain.exceptions import NodeExecutionError
from flowrun.domain.value_objects.cancellation import CancellationToken
from flowrun.domain.value_objects.node_type import NodeType

ConfigT = TypeVar("ConfigT")


@dataclass(frozen=True)
class NodeExecutionContext:
    """执行器可见的运行时信息

    属性说明：
    - execution_id: 当前执行 ID
    - graph_id: 工作流 ID
    - cancellation: 取消令牌（长时间等待的执行器应监听）
    """

    execution_id: str
    graph_id: str
    cancellation: CancellationToken = field(default_factory=CancellationToken)


class NodeExecutor(ABC):
    """节点执行器接口

    每种节点类型都有对应的执行器实现
    """

    @abstractmethod
    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        """执行节点

        参数：
            node: 节点实体
            inputs: 上游累积的上下文
            context: 执行上下文（执行 ID、取消令牌）

        返回：
            合并了本节点产出的新上下文

        异常：
            NodeExecutionError: 执行失败
        """
        pass

    @staticmethod
    def require_config(node: Node, config_type: type[ConfigT]) -> ConfigT:
        """取出节点配置，类型与执行器不匹配时抛出 NodeExecutionError"""
        config = node.config
        if not isinstance(config, config_type):
            raise NodeExecutionError(
                f"Node {node.id} ({node.type.value}) has no {config_type.__name__}",
                node_id=node.id,
            )
        return config


class NodeExecutorRegistry:
    """节点执行器注册表

    显式构造并注入 WorkflowEngine，不使用模块级全局表。
    """

    def __init__(self) -> None:
        self._executors: dict[NodeType, NodeExecutor] = {}

    def register(self, node_type: NodeType | str, executor: NodeExecutor) -> None:
        """注册执行器（同类型重复注册时覆盖）"""
        self._executors[NodeType(node_type)] = executor

    def get(self, node_type: NodeType | str) -> NodeExecutor | None:
        return self._executors.get(NodeType(node_type))

