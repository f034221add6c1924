"""Node 实体 - 工作流中的执行单元

业务定义：
- Node 是工作流中的单个执行步骤
- type 决定执行器，config 是与 type 对应的类型化配置
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from flowrun.domain.exceptions import DomainError
from flowrun.domain.value_objects.node_config import NodeConfig, parse_node_config
from flowrun.domain.value_objects.node_type import NodeType
from flowrun.domain.value_objects.position import Position


@dataclass(frozen=True)
class Node:
    """Node 实体

    属性说明：
    - id: 唯一标识符（node_ 前缀）
    - type: 节点类型
    - title: 节点标题（用户可见，用于校验信息）
    - config: 类型化配置，config.type 始终等于 type
    - position: 画布位置
    """

    id: str
    type: NodeType
    title: str
    config: NodeConfig
    position: Position = field(default_factory=Position)

    def __post_init__(self) -> None:
        if self.config.type is not self.type:
            raise DomainError(
                f"节点 {self.id} 的配置类型 {self.config.type.value} 与节点类型 {self.type.value} 不一致"
            )

    @classmethod
    def create(
        cls,
        type: NodeType | str,
        title: str = "",
        config: Mapping[str, Any] | None = None,
        *,
        id: str | None = None,
        position: Position | None = None,
    ) -> Node:
        """创建 Node 的工厂方法

        参数：
            type: 节点类型（枚举或字符串）
            title: 节点标题，为空时使用类型名
            config: 原始配置字典（编辑器格式）
            id: 节点 ID，为空时自动生成
            position: 节点位置

        抛出：
            DomainError: 节点类型未知
        """
        try:
            node_type = NodeType(type)
        except ValueError as exc:
            raise DomainError(f"未知的节点类型: {type}") from exc

        return cls(
            id=id or f"node_{uuid4().hex[:8]}",
            type=node_type,
            title=(title or "").strip() or node_type.value,
            config=parse_node_config(node_type, config),
            position=position or Position(),
        )
