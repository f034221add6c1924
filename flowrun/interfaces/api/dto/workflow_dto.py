"""Workflow DTO（Data Transfer Objects）

定义工作流图的请求模型：
- 编辑器（React Flow）以 camelCase 保存边句柄（sourceHandle / targetHandle）
- 节点配置放在 data 字段（兼容编辑器），也接受 config
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from flowrun.domain.entities.edge import Edge
from flowrun.domain.entities.graph import Graph
from flowrun.domain.entities.node import Node
from flowrun.domain.value_objects.position import Position


class PositionDTO(BaseModel):
    """节点位置（允许负坐标）"""

    x: float = Field(default=0.0, description="横坐标")
    y: float = Field(default=0.0, description="纵坐标")


class NodeDTO(BaseModel):
    """Node DTO

    字段：
    - id: 节点 ID
    - type: 节点类型（start/end/llm/condition/http/code/parameter/template/knowledge_retrieval/delay/comment）
    - title: 节点标题（可选）
    - data: 节点配置（编辑器格式）
    - config: 节点配置（data 的别名，两者都给出时以 config 为准）
    - position: 节点位置（可选）
    """

    id: str = Field(..., min_length=1)
    type: str
    title: str = Field(default="", description="节点标题（可选）")
    data: dict[str, Any] = Field(default_factory=dict, description="节点配置")
    config: dict[str, Any] | None = Field(default=None, description="节点配置（别名）")
    position: PositionDTO | None = None

    def to_entity(self) -> Node:
        """转换为 Domain 实体

        抛出：
            DomainError: 节点类型未知
        """
        position = self.position or PositionDTO()
        return Node.create(
            self.type,
            self.title,
            self.config if self.config is not None else self.data,
            id=self.id,
            position=Position(x=position.x, y=position.y),
        )


class EdgeDTO(BaseModel):
    """Edge DTO（sourceHandle 用于条件分支："true" / "false"）"""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    source: str
    target: str
    source_handle: str | None = Field(default=None, alias="sourceHandle")
    target_handle: str | None = Field(default=None, alias="targetHandle")

    def to_entity(self) -> Edge:
        return Edge.create(
            self.source,
            self.target,
            self.source_handle,
            self.target_handle,
            id=self.id,
        )


class GraphDTO(BaseModel):
    """工作流图（nodes + edges）"""

    id: str | None = Field(default=None, description="工作流 ID（执行时以路径参数为准）")
    nodes: list[NodeDTO] = Field(default_factory=list)
    edges: list[EdgeDTO] = Field(default_factory=list)

    def to_domain(self, graph_id: str | None = None) -> Graph:
        """转换为 Domain Graph

        参数：
            graph_id: 覆盖 DTO 中的 id（路由路径参数）

        抛出：
            DomainError: 节点类型未知 / 节点 ID 重复 / 图 ID 为空
        """
        return Graph.create(
            graph_id or self.id or "draft",
            [node.to_entity() for node in self.nodes],
            [edge.to_entity() for edge in self.edges],
        )


class ExecuteWorkflowRequest(BaseModel):
    """执行工作流请求

    示例：
        {"graph": {"nodes": [...], "edges": [...]}, "input": {"name": "Ada"}}
    """

    model_config = ConfigDict(populate_by_name=True)

    graph: GraphDTO
    input: dict[str, Any] = Field(default_factory=dict, description="初始输入")
    start_node_id: str | None = Field(default=None, alias="startNodeId")


class ExecuteWorkflowResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    execution_id: str = Field(..., alias="executionId")
