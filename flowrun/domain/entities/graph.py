"""Graph 实体 - 工作流图（节点 + 有向边）

业务定义：
- Graph 由调用方（编辑器或 API）提供，单次执行期间不可变
- 节点 ID 必须唯一；边的引用完整性由 GraphValidator 报告
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flowrun.domain.entities.edge import Edge
from flowrun.domain.entities.node import Node
from flowrun.domain.exceptions import DomainError
from flowrun.domain.value_objects.node_type import NodeType


@dataclass(frozen=True)
class Graph:
    """Graph 实体

    属性说明：
    - id: 工作流 ID（执行记录通过它关联）
    - nodes: 节点（保持声明顺序）
    - edges: 边（保持声明顺序，扇出按此顺序依次执行）
    """

    id: str
    nodes: tuple[Node, ...] = field(default_factory=tuple)
    edges: tuple[Edge, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                raise DomainError(f"节点 ID 重复: {node.id}")
            seen.add(node.id)

    @classmethod
    def create(cls, id: str, nodes: list[Node], edges: list[Edge]) -> Graph:
        if not id or not id.strip():
            raise DomainError("graph id 不能为空")
        return cls(id=id.strip(), nodes=tuple(nodes), edges=tuple(edges))

    def get_node(self, node_id: str) -> Node | None:
        return self.node_map().get(node_id)

    def node_map(self) -> dict[str, Node]:
        return {node.id: node for node in self.nodes}

    def nodes_of_type(self, node_type: NodeType) -> list[Node]:
        return [node for node in self.nodes if node.type is node_type]

    def outgoing_edges(self) -> dict[str, list[Edge]]:
        """邻接表：节点 ID -> 出边列表（声明顺序）

        源节点不存在的边不会出现在结果中。
        """
        adjacency: dict[str, list[Edge]] = {node.id: [] for node in self.nodes}
        for edge in self.edges:
            if edge.source in adjacency:
                adjacency[edge.source].append(edge)
        return adjacency
