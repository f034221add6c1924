"""Pytest 配置文件 - 全局 fixtures"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from flowrun.domain.entities.edge import Edge
from flowrun.domain.entities.graph import Graph
from flowrun.domain.entities.node import Node
from flowrun.domain.ports.node_executor import NodeExecutionContext
from flowrun.domain.value_objects.cancellation import CancellationToken
from flowrun.infrastructure.adapters import InMemoryExecutionRepository

GraphBuilder = Callable[..., Graph]


@pytest.fixture
def repository() -> InMemoryExecutionRepository:
    """内存执行记录仓储"""
    return InMemoryExecutionRepository()


@pytest.fixture
def node_context() -> NodeExecutionContext:
    """单个执行器测试使用的执行上下文"""
    return NodeExecutionContext(
        execution_id="exec_test",
        graph_id="graph_test",
        cancellation=CancellationToken("exec_test"),
    )


@pytest.fixture
def build_graph() -> GraphBuilder:
    """用简写构造 Graph

    示例：
        build_graph(
            nodes=[("start", "start", {}), ("t", "template", {"template": "x"})],
            edges=[("start", "t"), ("cond", "a", "true")],
        )
    """

    def _build(
        *,
        nodes: list[tuple[str, str, dict[str, Any]]],
        edges: list[tuple[str, ...]] = (),
        graph_id: str = "graph_1",
    ) -> Graph:
        node_entities = [
            Node.create(node_type, node_id, config, id=node_id)
            for node_id, node_type, config in nodes
        ]
        edge_entities = [
            Edge.create(
                edge[0],
                edge[1],
                edge[2] if len(edge) > 2 else None,
                id=f"e{index}",
            )
            for index, edge in enumerate(edges, start=1)
        ]
        return Graph.create(graph_id, node_entities, edge_entities)

    return _build
