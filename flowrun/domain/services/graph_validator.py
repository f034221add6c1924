"""GraphValidator - 执行前的图结构校验（Domain Service）

校验项（按顺序执行，问题顺序跟随节点/边的声明顺序）：
1. 开始节点数量：0 → error；>1 → warning
2. 结束节点数量：0 → warning（可以执行，但不会产生最终输出）
3. 节点配置：llm/condition/http/code/template/knowledge_retrieval/delay 的必填项
4. 边引用完整性：source/target 不存在 → 每条边各一个 error
5. 条件节点出边少于 2 条 → warning
6. 孤立节点（非 start/end 且没有任何边） → warning
7. 环检测：DFS + 递归栈，只报告第一个环（一个全局 warning）

校验是纯函数：同一个图多次校验结果完全相同。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from flowrun.domain.entities.graph import Graph
from flowrun.domain.entities.node import Node
from flowrun.domain.value_objects.node_config import (
    CodeConfig,
    ConditionConfig,
    DelayConfig,
    HttpConfig,
    KnowledgeRetrievalConfig,
    LlmConfig,
    TemplateConfig,
)
from flowrun.domain.value_objects.node_type import NodeType
from flowrun.domain.value_objects.validation import Severity, ValidationIssue, ValidationResult

logger = logging.getLogger(__name__)

CYCLE_WARNING = "Workflow contains a cycle, execution may not terminate"


def _error(message: str, *, node_id: str | None = None, edge_id: str | None = None) -> ValidationIssue:
    return ValidationIssue(Severity.ERROR, message, node_id=node_id, edge_id=edge_id)


def _warning(message: str, *, node_id: str | None = None, edge_id: str | None = None) -> ValidationIssue:
    return ValidationIssue(Severity.WARNING, message, node_id=node_id, edge_id=edge_id)


def _blank(value: str | None) -> bool:
    return not value or not value.strip()


@dataclass(frozen=True, slots=True)
class GraphValidator:
    """校验工作流图是否可以执行

    示例：
        result = GraphValidator().validate(graph)
        if not result.valid:
            raise WorkflowValidationError(result)
    """

    def validate(self, graph: Graph) -> ValidationResult:
        issues: list[ValidationIssue] = []

        self._validate_start_nodes(graph, issues)
        self._validate_end_nodes(graph, issues)
        for node in graph.nodes:
            issues.extend(self._validate_node_config(node))
        self._validate_edge_references(graph, issues)
        self._validate_condition_branches(graph, issues)
        self._validate_orphans(graph, issues)
        if self._has_cycle(graph):
            issues.append(_warning(CYCLE_WARNING))

        result = ValidationResult(
            errors=tuple(i for i in issues if i.severity is Severity.ERROR),
            warnings=tuple(i for i in issues if i.severity is Severity.WARNING),
        )
        logger.debug(
            "workflow_validation",
            extra={
                "graph_id": graph.id,
                "error_count": len(result.errors),
                "warning_count": len(result.warnings),
            },
        )
        return result

    def _validate_start_nodes(self, graph: Graph, issues: list[ValidationIssue]) -> None:
        count = len(graph.nodes_of_type(NodeType.START))
        if count == 0:
            issues.append(_error("Workflow must have at least one start node"))
        elif count > 1:
            issues.append(_warning("Workflow has multiple start nodes, keep only one if possible"))

    def _validate_end_nodes(self, graph: Graph, issues: list[ValidationIssue]) -> None:
        if not graph.nodes_of_type(NodeType.END):
            issues.append(_warning("Workflow has no end node, no output will be produced"))

    def _validate_node_config(self, node: Node) -> Iterable[ValidationIssue]:
        config = node.config
        label = node.title or node.id

        if isinstance(config, LlmConfig):
            if _blank(config.model):
                yield _error(f'LLM node "{label}" has no model configured', node_id=node.id)
            if _blank(config.system_prompt) and _blank(config.user_prompt):
                yield _warning(f'LLM node "{label}" has no prompt configured', node_id=node.id)

        elif isinstance(config, ConditionConfig):
            if _blank(config.condition):
                yield _error(
                    f'Condition node "{label}" has no condition expression', node_id=node.id
                )

        elif isinstance(config, HttpConfig):
            if _blank(config.url):
                yield _error(f'HTTP node "{label}" has no URL configured', node_id=node.id)

        elif isinstance(config, CodeConfig):
            if _blank(config.code):
                yield _error(f'Code node "{label}" has no code', node_id=node.id)

        elif isinstance(config, TemplateConfig):
            if _blank(config.template):
                yield _error(f'Template node "{label}" has no template', node_id=node.id)

        elif isinstance(config, KnowledgeRetrievalConfig):
            if _blank(config.knowledge_base_id):
                yield _error(
                    f'Knowledge retrieval node "{label}" has no knowledge base', node_id=node.id
                )
            if _blank(config.query):
                yield _error(f'Knowledge retrieval node "{label}" has no query', node_id=node.id)

        elif isinstance(config, DelayConfig):
            if config.delay_ms < 0:
                yield _error(f'Delay node "{label}" has a negative delay', node_id=node.id)

    def _validate_edge_references(self, graph: Graph, issues: list[ValidationIssue]) -> None:
        node_ids = {node.id for node in graph.nodes}
        for edge in graph.edges:
            if edge.source not in node_ids:
                issues.append(
                    _error(f"Edge references missing source node: {edge.source}", edge_id=edge.id)
                )
            if edge.target not in node_ids:
                issues.append(
                    _error(f"Edge references missing target node: {edge.target}", edge_id=edge.id)
                )

    def _validate_condition_branches(self, graph: Graph, issues: list[ValidationIssue]) -> None:
        adjacency = graph.outgoing_edges()
        for node in graph.nodes_of_type(NodeType.CONDITION):
            if len(adjacency.get(node.id, ())) < 2:
                issues.append(
                    _warning(
                        f'Condition node "{node.title or node.id}" should have at least two '
                        "outgoing edges (true/false)",
                        node_id=node.id,
                    )
                )

    def _validate_orphans(self, graph: Graph, issues: list[ValidationIssue]) -> None:
        connected = {edge.source for edge in graph.edges} | {edge.target for edge in graph.edges}
        for node in graph.nodes:
            if node.type in (NodeType.START, NodeType.END):
                continue
            if node.id not in connected:
                issues.append(
                    _warning(
                        f'Node "{node.title or node.id}" is not connected to the workflow',
                        node_id=node.id,
                    )
                )

    def _has_cycle(self, graph: Graph) -> bool:
        """DFS + 递归栈检测环（显式栈实现，遇到第一条回边即返回）"""
        targets = {
            source: [edge.target for edge in edges]
            for source, edges in graph.outgoing_edges().items()
        }
        visited: set[str] = set()

        for root in (node.id for node in graph.nodes):
            if root in visited:
                continue
            on_stack = {root}
            visited.add(root)
            stack = [(root, iter(targets.get(root, ())))]
            while stack:
                node_id, children = stack[-1]
                child = next(children, None)
                if child is None:
                    stack.pop()
                    on_stack.discard(node_id)
                    continue
                if child in on_stack:
                    return True
                if child not in visited:
                    visited.add(child)
                    on_stack.add(child)
                    stack.append((child, iter(targets.get(child, ()))))
        return False


def validate_graph(graph: Graph) -> ValidationResult:
    """便捷函数：GraphValidator().validate(graph)"""
    return GraphValidator().validate(graph)


__all__ = ["CYCLE_WARNING", "GraphValidator", "validate_graph"]
