"""Graph 模型单元测试

测试范围：
1. Node.create：类型解析、camelCase 配置解析、标题默认值
2. Edge.create：空 ID 拒绝、空句柄归一化
3. Graph：节点 ID 唯一、邻接表
4. Execution / NodeExecution：状态机
"""

from __future__ import annotations

import pytest

from flowrun.domain.entities.edge import Edge
from flowrun.domain.entities.execution import Execution
from flowrun.domain.entities.graph import Graph
from flowrun.domain.entities.node import Node
from flowrun.domain.entities.node_execution import NodeExecution
from flowrun.domain.exceptions import DomainError
from flowrun.domain.value_objects.execution_status import ExecutionStatus, NodeExecutionStatus
from flowrun.domain.value_objects.node_config import (
    HttpConfig,
    KnowledgeRetrievalConfig,
    LlmConfig,
    ParameterConfig,
    SubWorkflowConfig,
)
from flowrun.domain.value_objects.node_type import NodeType


class TestNodeCreate:
    def test_parses_camel_case_llm_config(self) -> None:
        """测试：LLM 配置从编辑器的 camelCase 字段解析

        Given: systemPrompt / userPrompt / maxTokens
        When: Node.create
        Then: config 为 LlmConfig 且字段正确
        """
        node = Node.create(
            "llm",
            "Summarize",
            {
                "model": "gpt-4o-mini",
                "systemPrompt": "You are helpful",
                "userPrompt": "Hi {{input.name}}",
                "temperature": 0.2,
                "maxTokens": "256",
            },
            id="llm_1",
        )

        assert node.type is NodeType.LLM
        assert isinstance(node.config, LlmConfig)
        assert node.config.system_prompt == "You are helpful"
        assert node.config.user_prompt == "Hi {{input.name}}"
        assert node.config.temperature == 0.2
        assert node.config.max_tokens == 256

    def test_sub_workflow_config_accepts_editor_fields(self) -> None:
        node = Node.create("sub_workflow", config={"workflowId": "wf_child", "mode": "EMBED"})

        assert node.type is NodeType.SUB_WORKFLOW
        assert isinstance(node.config, SubWorkflowConfig)
        assert node.config.workflow_id == "wf_child"
        assert node.config.mode == "embed"

    def test_unknown_type_raises_domain_error(self) -> None:
        with pytest.raises(DomainError, match="未知的节点类型"):
            Node.create("spreadsheet")

    def test_title_defaults_to_type_name(self) -> None:
        node = Node.create(NodeType.TEMPLATE, "  ", {"template": "x"})

        assert node.title == "template"
        assert node.id.startswith("node_")

    def test_http_config_accepts_dict_body_and_lowercase_method(self) -> None:
        node = Node.create("http", config={"url": "https://a.test", "method": "post", "body": {"a": 1}})

        assert isinstance(node.config, HttpConfig)
        assert node.config.method == "POST"
        assert node.config.body == '{"a": 1}'

    def test_invalid_numeric_fields_are_treated_as_unset(self) -> None:
        node = Node.create(
            "knowledge_retrieval",
            config={"knowledgeBaseId": "kb", "query": "q", "topK": "many", "scoreThreshold": "x"},
        )

        assert isinstance(node.config, KnowledgeRetrievalConfig)
        assert node.config.top_k is None
        assert node.config.score_threshold is None

    def test_parameter_config_tracks_explicit_null_default(self) -> None:
        node = Node.create(
            "parameter",
            config={
                "parameters": [
                    {"name": "a", "type": "number", "defaultValue": None},
                    {"name": "b"},
                ]
            },
        )

        assert isinstance(node.config, ParameterConfig)
        first, second = node.config.parameters
        assert first.has_default is True
        assert first.default_value is None
        assert second.has_default is False
        assert second.type == "string"


class TestEdgeAndGraph:
    def test_edge_rejects_empty_source(self) -> None:
        with pytest.raises(DomainError, match="source"):
            Edge.create("", "b")

    def test_edge_normalizes_empty_handle(self) -> None:
        edge = Edge.create("a", "b", "")

        assert edge.source_handle is None

    def test_graph_rejects_duplicate_node_ids(self) -> None:
        node = Node.create("start", id="n1")

        with pytest.raises(DomainError, match="节点 ID 重复"):
            Graph.create("g", [node, Node.create("end", id="n1")], [])

    def test_outgoing_edges_keeps_declaration_order_and_skips_unknown_sources(self) -> None:
        """测试：邻接表按声明顺序排列，源节点不存在的边被忽略

        Given: start 有两条出边，另有一条 ghost → end 的边
        When: outgoing_edges()
        Then: start 的出边顺序为 e1, e2，ghost 不在结果中
        """
        graph = Graph.create(
            "g",
            [Node.create("start", id="s"), Node.create("end", id="a"), Node.create("end", id="b")],
            [
                Edge.create("s", "b", id="e1"),
                Edge.create("s", "a", id="e2"),
                Edge.create("ghost", "a", id="e3"),
            ],
        )

        adjacency = graph.outgoing_edges()

        assert [edge.id for edge in adjacency["s"]] == ["e1", "e2"]
        assert "ghost" not in adjacency
        assert adjacency["a"] == []


class TestExecutionStateMachine:
    def test_create_starts_running(self) -> None:
        execution = Execution.create("g1", {"x": 1})

        assert execution.status is ExecutionStatus.RUNNING
        assert execution.input == {"x": 1}
        assert execution.completed_at is None

    def test_complete_sets_output_and_timestamp(self) -> None:
        execution = Execution.create("g1")

        execution.complete({"result": True})

        assert execution.status is ExecutionStatus.COMPLETED
        assert execution.output == {"result": True}
        assert execution.completed_at is not None

    def test_terminal_status_cannot_change(self) -> None:
        """测试：终态不可再变

        Given: 已取消的执行
        When: complete()
        Then: DomainError，状态保持 cancelled
        """
        execution = Execution.create("g1")
        execution.cancel()

        with pytest.raises(DomainError):
            execution.complete({})
        assert execution.status is ExecutionStatus.CANCELLED

    def test_blank_graph_id_rejected(self) -> None:
        with pytest.raises(DomainError):
            Execution.create("  ")

    def test_node_execution_fail(self) -> None:
        record = NodeExecution.create("exec_1", "n1", {"a": 1})

        record.fail("boom")

        assert record.status is NodeExecutionStatus.FAILED
        assert record.error == "boom"
        with pytest.raises(DomainError):
            record.complete({})
