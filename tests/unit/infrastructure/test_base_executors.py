"""基础执行器与执行器注册表单元测试"""

from __future__ import annotations

import asyncio

import pytest

from flowrun.domain.entities.node import Node
from flowrun.domain.exceptions import NodeExecutionError, WorkflowCancelledError
from flowrun.domain.value_objects.node_type import NodeType
from flowrun.infrastructure.adapters import InMemoryKnowledgeSearch, LLMStubAdapter
from flowrun.infrastructure.executors import (
    CodeExecutor,
    DelayExecutor,
    EndExecutor,
    HttpExecutor,
    StartExecutor,
    SubWorkflowExecutor,
    create_executor_registry,
)


class TestPassThroughExecutors:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("node_type", ["start", "end", "comment", "sub_workflow"])
    async def test_returns_copy_of_inputs(self, node_context, node_type) -> None:
        inputs = {"a": 1}
        registry = create_executor_registry(LLMStubAdapter(), InMemoryKnowledgeSearch())

        result = await registry.get(node_type).execute(Node.create(node_type), inputs, node_context)

        assert result == {"a": 1}
        assert result is not inputs


class TestSubWorkflowExecutor:
    @pytest.mark.asyncio
    async def test_passes_inputs_through(self, node_context) -> None:
        """测试：子工作流节点

        Given: 引用 wf_child 的子工作流节点
        When: 执行
        Then: 上下文原样透传（不加载被引用的工作流）
        """
        node = Node.create("sub_workflow", config={"workflowId": "wf_child", "mode": "call"})

        result = await SubWorkflowExecutor().execute(node, {"a": 1}, node_context)

        assert result == {"a": 1}


class TestDelayExecutor:
    @pytest.mark.asyncio
    async def test_waits_then_passes_through(self, node_context) -> None:
        node = Node.create("delay", config={"delayMs": 5})

        result = await DelayExecutor().execute(node, {"a": 1}, node_context)

        assert result == {"a": 1}

    @pytest.mark.asyncio
    async def test_cancel_interrupts_wait(self, node_context) -> None:
        """测试：延时期间取消

        Given: 60 秒延时
        When: 取消令牌被设置
        Then: 立即抛出 WorkflowCancelledError
        """
        node = Node.create("delay", config={"delayMs": 60_000})
        task = asyncio.create_task(DelayExecutor().execute(node, {}, node_context))
        await asyncio.sleep(0.01)

        node_context.cancellation.cancel()

        with pytest.raises(WorkflowCancelledError):
            await asyncio.wait_for(task, timeout=2)


class TestCreateExecutorRegistry:
    def test_registers_every_node_type(self) -> None:
        registry = create_executor_registry(LLMStubAdapter(), InMemoryKnowledgeSearch())

        assert all(registry.get(node_type) is not None for node_type in NodeType)
        assert isinstance(registry.get(NodeType.START), StartExecutor)
        assert isinstance(registry.get("end"), EndExecutor)

    def test_passes_configured_defaults(self) -> None:
        registry = create_executor_registry(
            LLMStubAdapter(),
            InMemoryKnowledgeSearch(),
            http_timeout_ms=1234,
            code_timeout_ms=5678,
            node_binary="/opt/node/bin/node",
        )

        http = registry.get(NodeType.HTTP)
        code = registry.get(NodeType.CODE)
        assert isinstance(http, HttpExecutor) and http.default_timeout_ms == 1234
        assert isinstance(code, CodeExecutor) and code.default_timeout_ms == 5678
        assert code.runner.node_binary == "/opt/node/bin/node"

    def test_register_overrides_existing_executor(self) -> None:
        registry = create_executor_registry(LLMStubAdapter(), InMemoryKnowledgeSearch())
        replacement = StartExecutor()

        registry.register("http", replacement)

        assert registry.get(NodeType.HTTP) is replacement

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "node_type",
        ["llm", "condition", "http", "code", "parameter", "template", "knowledge_retrieval", "delay"],
    )
    async def test_mismatched_node_raises_node_execution_error(
        self, node_context, node_type
    ) -> None:
        """测试：执行器收到其他类型的节点

        Given: 注册表中的执行器
        When: 传入 comment 节点执行
        Then: 抛出 NodeExecutionError（带节点 ID），而不是 AssertionError
        """
        registry = create_executor_registry(LLMStubAdapter(), InMemoryKnowledgeSearch())
        node = Node.create("comment", id="note_1")

        with pytest.raises(NodeExecutionError, match="note_1") as exc_info:
            await registry.get(node_type).execute(node, {}, node_context)

        assert exc_info.value.node_id == "note_1"
