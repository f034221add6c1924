"""WorkflowEngine 单元测试

测试原则：
- 使用本地 Fake 执行器（start/end/comment/template/condition）
- 通过 InMemoryExecutionRepository 观察 NodeExecution 记录
"""

from __future__ import annotations

import threading
from typing import Any

import pytest

from flowrun.domain.entities.edge import Edge
from flowrun.domain.entities.execution import Execution
from flowrun.domain.entities.node import Node
from flowrun.domain.exceptions import NodeExecutionError, NotFoundError
from flowrun.domain.ports.node_executor import (
    NodeExecutionContext,
    NodeExecutor,
    NodeExecutorRegistry,
)
from flowrun.domain.services.workflow_engine import (
    WorkflowEngine,
    merge_branch_results,
    select_next_targets,
)
from flowrun.domain.value_objects.cancellation import CancellationToken
from flowrun.domain.value_objects.execution_status import (
    ExecutionStatus,
    NodeExecutionStatus,
)
from flowrun.infrastructure.adapters import InMemoryExecutionRepository


class _PassThroughExecutor(NodeExecutor):
    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        return dict(inputs)


class _TagExecutor(NodeExecutor):
    """把节点 ID 写入上下文：{node_id: True}"""

    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        return {**inputs, node.id: True}


class _ConditionFromInputExecutor(NodeExecutor):
    """conditionResult = inputs["go"]"""

    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        return {**inputs, "conditionResult": bool(inputs.get("go"))}


class _FailingExecutor(NodeExecutor):
    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        raise NodeExecutionError("boom", node_id=node.id)


def _registry(**overrides: NodeExecutor) -> NodeExecutorRegistry:
    registry = NodeExecutorRegistry()
    registry.register("start", _PassThroughExecutor())
    registry.register("end", _PassThroughExecutor())
    registry.register("comment", _TagExecutor())
    registry.register("template", _TagExecutor())
    registry.register("condition", _ConditionFromInputExecutor())
    for node_type, executor in overrides.items():
        registry.register(node_type, executor)
    return registry


async def _run(repository, graph, initial_input=None, *, registry=None, **kwargs) -> Execution:
    engine = WorkflowEngine(
        executor_registry=registry or _registry(),
        repository=repository,
        max_node_visits=kwargs.pop("max_node_visits", 0),
    )
    execution = Execution.create(graph.id, initial_input or {})
    repository.create_execution(execution)
    return await engine.run(execution, graph, **kwargs)


def _visited(repository, execution_id: str) -> list[str]:
    return [ne.node_id for ne in repository.list_node_executions(execution_id)]


class TestLinearExecution:
    @pytest.mark.asyncio
    async def test_end_node_output_becomes_execution_output(self, repository, build_graph):
        """测试：start → a → end

        Given: 线性图，初始输入 {"name": "Ada"}
        When: 执行
        Then: completed，output 为 end 节点输出，每个节点一条 completed 记录
        """
        graph = build_graph(
            nodes=[("start", "start", {}), ("a", "comment", {}), ("end", "end", {})],
            edges=[("start", "a"), ("a", "end")],
        )

        execution = await _run(repository, graph, {"name": "Ada"})

        assert execution.status is ExecutionStatus.COMPLETED
        assert execution.output == {"name": "Ada", "a": True}
        records = repository.list_node_executions(execution.id)
        assert [r.node_id for r in records] == ["start", "a", "end"]
        assert all(r.status is NodeExecutionStatus.COMPLETED for r in records)
        assert records[1].input == {"name": "Ada"}

    @pytest.mark.asyncio
    async def test_no_end_node_completes_without_output(self, repository, build_graph):
        graph = build_graph(
            nodes=[("start", "start", {}), ("a", "comment", {})],
            edges=[("start", "a")],
        )

        execution = await _run(repository, graph, {"x": 1})

        assert execution.status is ExecutionStatus.COMPLETED
        assert execution.output is None
        assert _visited(repository, execution.id) == ["start", "a"]


class TestBranching:
    def _condition_graph(self, build_graph):
        return build_graph(
            nodes=[
                ("start", "start", {}),
                ("cond", "condition", {"condition": "{{go}}"}),
                ("yes", "comment", {}),
                ("no", "template", {"template": "x"}),
                ("end", "end", {}),
            ],
            edges=[
                ("start", "cond"),
                ("cond", "yes", "true"),
                ("cond", "no", "false"),
                ("yes", "end"),
                ("no", "end"),
            ],
        )

    @pytest.mark.asyncio
    async def test_true_branch_only(self, repository, build_graph):
        execution = await _run(repository, self._condition_graph(build_graph), {"go": True})

        assert _visited(repository, execution.id) == ["start", "cond", "yes", "end"]
        assert execution.output["yes"] is True
        assert "no" not in execution.output

    @pytest.mark.asyncio
    async def test_false_branch_only(self, repository, build_graph):
        execution = await _run(repository, self._condition_graph(build_graph), {"go": False})

        assert _visited(repository, execution.id) == ["start", "cond", "no", "end"]
        assert execution.output["conditionResult"] is False

    @pytest.mark.asyncio
    async def test_condition_without_matching_handle_ends_branch(self, repository, build_graph):
        graph = build_graph(
            nodes=[
                ("start", "start", {}),
                ("cond", "condition", {"condition": "{{go}}"}),
                ("end", "end", {}),
            ],
            edges=[("start", "cond"), ("cond", "end", "true")],
        )

        execution = await _run(repository, graph, {"go": False})

        assert execution.status is ExecutionStatus.COMPLETED
        assert execution.output is None
        assert _visited(repository, execution.id) == ["start", "cond"]

    @pytest.mark.asyncio
    async def test_fan_out_merges_branch_results(self, repository, build_graph):
        """测试：扇出的两个分支各自到达 end

        Given: start → a → end1，start → b → end2
        When: 执行
        Then: 按边的声明顺序执行，最终输出同时包含 a 和 b 的产出
        """
        graph = build_graph(
            nodes=[
                ("start", "start", {}),
                ("a", "comment", {}),
                ("b", "template", {"template": "x"}),
                ("end1", "end", {}),
                ("end2", "end", {}),
            ],
            edges=[("start", "a"), ("start", "b"), ("a", "end1"), ("b", "end2")],
        )

        execution = await _run(repository, graph, {"seed": 1})

        assert execution.output == {"seed": 1, "a": True, "b": True}
        assert _visited(repository, execution.id) == ["start", "a", "end1", "b", "end2"]

    @pytest.mark.asyncio
    async def test_fan_in_to_common_end_records_each_visit(self, repository, build_graph):
        """测试：两个分支汇入同一个 end 节点

        Given: start → a → end，start → b → end
        When: 执行
        Then: end 被访问两次并各自产生一条 NodeExecution；输出合并 a 与 b 的产出
        """
        graph = build_graph(
            nodes=[
                ("start", "start", {}),
                ("a", "comment", {}),
                ("b", "template", {"template": "x"}),
                ("end", "end", {}),
            ],
            edges=[("start", "a"), ("start", "b"), ("a", "end"), ("b", "end")],
        )

        execution = await _run(repository, graph, {"seed": 1})

        assert execution.status is ExecutionStatus.COMPLETED
        assert execution.output == {"seed": 1, "a": True, "b": True}
        assert _visited(repository, execution.id) == ["start", "a", "end", "b", "end"]
        end_records = [
            ne for ne in repository.list_node_executions(execution.id) if ne.node_id == "end"
        ]
        assert [ne.input for ne in end_records] == [
            {"seed": 1, "a": True},
            {"seed": 1, "b": True},
        ]
        assert all(ne.status is NodeExecutionStatus.COMPLETED for ne in end_records)

    @pytest.mark.asyncio
    async def test_dangling_target_is_skipped(self, repository, build_graph):
        graph = build_graph(
            nodes=[("start", "start", {}), ("end", "end", {})],
            edges=[("start", "ghost"), ("start", "end")],
        )

        execution = await _run(repository, graph, {"x": 1})

        assert execution.status is ExecutionStatus.COMPLETED
        assert execution.output == {"x": 1}


class TestFailures:
    @pytest.mark.asyncio
    async def test_node_failure_fails_execution(self, repository, build_graph):
        """测试：节点执行失败

        Given: start → bad → end，bad 抛出 NodeExecutionError("boom")
        When: 执行
        Then: 执行 failed，error 为 "boom"，下游节点不执行
        """
        graph = build_graph(
            nodes=[("start", "start", {}), ("bad", "http", {"url": "x"}), ("end", "end", {})],
            edges=[("start", "bad"), ("bad", "end")],
        )

        execution = await _run(repository, graph, registry=_registry(http=_FailingExecutor()))

        assert execution.status is ExecutionStatus.FAILED
        assert execution.error == "boom"
        records = repository.list_node_executions(execution.id)
        assert [r.node_id for r in records] == ["start", "bad"]
        assert records[-1].status is NodeExecutionStatus.FAILED
        assert records[-1].error == "boom"

    @pytest.mark.asyncio
    async def test_missing_executor(self, repository, build_graph):
        graph = build_graph(
            nodes=[("start", "start", {}), ("h", "http", {"url": "x"})],
            edges=[("start", "h")],
        )

        execution = await _run(repository, graph)

        assert execution.status is ExecutionStatus.FAILED
        assert execution.error == "Missing executor for node_type=http"

    @pytest.mark.asyncio
    async def test_unknown_start_node(self, repository, build_graph):
        graph = build_graph(nodes=[("start", "start", {}), ("end", "end", {})])

        execution = await _run(repository, graph, start_node_id="nope")

        assert execution.status is ExecutionStatus.FAILED
        assert execution.error == "Start node not found: nope"
        assert repository.list_node_executions(execution.id) == []

    @pytest.mark.asyncio
    async def test_designated_start_node_must_be_start_type(self, repository, build_graph):
        graph = build_graph(nodes=[("start", "start", {}), ("end", "end", {})])

        execution = await _run(repository, graph, start_node_id="end")

        assert execution.error == "Node is not a start node: end"

    @pytest.mark.asyncio
    async def test_designated_start_node_is_used(self, repository, build_graph):
        graph = build_graph(
            nodes=[
                ("s1", "start", {}),
                ("s2", "start", {}),
                ("a", "comment", {}),
                ("end", "end", {}),
            ],
            edges=[("s1", "end"), ("s2", "a"), ("a", "end")],
        )

        execution = await _run(repository, graph, start_node_id="s2")

        assert _visited(repository, execution.id) == ["s2", "a", "end"]

    @pytest.mark.asyncio
    async def test_cycle_stops_at_visit_budget(self, repository, build_graph):
        graph = build_graph(
            nodes=[("start", "start", {}), ("loop", "comment", {})],
            edges=[("start", "loop"), ("loop", "loop")],
        )

        execution = await _run(repository, graph, max_node_visits=5)

        assert execution.status is ExecutionStatus.FAILED
        assert execution.error == "Execution exceeded max node visits (5)"
        assert len(repository.list_node_executions(execution.id)) == 5


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_token_stops_before_first_node(self, repository, build_graph):
        graph = build_graph(
            nodes=[("start", "start", {}), ("end", "end", {})],
            edges=[("start", "end")],
        )
        token = CancellationToken()
        token.cancel()

        execution = await _run(repository, graph, cancellation=token)

        assert execution.status is ExecutionStatus.CANCELLED
        assert repository.list_node_executions(execution.id) == []

    @pytest.mark.asyncio
    async def test_externally_cancelled_status_is_not_overwritten(self, repository, build_graph):
        """测试：执行期间被外部标记为 cancelled

        Given: 某个节点执行时，仓储中的执行状态被翻转为 cancelled
        When: 引擎走完剩余节点
        Then: 最终状态仍为 cancelled，output 不写入
        """

        class _CancelDuringExecution(NodeExecutor):
            async def execute(self, node, inputs, context):
                current = repository.get_execution(context.execution_id)
                current.cancel()
                repository.update_execution(current)
                return dict(inputs)

        graph = build_graph(
            nodes=[("start", "start", {}), ("a", "comment", {}), ("end", "end", {})],
            edges=[("start", "a"), ("a", "end")],
        )

        execution = await _run(
            repository, graph, registry=_registry(comment=_CancelDuringExecution())
        )

        assert execution.status is ExecutionStatus.CANCELLED
        assert execution.output is None


class TestRepositoryAccess:
    @pytest.mark.asyncio
    async def test_repository_calls_run_off_the_event_loop_thread(self, repository, build_graph):
        """测试：仓储调用不阻塞事件循环

        Given: 记录调用线程的仓储
        When: 执行 start → a → end
        Then: 所有引擎发起的仓储调用都不在事件循环线程上执行
        """
        loop_thread = threading.get_ident()
        threads: list[int] = []

        class _ThreadRecordingRepository(InMemoryExecutionRepository):
            def create_node_execution(self, node_execution):
                threads.append(threading.get_ident())
                super().create_node_execution(node_execution)

            def update_node_execution(self, node_execution):
                threads.append(threading.get_ident())
                super().update_node_execution(node_execution)

            def update_execution(self, execution):
                threads.append(threading.get_ident())
                super().update_execution(execution)

        recording = _ThreadRecordingRepository()
        graph = build_graph(
            nodes=[("start", "start", {}), ("a", "comment", {}), ("end", "end", {})],
            edges=[("start", "a"), ("a", "end")],
        )

        execution = await _run(recording, graph)

        assert execution.status is ExecutionStatus.COMPLETED
        # 3 次创建 + 3 次节点更新 + 1 次终态写入
        assert len(threads) == 7
        assert loop_thread not in threads

    @pytest.mark.asyncio
    async def test_mark_cancelled_only_flips_running(self, repository):
        engine = WorkflowEngine(executor_registry=_registry(), repository=repository)
        running = Execution.create("graph_1", {})
        finished = Execution.create("graph_1", {})
        finished.complete({"ok": True})
        repository.create_execution(running)
        repository.create_execution(finished)

        assert await engine.mark_cancelled(running.id) is True
        assert await engine.mark_cancelled(finished.id) is False
        assert repository.get_execution(running.id).status is ExecutionStatus.CANCELLED
        assert repository.get_execution(finished.id).status is ExecutionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_mark_cancelled_unknown_execution(self, repository):
        engine = WorkflowEngine(executor_registry=_registry(), repository=repository)

        with pytest.raises(NotFoundError):
            await engine.mark_cancelled("exec_missing")


class TestHelpers:
    def test_merge_branch_results_is_right_biased(self) -> None:
        assert merge_branch_results([{"a": 1, "k": "left"}, None, {"k": "right"}]) == {
            "a": 1,
            "k": "right",
        }
        assert merge_branch_results([None, None]) is None
        assert merge_branch_results([]) is None

    def test_select_next_targets_for_condition(self) -> None:
        node = Node.create("condition", config={"condition": "x"}, id="c")
        edges = [
            Edge.create("c", "t", "true", id="e1"),
            Edge.create("c", "f", "false", id="e2"),
        ]

        assert select_next_targets(node, {"conditionResult": True}, edges) == ["t"]
        assert select_next_targets(node, {"conditionResult": False}, edges) == ["f"]

    def test_select_next_targets_for_end_is_empty(self) -> None:
        node = Node.create("end", id="e")

        assert select_next_targets(node, {}, [Edge.create("e", "x")]) == []
