"""Execution DTO（Data Transfer Objects）

把 Execution / NodeExecution 实体转换为 camelCase 响应（Assembler 模式）。
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from flowrun.application.services.workflow_execution_service import ExecutionDetail
from flowrun.domain.entities.execution import Execution
from flowrun.domain.entities.node_execution import NodeExecution


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class NodeExecutionResponse(_CamelModel):
    id: str
    execution_id: str = Field(..., alias="executionId")
    node_id: str = Field(..., alias="nodeId")
    status: str
    input: dict[str, Any] = Field(default_factory=dict)
    output: dict[str, Any] | None = None
    error: str | None = None
    started_at: datetime = Field(..., alias="startedAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")

    @classmethod
    def from_entity(cls, node_execution: NodeExecution) -> NodeExecutionResponse:
        return cls(
            id=node_execution.id,
            execution_id=node_execution.execution_id,
            node_id=node_execution.node_id,
            status=node_execution.status.value,
            input=node_execution.input,
            output=node_execution.output,
            error=node_execution.error,
            started_at=node_execution.started_at,
            completed_at=node_execution.completed_at,
        )


class ExecutionResponse(_CamelModel):
    """Execution 响应 DTO

    字段：
    - id / graphId: 执行与工作流 ID
    - status: running / completed / failed / cancelled
    - output: 到达 end 节点时的最终输出
    - error: 失败原因
    """

    id: str
    graph_id: str = Field(..., alias="graphId")
    status: str
    input: dict[str, Any] = Field(default_factory=dict)
    output: dict[str, Any] | None = None
    error: str | None = None
    started_at: datetime = Field(..., alias="startedAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")

    @classmethod
    def from_entity(cls, execution: Execution) -> ExecutionResponse:
        return cls(
            id=execution.id,
            graph_id=execution.graph_id,
            status=execution.status.value,
            input=execution.input,
            output=execution.output,
            error=execution.error,
            started_at=execution.started_at,
            completed_at=execution.completed_at,
        )


class ExecutionDetailResponse(ExecutionResponse):
    node_executions: list[NodeExecutionResponse] = Field(
        default_factory=list, alias="nodeExecutions"
    )

    @classmethod
    def from_detail(cls, detail: ExecutionDetail) -> ExecutionDetailResponse:
        base = ExecutionResponse.from_entity(detail.execution)
        return cls(
            **base.model_dump(by_alias=False),
            node_executions=[
                NodeExecutionResponse.from_entity(ne) for ne in detail.node_executions
            ],
        )


class ExecutionListResponse(_CamelModel):
    executions: list[ExecutionResponse]
    total: int

    @classmethod
    def from_entities(cls, executions: list[Execution]) -> ExecutionListResponse:
        items = [ExecutionResponse.from_entity(e) for e in executions]
        return cls(executions=items, total=len(items))


class CancelExecutionResponse(BaseModel):
    success: bool
