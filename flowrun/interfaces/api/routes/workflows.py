"""Workflow API 路由

端点:
    - POST /api/workflows/validate - 校验工作流图
    - POST /api/workflows/{graph_id}/executions - 启动执行（后台运行，立即返回 executionId）
    - GET /api/workflows/{graph_id}/executions - 列出工作流的执行记录
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from flowrun.application.services.workflow_execution_service import WorkflowExecutionService
from flowrun.domain.entities.graph import Graph
from flowrun.domain.exceptions import DomainError, WorkflowValidationError
from flowrun.interfaces.api.dependencies.container import get_execution_service
from flowrun.interfaces.api.dto.execution_dto import ExecutionListResponse
from flowrun.interfaces.api.dto.workflow_dto import (
    ExecuteWorkflowRequest,
    ExecuteWorkflowResponse,
    GraphDTO,
)

router = APIRouter(prefix="/workflows", tags=["Workflows"])


def _to_graph(dto: GraphDTO, graph_id: str | None = None) -> Graph:
    try:
        return dto.to_domain(graph_id)
    except DomainError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.post(
    "/validate",
    summary="校验工作流",
    description="校验图结构与节点配置，返回 errors / warnings",
)
def validate_workflow(
    request: GraphDTO,
    service: WorkflowExecutionService = Depends(get_execution_service),
) -> dict[str, Any]:
    graph = _to_graph(request)
    return service.validate(graph).to_dict()


@router.post(
    "/{graph_id}/executions",
    response_model=ExecuteWorkflowResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="执行工作流",
)
async def execute_workflow(
    graph_id: str,
    request: ExecuteWorkflowRequest,
    service: WorkflowExecutionService = Depends(get_execution_service),
) -> ExecuteWorkflowResponse:
    """启动一次执行

    Raises:
        400: 图解析失败或校验不通过（detail 包含 errors / warnings）
    """
    graph = _to_graph(request.graph, graph_id)
    try:
        execution_id = await service.execute(
            graph, request.input, start_node_id=request.start_node_id
        )
    except WorkflowValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(exc), **exc.result.to_dict()},
        ) from exc

    return ExecuteWorkflowResponse(execution_id=execution_id)


@router.get(
    "/{graph_id}/executions",
    response_model=ExecutionListResponse,
    summary="列出执行记录",
    description="按开始时间倒序列出工作流的执行记录",
)
async def list_workflow_executions(
    graph_id: str,
    limit: int = Query(default=50, ge=1, le=500, description="返回数量上限"),
    service: WorkflowExecutionService = Depends(get_execution_service),
) -> ExecutionListResponse:
    executions = await service.list_executions(graph_id, limit=limit)
    return ExecutionListResponse.from_entities(executions)


__all__ = ["router"]
