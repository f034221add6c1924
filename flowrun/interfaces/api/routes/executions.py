"""Execution API 路由

端点:
    - GET /api/workflows/executions/{execution_id} - 获取执行详情（含节点执行记录）
    - POST /api/workflows/executions/{execution_id}/cancel - 取消执行

注意：必须在 workflows 路由之前注册，避免被 /workflows/{graph_id}/... 匹配。
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from flowrun.application.services.workflow_execution_service import WorkflowExecutionService
from flowrun.domain.exceptions import NotFoundError
from flowrun.interfaces.api.dependencies.container import get_execution_service
from flowrun.interfaces.api.dto.execution_dto import (
    CancelExecutionResponse,
    ExecutionDetailResponse,
)

router = APIRouter(prefix="/workflows/executions", tags=["Executions"])


@router.get(
    "/{execution_id}",
    response_model=ExecutionDetailResponse,
    summary="获取执行详情",
)
async def get_execution(
    execution_id: str,
    service: WorkflowExecutionService = Depends(get_execution_service),
) -> ExecutionDetailResponse:
    """获取执行详情

    Raises:
        404: 执行不存在
    """
    try:
        detail = await service.get_execution(execution_id)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    return ExecutionDetailResponse.from_detail(detail)


@router.post(
    "/{execution_id}/cancel",
    response_model=CancelExecutionResponse,
    summary="取消执行",
)
async def cancel_execution(
    execution_id: str,
    service: WorkflowExecutionService = Depends(get_execution_service),
) -> CancelExecutionResponse:
    """取消 running 状态的执行

    Raises:
        400: 执行已结束
        404: 执行不存在
    """
    try:
        cancelled = await service.cancel(execution_id)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc

    if not cancelled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Execution is not running: {execution_id}",
        )
    return CancelExecutionResponse(success=True)


__all__ = ["router"]
