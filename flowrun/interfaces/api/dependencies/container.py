"""Dependency helper for retrieving the API container from app.state."""

from __future__ import annotations

from fastapi import Depends, Request

from flowrun.application.services.workflow_execution_service import WorkflowExecutionService
from flowrun.interfaces.api.container import ApiContainer


def get_container(request: Request) -> ApiContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise RuntimeError("API container is not initialized (lifespan not executed).")
    return container


def get_execution_service(
    container: ApiContainer = Depends(get_container),
) -> WorkflowExecutionService:
    return container.execution_service
