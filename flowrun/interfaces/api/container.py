"""API Container (composition root state holder).

This module only defines the structure for objects created in the real
composition root (`flowrun/interfaces/api/main.py`).
"""

from __future__ import annotations

from dataclasses import dataclass

from flowrun.application.services.workflow_execution_service import WorkflowExecutionService
from flowrun.domain.ports.execution_repository import ExecutionRepository
from flowrun.domain.ports.node_executor import NodeExecutorRegistry


@dataclass(frozen=True, slots=True)
class ApiContainer:
    """Typed container attached to `app.state.container`."""

    executor_registry: NodeExecutorRegistry
    execution_repository: ExecutionRepository
    execution_service: WorkflowExecutionService
