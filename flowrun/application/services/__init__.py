from flowrun.application.services.workflow_execution_service import (
    ExecutionDetail,
    WorkflowExecutionService,
)

__all__ = ["ExecutionDetail", "WorkflowExecutionService"]
