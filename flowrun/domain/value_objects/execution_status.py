"""执行状态枚举 - Execution / NodeExecution 生命周期

状态流转：
- Execution: RUNNING → (COMPLETED | FAILED | CANCELLED)
- NodeExecution: RUNNING → (COMPLETED | FAILED)

通过 can_transition_to() 固化状态机不变式
"""

from __future__ import annotations

from enum import Enum


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def can_transition_to(self, target: ExecutionStatus) -> bool:
        allowed: dict[ExecutionStatus, set[ExecutionStatus]] = {
            ExecutionStatus.RUNNING: {
                ExecutionStatus.COMPLETED,
                ExecutionStatus.FAILED,
                ExecutionStatus.CANCELLED,
            },
            ExecutionStatus.COMPLETED: set(),
            ExecutionStatus.FAILED: set(),
            ExecutionStatus.CANCELLED: set(),
        }
        return target in allowed[self]

    def is_terminal(self) -> bool:
        return self is not ExecutionStatus.RUNNING


class NodeExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def can_transition_to(self, target: NodeExecutionStatus) -> bool:
        if self is NodeExecutionStatus.RUNNING:
            return target in {NodeExecutionStatus.COMPLETED, NodeExecutionStatus.FAILED}
        return False

    def is_terminal(self) -> bool:
        return self is not NodeExecutionStatus.RUNNING
