"""NodeExecution 实体 - 单个节点的一次访问记录

同一节点被多次访问（扇入）会产生多条记录。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from flowrun.domain.exceptions import DomainError
from flowrun.domain.value_objects.execution_status import NodeExecutionStatus


@dataclass
class NodeExecution:
    id: str
    execution_id: str
    node_id: str
    status: NodeExecutionStatus
    input: dict[str, Any] = field(default_factory=dict)
    output: dict[str, Any] | None = None
    error: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @classmethod
    def create(cls, execution_id: str, node_id: str, input: dict[str, Any]) -> NodeExecution:
        return cls(
            id=f"nexec_{uuid4().hex}",
            execution_id=execution_id,
            node_id=node_id,
            status=NodeExecutionStatus.RUNNING,
            input=dict(input),
        )

    def complete(self, output: dict[str, Any]) -> None:
        self._transition(NodeExecutionStatus.COMPLETED)
        self.output = output

    def fail(self, error: str) -> None:
        self._transition(NodeExecutionStatus.FAILED)
        self.error = error

    def _transition(self, target: NodeExecutionStatus) -> None:
        if not self.status.can_transition_to(target):
            raise DomainError(
                f"节点执行状态不能从 {self.status.value} 变为 {target.value}: {self.id}"
            )
        self.status = target
        self.completed_at = datetime.now(UTC)
