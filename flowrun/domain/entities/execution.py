"""Execution 实体 - 工作流的一次执行

业务定义：
- Execution 是 Graph 针对某个输入的一次运行
- 生命周期：RUNNING → COMPLETED / FAILED / CANCELLED（终态不可再变）
- 只有执行引擎推进状态；cancel() 是唯一的外部状态写入
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from flowrun.domain.exceptions import DomainError
from flowrun.domain.value_objects.execution_status import ExecutionStatus


@dataclass
class Execution:
    """Execution 实体

    属性说明：
    - id: 执行 ID
    - graph_id: 工作流 ID
    - status: 执行状态
    - input: 初始输入
    - output: 最终输出（只有到达 end 节点时才有值）
    - error: 失败原因
    - started_at / completed_at: 时间戳（UTC）
    """

    id: str
    graph_id: str
    status: ExecutionStatus
    input: dict[str, Any] = field(default_factory=dict)
    output: dict[str, Any] | None = None
    error: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @classmethod
    def create(cls, graph_id: str, input: dict[str, Any] | None = None) -> Execution:
        """创建 RUNNING 状态的执行记录

        抛出：
            DomainError: graph_id 为空
        """
        if not graph_id or not graph_id.strip():
            raise DomainError("graph_id 不能为空")

        return cls(
            id=f"exec_{uuid4().hex}",
            graph_id=graph_id.strip(),
            status=ExecutionStatus.RUNNING,
            input=dict(input or {}),
        )

    def complete(self, output: dict[str, Any] | None) -> None:
        self._transition(ExecutionStatus.COMPLETED)
        self.output = output

    def fail(self, error: str) -> None:
        self._transition(ExecutionStatus.FAILED)
        self.error = error

    def cancel(self) -> None:
        self._transition(ExecutionStatus.CANCELLED)

    def _transition(self, target: ExecutionStatus) -> None:
        if not self.status.can_transition_to(target):
            raise DomainError(
                f"执行状态不能从 {self.status.value} 变为 {target.value}: {self.id}"
            )
        self.status = target
        self.completed_at = datetime.now(UTC)
