"""ORM 模型 - 数据库表映射

ORM 模型 vs 领域实体：
- ORM 模型：数据库表映射，关注持久化（Infrastructure 层）
- 领域实体：业务逻辑，关注不变式（Domain 层）
- 通过 Repository 中的 Assembler 方法转换：ORM ⇄ Entity

设计原则：
- 使用 SQLAlchemy 2.0 风格（Mapped、mapped_column）
- 输入/输出使用 JSON 列
- 时间戳存储为 naive UTC datetime
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flowrun.infrastructure.database.base import Base


class ExecutionModel(Base):
    """Execution ORM 模型

    表名：workflow_executions

    索引：
    - idx_workflow_executions_graph_started: (graph_id, started_at)，按工作流倒序列出执行
    - idx_workflow_executions_status: status
    """

    __tablename__ = "workflow_executions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="执行 ID")
    graph_id: Mapped[str] = mapped_column(String(255), nullable=False, comment="工作流 ID")
    status: Mapped[str] = mapped_column(String(20), nullable=False, comment="执行状态")
    input: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    output: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True, comment="错误信息")
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, comment="开始时间")
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, comment="结束时间"
    )

    node_executions: Mapped[list["NodeExecutionModel"]] = relationship(
        back_populates="execution",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_workflow_executions_graph_started", "graph_id", "started_at"),
        Index("idx_workflow_executions_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<ExecutionModel(id={self.id}, graph_id={self.graph_id}, status={self.status})>"


class NodeExecutionModel(Base):
    """NodeExecution ORM 模型

    表名：workflow_node_executions

    外键约束：
    - execution_id → workflow_executions.id（级联删除）
    """

    __tablename__ = "workflow_node_executions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="节点执行 ID")
    execution_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("workflow_executions.id", ondelete="CASCADE"),
        nullable=False,
        comment="所属执行 ID",
    )
    node_id: Mapped[str] = mapped_column(String(255), nullable=False, comment="节点 ID")
    status: Mapped[str] = mapped_column(String(20), nullable=False, comment="节点执行状态")
    input: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    output: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    execution: Mapped[ExecutionModel] = relationship(back_populates="node_executions")

    __table_args__ = (
        Index("idx_workflow_node_executions_execution_started", "execution_id", "started_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<NodeExecutionModel(id={self.id}, node_id={self.node_id}, status={self.status})>"
        )
