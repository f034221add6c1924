"""SQLAlchemy Execution Repository 实现

职责:
    1. 转换: 领域实体 ↔ ORM 模型
    2. 持久化: 新增、更新、查询
    3. 异常转换: 记录不存在 → NotFoundError

事务边界:
    - 每个方法使用独立 Session 并自行提交
    - 执行引擎运行在后台任务中，没有请求级事务可以复用

线程:
    - 方法由 asyncio.to_thread 在线程池中调用
    - 引擎使用 StaticPool（内存 SQLite，单连接）时，所有会话串行执行
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager, nullcontext
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from flowrun.domain.entities.execution import Execution
from flowrun.domain.entities.node_execution import NodeExecution
from flowrun.domain.exceptions import DomainError, NotFoundError
from flowrun.domain.value_objects.execution_status import ExecutionStatus, NodeExecutionStatus
from flowrun.infrastructure.database.models import ExecutionModel, NodeExecutionModel


def _to_aware(value: datetime | None) -> datetime | None:
    """naive → UTC aware（数据库存储 naive datetime）"""
    if value is None:
        return None
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def _to_naive(value: datetime | None) -> datetime | None:
    """UTC aware → naive"""
    if value is None:
        return None
    return value.astimezone(UTC).replace(tzinfo=None) if value.tzinfo else value


class SQLAlchemyExecutionRepository:
    """SQLAlchemy Execution Repository 实现

    Implements:
        ExecutionRepository Protocol (flowrun/domain/ports/execution_repository.py)
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        """初始化 Repository

        Args:
            session_factory: Session 工厂（create_session_factory 创建）
        """
        self._session_factory = session_factory
        bind = session_factory.kw.get("bind")
        self._lock: AbstractContextManager[object] = (
            threading.Lock()
            if isinstance(getattr(bind, "pool", None), StaticPool)
            else nullcontext()
        )

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self._lock, self._session_factory() as session:
            yield session

    # ==================== Assembler 方法 ====================

    def _to_entity(self, model: ExecutionModel) -> Execution:
        return Execution(
            id=model.id,
            graph_id=model.graph_id,
            status=ExecutionStatus(model.status),
            input=dict(model.input or {}),
            output=model.output,
            error=model.error,
            started_at=_to_aware(model.started_at),
            completed_at=_to_aware(model.completed_at),
        )

    def _to_model(self, entity: Execution) -> ExecutionModel:
        return ExecutionModel(
            id=entity.id,
            graph_id=entity.graph_id,
            status=entity.status.value,
            input=entity.input,
            output=entity.output,
            error=entity.error,
            started_at=_to_naive(entity.started_at),
            completed_at=_to_naive(entity.completed_at),
        )

    def _node_to_entity(self, model: NodeExecutionModel) -> NodeExecution:
        return NodeExecution(
            id=model.id,
            execution_id=model.execution_id,
            node_id=model.node_id,
            status=NodeExecutionStatus(model.status),
            input=dict(model.input or {}),
            output=model.output,
            error=model.error,
            started_at=_to_aware(model.started_at),
            completed_at=_to_aware(model.completed_at),
        )

    def _node_to_model(self, entity: NodeExecution) -> NodeExecutionModel:
        return NodeExecutionModel(
            id=entity.id,
            execution_id=entity.execution_id,
            node_id=entity.node_id,
            status=entity.status.value,
            input=entity.input,
            output=entity.output,
            error=entity.error,
            started_at=_to_naive(entity.started_at),
            completed_at=_to_naive(entity.completed_at),
        )

    # ==================== Execution ====================

    def create_execution(self, execution: Execution) -> None:
        with self._session() as session:
            if session.get(ExecutionModel, execution.id) is not None:
                raise DomainError(f"Execution already exists: {execution.id}")
            session.add(self._to_model(execution))
            session.commit()

    def update_execution(self, execution: Execution) -> None:
        with self._session() as session:
            model = session.get(ExecutionModel, execution.id)
            if model is None:
                raise NotFoundError("Execution", execution.id)
            model.status = execution.status.value
            model.output = execution.output
            model.error = execution.error
            model.completed_at = _to_naive(execution.completed_at)
            session.commit()

    def get_execution(self, execution_id: str) -> Execution:
        with self._session() as session:
            model = session.get(ExecutionModel, execution_id)
            if model is None:
                raise NotFoundError("Execution", execution_id)
            return self._to_entity(model)

    def list_executions(self, graph_id: str, limit: int = 50) -> list[Execution]:
        stmt = (
            select(ExecutionModel)
            .where(ExecutionModel.graph_id == graph_id)
            .order_by(ExecutionModel.started_at.desc())
            .limit(limit)
        )
        with self._session() as session:
            return [self._to_entity(model) for model in session.scalars(stmt)]

    # ==================== NodeExecution ====================

    def create_node_execution(self, node_execution: NodeExecution) -> None:
        with self._session() as session:
            session.add(self._node_to_model(node_execution))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DomainError(
                    f"NodeExecution cannot be saved: {node_execution.id}"
                ) from exc

    def update_node_execution(self, node_execution: NodeExecution) -> None:
        with self._session() as session:
            model = session.get(NodeExecutionModel, node_execution.id)
            if model is None:
                raise NotFoundError("NodeExecution", node_execution.id)
            model.status = node_execution.status.value
            model.output = node_execution.output
            model.error = node_execution.error
            model.completed_at = _to_naive(node_execution.completed_at)
            session.commit()

    def list_node_executions(self, execution_id: str) -> list[NodeExecution]:
        stmt = (
            select(NodeExecutionModel)
            .where(NodeExecutionModel.execution_id == execution_id)
            .order_by(NodeExecutionModel.started_at.asc())
        )
        with self._session() as session:
            return [self._node_to_entity(model) for model in session.scalars(stmt)]
