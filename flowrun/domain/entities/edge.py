"""Edge 实体 - 节点之间的有向连接

source_handle 用于条件节点的分支选择（"true" / "false"），
为空表示源节点的默认输出。
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from flowrun.domain.exceptions import DomainError


@dataclass(frozen=True)
class Edge:
    """Edge 实体

    属性说明：
    - id: 唯一标识符（edge_ 前缀）
    - source: 源节点 ID
    - target: 目标节点 ID
    - source_handle: 源句柄（条件分支名，可选）
    - target_handle: 目标句柄（可选，引擎不使用）

    引用完整性（source/target 是否存在）由 GraphValidator 检查，
    这里只拒绝空 ID。
    """

    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None

    @classmethod
    def create(
        cls,
        source: str,
        target: str,
        source_handle: str | None = None,
        target_handle: str | None = None,
        *,
        id: str | None = None,
    ) -> Edge:
        if not source or not source.strip():
            raise DomainError("source 不能为空")
        if not target or not target.strip():
            raise DomainError("target 不能为空")

        return cls(
            id=id or f"edge_{uuid4().hex[:8]}",
            source=source.strip(),
            target=target.strip(),
            source_handle=source_handle or None,
            target_handle=target_handle or None,
        )
