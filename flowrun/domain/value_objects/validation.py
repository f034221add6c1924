"""校验结果值对象

GraphValidator 的输出：
- errors：阻塞执行
- warnings：仅提示，不影响 valid
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """单条校验问题

    属性说明：
    - severity: error / warning
    - message: 可读的问题描述
    - node_id / edge_id: 关联的节点或边（全局问题两者都为 None）
    """

    severity: Severity
    message: str
    node_id: str | None = None
    edge_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"severity": self.severity.value, "message": self.message}
        if self.node_id is not None:
            data["nodeId"] = self.node_id
        if self.edge_id is not None:
            data["edgeId"] = self.edge_id
        return data


@dataclass(frozen=True)
class ValidationResult:
    errors: tuple[ValidationIssue, ...] = field(default_factory=tuple)
    warnings: tuple[ValidationIssue, ...] = field(default_factory=tuple)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
        }
