"""Domain 值对象"""

from flowrun.domain.value_objects.cancellation import CancellationToken
from flowrun.domain.value_objects.execution_status import ExecutionStatus, NodeExecutionStatus
from flowrun.domain.value_objects.node_config import NodeConfig, parse_node_config
from flowrun.domain.value_objects.node_type import NodeType
from flowrun.domain.value_objects.position import Position
from flowrun.domain.value_objects.validation import Severity, ValidationIssue, ValidationResult

__all__ = [
    "CancellationToken",
    "ExecutionStatus",
    "NodeConfig",
    "NodeExecutionStatus",
    "NodeType",
    "Position",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "parse_node_config",
]
