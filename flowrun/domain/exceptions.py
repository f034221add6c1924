"""领域层异常定义

异常分层：
- DomainError：业务规则违反（非法状态流转、配置缺失等）
- NotFoundError：实体不存在（API 层映射为 404）
- WorkflowValidationError：图结构校验失败，执行前同步抛出
- NodeExecutionError / ExecutionTimeoutError：节点执行期错误
- WorkflowCancelledError：执行被取消
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flowrun.domain.value_objects.validation import ValidationResult


class DomainError(Exception):
    """领域层异常基类

    示例：
        if execution.status is not ExecutionStatus.RUNNING:
            raise DomainError("只能结束 running 状态的执行")
    """

    pass


class NotFoundError(DomainError):
    """实体不存在异常

    参数：
        entity_type: 实体类型（如："Execution"）
        entity_id: 实体 ID
    """

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class WorkflowValidationError(DomainError):
    """工作流结构校验失败

    携带完整的 ValidationResult，调用方可以直接展示 errors/warnings。
    """

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = ", ".join(issue.message for issue in result.errors)
        super().__init__(f"Workflow validation failed: {messages}")


class NodeExecutionError(DomainError):
    """节点执行失败

    参数：
        message: 错误信息（会原样记录到 NodeExecution.error）
        node_id: 出错节点 ID（可选）
    """

    def __init__(self, message: str, node_id: str | None = None):
        self.node_id = node_id
        super().__init__(message)


class ExecutionTimeoutError(NodeExecutionError):
    """节点执行超时（http / code 节点）"""

    pass


class WorkflowCancelledError(DomainError):
    """执行已被取消，遍历在下一个节点边界停止"""

    def __init__(self, execution_id: str):
        self.execution_id = execution_id
        super().__init__(f"Execution cancelled: {execution_id}")
