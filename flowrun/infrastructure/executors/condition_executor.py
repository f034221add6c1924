"""Condition Executor（条件执行器）

Infrastructure 层：评估条件表达式，结果写入 conditionResult，
引擎据此选择 sourceHandle 为 "true" / "false" 的出边。
"""

from typing import Any

from flowrun.domain.entities.node import Node
from flowrun.domain.exceptions import NodeExecutionError
from flowrun.domain.ports.node_executor import NodeExecutionContext, NodeExecutor
from flowrun.domain.services.expression_evaluator import (
    ExpressionEvaluationError,
    ExpressionEvaluator,
    UnsafeExpressionError,
)
from flowrun.domain.value_objects.node_config import ConditionConfig


class ConditionExecutor(NodeExecutor):
    """条件分支节点执行器

    配置参数：
        condition: 条件表达式，如 "{{input.value}} > 10"、"{{status}} === 'ok' && {{count}} > 0"
    """

    def __init__(self, evaluator: ExpressionEvaluator | None = None):
        self.evaluator = evaluator or ExpressionEvaluator()

    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        config = self.require_config(node, ConditionConfig)

        if not config.condition.strip():
            raise NodeExecutionError("Condition node has no condition expression", node_id=node.id)

        try:
            result = self.evaluator.evaluate_condition(config.condition, inputs)
        except (ExpressionEvaluationError, UnsafeExpressionError) as e:
            raise NodeExecutionError(
                f"Condition evaluation failed: {e}", node_id=node.id
            ) from e

        return {**inputs, "conditionResult": result}
