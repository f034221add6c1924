"""Parameter Executor（参数提取执行器）

Infrastructure 层：从上下文中提取参数、补默认值并做类型转换，结果合并回上下文。

提取规则：
- 配置了 path：按点号路径取值（可带 "$." 前缀）
- 未配置 path：按参数名直接取值
- 取不到值且配置了 defaultValue：使用默认值
- 仍然没有值：该参数不写入上下文
"""

import json
import math
from typing import Any

from flowrun.domain.entities.node import Node
from flowrun.domain.exceptions import NodeExecutionError
from flowrun.domain.ports.node_executor import NodeExecutionContext, NodeExecutor
from flowrun.domain.services.expression_evaluator import is_truthy
from flowrun.domain.services.template_renderer import MISSING, format_value, get_nested_value
from flowrun.domain.value_objects.node_config import ParameterConfig, ParameterSpec


class ParameterExecutor(NodeExecutor):
    """参数提取节点执行器"""

    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        config = self.require_config(node, ParameterConfig)

        extracted: dict[str, Any] = {}
        for param in config.parameters:
            value = self._extract(inputs, param)
            if value is MISSING and param.has_default:
                value = param.default_value
            if value is MISSING:
                continue
            try:
                extracted[param.name] = convert_type(value, param.type)
            except ValueError as e:
                raise NodeExecutionError(
                    f"Parameter '{param.name}' conversion failed: {e}", node_id=node.id
                ) from e

        return {**inputs, **extracted}

    @staticmethod
    def _extract(inputs: dict[str, Any], param: ParameterSpec) -> Any:
        if param.path:
            path = param.path[2:] if param.path.startswith("$.") else param.path
            return get_nested_value(inputs, path)
        return inputs.get(param.name, MISSING)


def _to_number(value: Any) -> int | float | None:
    """数值转换；无法转换时返回 None（对应 JSON 中的 null）"""
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value if not (isinstance(value, float) and math.isnan(value)) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def convert_type(value: Any, target_type: str) -> Any:
    """按参数类型转换值

    - string: 字符串化（对象序列化为 JSON）
    - number: 数值，无法转换时为 None
    - boolean: 真值判断
    - object: 对象原样；字符串按 JSON 解析（失败抛 ValueError）
    - array: 列表原样；其他值包装为单元素列表
    """
    if target_type == "string":
        return format_value(value)
    if target_type == "number":
        return _to_number(value)
    if target_type == "boolean":
        return is_truthy(value)
    if target_type == "object":
        if isinstance(value, (dict, list)):
            return value
        try:
            return json.loads(format_value(value))
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON: {e.msg}") from e
    if target_type == "array":
        return value if isinstance(value, list) else [value]
    return value
