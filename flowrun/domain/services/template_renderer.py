"""占位符渲染 - {{path.to.value}} 替换

llm / condition / http / template / knowledge_retrieval 节点共用的规则：
- 占位符格式：{{identifier(.identifier)*}}
- 按点号路径在上下文字典中逐级取值，列表支持数字下标
- 路径以 input 开头且字面路径不存在时，input 指代上下文本身
  （"{{input.name}}" 读取上下文中的 name）
- 未解析的占位符原样保留
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from typing import Any

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+(?:\.\w+)*)\}\}")

INPUT_ALIAS = "input"


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def get_nested_value(data: Any, path: str) -> Any:
    """按点号路径取值，任一段不存在返回 MISSING

    示例：
    >>> get_nested_value({"a": {"b": [10, 20]}}, "a.b.1")
    20
    """
    current = data
    for key in path.split("."):
        if isinstance(current, Mapping):
            if key not in current:
                return MISSING
            current = current[key]
        elif isinstance(current, (list, tuple)) and key.isdigit():
            index = int(key)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def resolve_path(data: Mapping[str, Any], path: str) -> Any:
    """解析占位符路径（含 input 别名），不存在返回 MISSING"""
    value = get_nested_value(data, path)
    if value is not MISSING:
        return value

    head, _, rest = path.partition(".")
    if head == INPUT_ALIAS:
        return get_nested_value(data, rest) if rest else dict(data)
    return MISSING


def format_value(value: Any) -> str:
    """把值转换为插入文本

    - 字符串原样
    - 布尔值 true/false，None 为 null
    - 字典/列表序列化为 JSON
    - 整数值的浮点数去掉 .0
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def render_template(template: str, data: Mapping[str, Any]) -> str:
    """替换模板中的占位符，未解析的保留原文

    示例：
    >>> render_template("Hello {{input.name}}", {"name": "Ada"})
    'Hello Ada'
    >>> render_template("{{missing}}", {})
    '{{missing}}'
    """
    if not template:
        return template

    def _replace(match: re.Match[str]) -> str:
        value = resolve_path(data, match.group(1))
        if value is MISSING:
            return match.group(0)
        return format_value(value)

    return PLACEHOLDER_PATTERN.sub(_replace, template)


__all__ = [
    "MISSING",
    "PLACEHOLDER_PATTERN",
    "format_value",
    "get_nested_value",
    "render_template",
    "resolve_path",
]
