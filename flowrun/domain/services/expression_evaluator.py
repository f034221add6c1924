"""表达式求值器 (Expression Evaluator)

业务定义：
- 评估条件节点的布尔表达式，决定走 true 还是 false 分支
- 表达式来自编辑器，习惯使用 JS 写法（===、&&、||、!）
- 防止代码注入：不调用 eval，由 AST 解释器逐节点求值

求值流程：
1. 占位符绑定：{{path}} 替换为内部变量（_v0、_v1 ...），
   未解析的占位符替换为 undefined；字符串字面量内的占位符按文本替换
2. 运算符翻译：=== → ==，!== → !=，&& → and，|| → or，! → not，
   true/false/null/undefined → True/False/None/None
3. ast.parse 解析，白名单节点逐个解释求值

使用示例：
    evaluator = ExpressionEvaluator()

    # 直接求值
    evaluator.evaluate("score > 0.8 and count >= 100", {"score": 0.9, "count": 100})  # True

    # 条件节点（含占位符）
    evaluator.evaluate_condition("{{input.value}} > 10", {"value": 42})  # True
"""

from __future__ import annotations

import ast
import functools
import math
import operator
import re
from collections.abc import Mapping
from typing import Any

from flowrun.domain.services.template_renderer import MISSING, format_value, resolve_path


class ExpressionEvaluationError(Exception):
    """表达式求值异常

    在表达式评估过程中发生错误时抛出，如：
    - 语法错误
    - 未定义变量
    - 类型错误
    """

    pass


class UnsafeExpressionError(Exception):
    """不安全表达式异常

    当检测到不允许的语法时抛出，如：
    - lambda / 推导式 / 海象运算符
    - 函数调用
    - 双下划线属性访问
    """

    pass


_TOKEN_PATTERN = re.compile(
    r"""
    (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    | (?P<placeholder>\{\{(?P<path>\w+(?:\.\w+)*)\}\})
    | (?P<op>===|!==|&&|\|\||!(?!=))
    | (?P<word>\b(?:true|false|null|undefined)\b)
    """,
    re.VERBOSE,
)

_PLACEHOLDER_IN_STRING = re.compile(r"\{\{(\w+(?:\.\w+)*)\}\}")

_OPERATOR_MAP = {
    "===": "==",
    "!==": "!=",
    "&&": " and ",
    "||": " or ",
    "!": " not ",
}

_WORD_MAP = {
    "true": "True",
    "false": "False",
    "null": "None",
    "undefined": "None",
}

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
}

_COMPARE_OPERATORS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}

_ORDERING = (ast.Lt, ast.LtE, ast.Gt, ast.GtE)

MAX_EXPRESSION_LENGTH = 4096
COMPILE_CACHE_SIZE = 1024


def is_truthy(value: Any) -> bool:
    """JS 风格真值判断（空列表/空字典为真，NaN 为假）"""
    if value is None or value is MISSING:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return len(value) > 0
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_number(value: Any) -> float | None:
    if _is_number(value):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


class ExpressionEvaluator:
    """表达式求值器

    支持：
    - 比较运算符：>, <, ==, !=, >=, <=, in, not in
    - 逻辑运算符：and, or, not（及对应的 JS 写法）
    - 算术运算：+, -, *, /, %
    - 访问：obj['key']、list[0]、obj.key（字典键）
    - 数值、字符串、布尔值、None、列表、字典字面量

    安全机制：
    - 白名单 AST 节点，逐节点解释，不使用 eval
    - 禁止双下划线标识符和函数调用
    """

    def evaluate(self, expression: str | None, context: Mapping[str, Any]) -> bool:
        """评估布尔表达式，结果按 JS 真值规则转换为 bool"""
        return is_truthy(self.evaluate_expression(expression, context))

    def evaluate_expression(self, expression: str | None, context: Mapping[str, Any]) -> Any:
        """评估表达式并返回原始值

        参数：
            expression: 表达式字符串（可以包含 JS 运算符写法）
            context: 变量字典

        返回：
            表达式计算结果（任意类型）；空表达式返回 False

        抛出：
            ExpressionEvaluationError: 语法错误、未定义变量、类型错误
            UnsafeExpressionError: 表达式包含不允许的语法
        """
        if not expression or not expression.strip():
            return False

        tree = compile_expression(translate_js_operators(expression))
        return _Interpreter(context).visit(tree.body)

    def evaluate_condition(self, condition: str, data: Mapping[str, Any]) -> bool:
        """评估条件节点表达式

        占位符按上下文解析后参与运算：
        - 字符串字面量外的占位符绑定为变量，保留原始类型
        - 未解析的占位符视为 undefined（None）

        示例：
            evaluate_condition("{{input.value}} > 10", {"value": 42})  # True
            evaluate_condition("{{missing}} == null", {})  # True
        """
        expression, variables = bind_placeholders(condition, data)
        return self.evaluate(expression, variables)


_ALLOWED_NODE_TYPES: frozenset[type] = frozenset(
    {
        ast.Expression,
        ast.Constant,
        ast.Name,
        ast.Load,
        ast.Compare,
        ast.BoolOp,
        ast.And,
        ast.Or,
        ast.UnaryOp,
        ast.Not,
        ast.USub,
        ast.UAdd,
        ast.BinOp,
        ast.Subscript,
        ast.Attribute,
        ast.List,
        ast.Tuple,
        ast.Dict,
        ast.In,
        ast.NotIn,
        *_BINARY_OPERATORS,
        *_COMPARE_OPERATORS,
    }
)


@functools.lru_cache(maxsize=COMPILE_CACHE_SIZE)
def compile_expression(expression: str) -> ast.Expression:
    """解析并校验表达式（LRU 缓存，解释器不修改语法树）"""
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise UnsafeExpressionError("表达式过长")

    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise ExpressionEvaluationError(f"表达式语法错误: {expression}") from e

    _validate_ast(tree)
    return tree


def _validate_ast(tree: ast.Expression) -> None:
    for node in ast.walk(tree):
        node_type = type(node)
        if node_type not in _ALLOWED_NODE_TYPES:
            raise UnsafeExpressionError(f"表达式包含不允许的操作: {node_type.__name__}")

        if isinstance(node, ast.Name) and node.id.startswith("__"):
            raise UnsafeExpressionError(f"表达式不允许访问双下划线名称: {node.id}")

        if isinstance(node, ast.Attribute) and node.attr.startswith("__"):
            raise UnsafeExpressionError(f"表达式不允许访问双下划线属性: {node.attr}")


class _Interpreter:
    """白名单 AST 解释器"""

    def __init__(self, variables: Mapping[str, Any]):
        self._variables = variables

    def visit(self, node: ast.AST) -> Any:
        method = getattr(self, f"_visit_{type(node).__name__}", None)
        if method is None:
            raise UnsafeExpressionError(f"表达式包含不允许的操作: {type(node).__name__}")
        return method(node)

    def _visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def _visit_Name(self, node: ast.Name) -> Any:
        if node.id not in self._variables:
            raise ExpressionEvaluationError(f"变量未定义: {node.id}")
        return self._variables[node.id]

    def _visit_List(self, node: ast.List) -> list[Any]:
        return [self.visit(item) for item in node.elts]

    def _visit_Tuple(self, node: ast.Tuple) -> tuple[Any, ...]:
        return tuple(self.visit(item) for item in node.elts)

    def _visit_Dict(self, node: ast.Dict) -> dict[Any, Any]:
        if any(key is None for key in node.keys):
            raise UnsafeExpressionError("不允许使用 ** 解包")
        return {self.visit(k): self.visit(v) for k, v in zip(node.keys, node.values)}

    def _visit_BoolOp(self, node: ast.BoolOp) -> Any:
        # 短路求值，返回最后一个被求值的操作数（与 JS 一致）
        result: Any = None
        for value_node in node.values:
            result = self.visit(value_node)
            if isinstance(node.op, ast.And) and not is_truthy(result):
                return result
            if isinstance(node.op, ast.Or) and is_truthy(result):
                return result
        return result

    def _visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.Not):
            return not is_truthy(operand)

        number = _to_number(operand)
        if number is None:
            raise ExpressionEvaluationError(f"一元运算需要数值: {operand!r}")
        return -number if isinstance(node.op, ast.USub) else number

    def _visit_BinOp(self, node: ast.BinOp) -> Any:
        left = self.visit(node.left)
        right = self.visit(node.right)

        if isinstance(node.op, ast.Add) and (isinstance(left, str) or isinstance(right, str)):
            return format_value(left) + format_value(right)

        if not (_is_number(left) and _is_number(right)):
            raise ExpressionEvaluationError(
                f"表达式求值错误: 不支持的运算 {type(left).__name__} "
                f"{type(node.op).__name__} {type(right).__name__}"
            )
        try:
            return _BINARY_OPERATORS[type(node.op)](left, right)
        except ZeroDivisionError as e:
            raise ExpressionEvaluationError("表达式求值错误: 除数为零") from e

    def _visit_Compare(self, node: ast.Compare) -> bool:
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            if not self._compare(op, left, right):
                return False
            left = right
        return True

    def _compare(self, op: ast.cmpop, left: Any, right: Any) -> bool:
        if isinstance(op, (ast.In, ast.NotIn)):
            try:
                contained = left in right
            except TypeError as e:
                raise ExpressionEvaluationError(f"表达式求值错误: {e}") from e
            return contained if isinstance(op, ast.In) else not contained

        compare = _COMPARE_OPERATORS[type(op)]
        if not isinstance(op, _ORDERING):
            return compare(left, right)

        # 顺序比较：None 永远为假；字符串与数字混合时按数字比较
        if left is None or right is None:
            return False
        if _is_number(left) != _is_number(right):
            left, right = _to_number(left), _to_number(right)
            if left is None or right is None:
                return False
        try:
            return compare(left, right)
        except TypeError as e:
            raise ExpressionEvaluationError(f"表达式求值错误: {e}") from e

    def _visit_Subscript(self, node: ast.Subscript) -> Any:
        container = self.visit(node.value)
        key = self.visit(node.slice)
        return self._lookup(container, key)

    def _visit_Attribute(self, node: ast.Attribute) -> Any:
        return self._lookup(self.visit(node.value), node.attr)

    @staticmethod
    def _lookup(container: Any, key: Any) -> Any:
        """字典按键、列表按下标取值；不存在返回 None（对应 undefined）"""
        if isinstance(container, Mapping):
            return container.get(key)
        if isinstance(container, (list, tuple, str)):
            if isinstance(key, str) and key.isdigit():
                key = int(key)
            if isinstance(key, int) and not isinstance(key, bool) and -len(container) <= key < len(container):
                return container[key]
            if key == "length":
                return len(container)
            return None
        if container is None:
            raise ExpressionEvaluationError(f"表达式求值错误: 无法从 null 读取 {key!r}")
        return None


_BIND_PATTERN = re.compile(
    r"""("(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')|\{\{(\w+(?:\.\w+)*)\}\}"""
)


def _escape_for_quote(text: str, quote: str) -> str:
    return text.replace("\\", "\\\\").replace(quote, "\\" + quote)


def bind_placeholders(expression: str, data: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
    """把 {{path}} 占位符替换为变量引用，返回 (表达式, 变量表)

    - 字符串字面量外：同一路径绑定到同一个变量，未解析 → undefined
    - 字符串字面量内：按文本替换（未解析 → "undefined"）

    示例：
        bind_placeholders("{{a}} > {{b.c}}", {"a": 1, "b": {"c": 2}})
        # ("_v0 > _v1", {"_v0": 1, "_v1": 2})
    """
    variables: dict[str, Any] = {}
    names: dict[str, str] = {}

    def _in_string(literal: str) -> str:
        quote = literal[0]

        def _replace(match: re.Match[str]) -> str:
            value = resolve_path(data, match.group(1))
            text = "undefined" if value is MISSING else format_value(value)
            return _escape_for_quote(text, quote)

        return quote + _PLACEHOLDER_IN_STRING.sub(_replace, literal[1:-1]) + quote

    def _bind(match: re.Match[str]) -> str:
        literal, path = match.group(1), match.group(2)
        if literal is not None:
            return _in_string(literal)

        value = resolve_path(data, path)
        if value is MISSING:
            return "undefined"
        if path not in names:
            names[path] = f"_v{len(names)}"
            variables[names[path]] = value
        return names[path]

    return _BIND_PATTERN.sub(_bind, expression), variables


def translate_js_operators(expression: str) -> str:
    """把 JS 运算符写法翻译为 Python 写法（跳过字符串字面量）

    示例：
        translate_js_operators("a === 'x' && !b")  # "a == 'x'  and   not b"
    """

    def _replace(match: re.Match[str]) -> str:
        if match.group("string") is not None or match.group("placeholder") is not None:
            return match.group(0)
        if match.group("op") is not None:
            return _OPERATOR_MAP[match.group("op")]
        return _WORD_MAP[match.group("word")]

    return _TOKEN_PATTERN.sub(_replace, expression)


__all__ = [
    "ExpressionEvaluationError",
    "ExpressionEvaluator",
    "UnsafeExpressionError",
    "bind_placeholders",
    "compile_expression",
    "is_truthy",
    "translate_js_operators",
]
