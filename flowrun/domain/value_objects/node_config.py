"""节点配置 - 以节点类型为判别键的配置联合类型

业务定义：
- 每种节点类型有自己的配置结构（LLM 需要 model，HTTP 需要 url ...）
- 编辑器以 camelCase JSON 保存配置（systemPrompt、outputFormat ...）
- parse_node_config() 负责把原始字典转换为对应类型的配置对象

解析规则：
- 解析本身不抛异常：缺失字段使用空默认值，由 GraphValidator 报告
- 类型明显错误的数值字段（如 topK="abc"）按未配置处理
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from flowrun.domain.value_objects.node_type import NodeType


def _str(raw: Mapping[str, Any], *keys: str, default: str = "") -> str:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return str(value)
    return default


def _int(raw: Mapping[str, Any], *keys: str) -> int | None:
    for key in keys:
        value = raw.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            return None
    return None


def _float(raw: Mapping[str, Any], *keys: str) -> float | None:
    for key in keys:
        value = raw.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
    return None


@dataclass(frozen=True)
class StartConfig:
    type: ClassVar[NodeType] = NodeType.START

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> StartConfig:
        return cls()


@dataclass(frozen=True)
class EndConfig:
    type: ClassVar[NodeType] = NodeType.END

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> EndConfig:
        return cls()


@dataclass(frozen=True)
class LlmConfig:
    """LLM 节点配置

    属性说明：
    - model: 模型标识（必需）
    - system_prompt / user_prompt: 提示词模板，支持 {{path}} 占位符
    - temperature / max_tokens: 透传给聊天补全服务（可选）
    """

    type: ClassVar[NodeType] = NodeType.LLM

    model: str = ""
    system_prompt: str = ""
    user_prompt: str = ""
    temperature: float | None = None
    max_tokens: int | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> LlmConfig:
        return cls(
            model=_str(raw, "model"),
            system_prompt=_str(raw, "systemPrompt", "system_prompt"),
            user_prompt=_str(raw, "userPrompt", "user_prompt"),
            temperature=_float(raw, "temperature"),
            max_tokens=_int(raw, "maxTokens", "max_tokens"),
        )


@dataclass(frozen=True)
class ConditionConfig:
    """条件节点配置

    condition 示例："{{input.value}} > 10"
    """

    type: ClassVar[NodeType] = NodeType.CONDITION

    condition: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> ConditionConfig:
        return cls(condition=_str(raw, "condition"))


@dataclass(frozen=True)
class HttpConfig:
    """HTTP 节点配置

    属性说明：
    - url: 请求地址（必需，支持占位符）
    - method: GET/POST/PUT/DELETE/PATCH
    - headers: 请求头字典；也接受 JSON 字符串（执行时解析）
    - body: 请求体文本（支持占位符）；字典会被序列化为 JSON
    - timeout_ms: 超时毫秒数（None 使用执行器默认值）
    """

    type: ClassVar[NodeType] = NodeType.HTTP

    url: str = ""
    method: str = "GET"
    headers: dict[str, str] | str = field(default_factory=dict)
    body: str | None = None
    timeout_ms: int | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> HttpConfig:
        headers = raw.get("headers") or {}
        if isinstance(headers, Mapping):
            headers = {str(k): str(v) for k, v in headers.items()}
        elif not isinstance(headers, str):
            headers = {}

        body = raw.get("body")
        if isinstance(body, (dict, list)):
            body = json.dumps(body, ensure_ascii=False)
        elif body is not None:
            body = str(body)

        return cls(
            url=_str(raw, "url"),
            method=_str(raw, "method", default="GET").upper(),
            headers=headers,
            body=body,
            timeout_ms=_int(raw, "timeout", "timeoutMs"),
        )


@dataclass(frozen=True)
class CodeConfig:
    """代码节点配置

    language: "javascript" | "python"（python 暂不支持执行）
    """

    type: ClassVar[NodeType] = NodeType.CODE

    language: str = "javascript"
    code: str = ""
    timeout_ms: int | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> CodeConfig:
        return cls(
            language=_str(raw, "language", default="javascript").lower(),
            code=_str(raw, "code"),
            timeout_ms=_int(raw, "timeout", "timeoutMs"),
        )


@dataclass(frozen=True)
class ParameterSpec:
    """单个待提取参数

    属性说明：
    - name: 参数名（写回上下文时使用的键）
    - type: string/number/boolean/object/array
    - path: 提取路径（点号路径，可带 "$." 前缀）；为空时按 name 直接取值
    - default_value / has_default: 默认值；has_default 区分“未配置”与“默认值为 null”
    """

    name: str
    type: str = "string"
    path: str | None = None
    default_value: Any = None
    has_default: bool = False

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> ParameterSpec:
        return cls(
            name=_str(raw, "name"),
            type=_str(raw, "type", default="string"),
            path=raw.get("path") or None,
            default_value=raw.get("defaultValue", raw.get("default_value")),
            has_default="defaultValue" in raw or "default_value" in raw,
        )


@dataclass(frozen=True)
class ParameterConfig:
    type: ClassVar[NodeType] = NodeType.PARAMETER

    parameters: tuple[ParameterSpec, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> ParameterConfig:
        items = raw.get("parameters") or []
        return cls(
            parameters=tuple(
                ParameterSpec.from_dict(item) for item in items if isinstance(item, Mapping)
            )
        )


@dataclass(frozen=True)
class TemplateConfig:
    type: ClassVar[NodeType] = NodeType.TEMPLATE

    template: str = ""
    output_format: str = "text"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> TemplateConfig:
        return cls(
            template=_str(raw, "template"),
            output_format=_str(raw, "outputFormat", "output_format", default="text").lower(),
        )


@dataclass(frozen=True)
class KnowledgeRetrievalConfig:
    """知识检索节点配置

    top_k / score_threshold 未配置时使用执行器默认值（5 / 0.7）
    """

    type: ClassVar[NodeType] = NodeType.KNOWLEDGE_RETRIEVAL

    knowledge_base_id: str = ""
    query: str = ""
    top_k: int | None = None
    score_threshold: float | None = None
    filters: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> KnowledgeRetrievalConfig:
        filters = raw.get("filters")
        return cls(
            knowledge_base_id=_str(raw, "knowledgeBaseId", "knowledge_base_id"),
            query=_str(raw, "query"),
            top_k=_int(raw, "topK", "top_k"),
            score_threshold=_float(raw, "scoreThreshold", "score_threshold"),
            filters=dict(filters) if isinstance(filters, Mapping) else {},
        )


@dataclass(frozen=True)
class DelayConfig:
    type: ClassVar[NodeType] = NodeType.DELAY

    delay_ms: int = 0

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> DelayConfig:
        return cls(delay_ms=_int(raw, "delayMs", "delay_ms") or 0)


@dataclass(frozen=True)
class CommentConfig:
    type: ClassVar[NodeType] = NodeType.COMMENT

    text: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> CommentConfig:
        return cls(text=_str(raw, "text"))


@dataclass(frozen=True)
class SubWorkflowConfig:
    """子工作流节点配置

    workflow_id: 被调用的工作流 ID；mode: "call" | "embed"
    """

    type: ClassVar[NodeType] = NodeType.SUB_WORKFLOW

    workflow_id: str = ""
    mode: str = "call"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> SubWorkflowConfig:
        return cls(
            workflow_id=_str(raw, "workflowId", "workflow_id"),
            mode=_str(raw, "mode", default="call").lower(),
        )


NodeConfig = (
    StartConfig
    | EndConfig
    | LlmConfig
    | ConditionConfig
    | HttpConfig
    | CodeConfig
    | ParameterConfig
    | TemplateConfig
    | KnowledgeRetrievalConfig
    | DelayConfig
    | CommentConfig
    | SubWorkflowConfig
)

_CONFIG_TYPES: dict[NodeType, type] = {
    config_cls.type: config_cls
    for config_cls in (
        StartConfig,
        EndConfig,
        LlmConfig,
        ConditionConfig,
        HttpConfig,
        CodeConfig,
        ParameterConfig,
        TemplateConfig,
        KnowledgeRetrievalConfig,
        DelayConfig,
        CommentConfig,
        SubWorkflowConfig,
    )
}


def parse_node_config(node_type: NodeType, raw: Mapping[str, Any] | None) -> NodeConfig:
    """把编辑器保存的原始配置解析为类型化配置

    参数：
        node_type: 节点类型（判别键）
        raw: 原始配置字典（可以为 None）

    返回：
        与 node_type 对应的配置对象
    """
    config_cls = _CONFIG_TYPES[NodeType(node_type)]
    return config_cls.from_dict(raw if isinstance(raw, Mapping) else {})


__all__ = [
    "CodeConfig",
    "CommentConfig",
    "ConditionConfig",
    "DelayConfig",
    "EndConfig",
    "HttpConfig",
    "KnowledgeRetrievalConfig",
    "LlmConfig",
    "NodeConfig",
    "ParameterConfig",
    "ParameterSpec",
    "StartConfig",
    "SubWorkflowConfig",
    "TemplateConfig",
    "parse_node_config",
]
