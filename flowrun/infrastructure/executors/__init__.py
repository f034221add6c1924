"""Executors（执行器）

Infrastructure 层：节点执行器实现

导出所有执行器和工厂函数
"""

from flowrun.domain.ports.chat_completion import ChatCompletionPort
from flowrun.domain.ports.knowledge_search import KnowledgeSearchPort
from flowrun.domain.ports.node_executor import NodeExecutorRegistry
from flowrun.domain.services.expression_evaluator import ExpressionEvaluator
from flowrun.domain.value_objects.node_type import NodeType
from flowrun.infrastructure.executors.base_executor import (
    CommentExecutor,
    DelayExecutor,
    EndExecutor,
    StartExecutor,
    SubWorkflowExecutor,
)
from flowrun.infrastructure.executors.code_executor import CodeExecutor, JavaScriptRunner
from flowrun.infrastructure.executors.condition_executor import ConditionExecutor
from flowrun.infrastructure.executors.http_executor import HttpExecutor
from flowrun.infrastructure.executors.knowledge_retrieval_executor import (
    KnowledgeRetrievalExecutor,
)
from flowrun.infrastructure.executors.llm_executor import LlmExecutor
from flowrun.infrastructure.executors.parameter_executor import ParameterExecutor
from flowrun.infrastructure.executors.template_executor import TemplateExecutor

__all__ = [
    "StartExecutor",
    "EndExecutor",
    "CommentExecutor",
    "DelayExecutor",
    "SubWorkflowExecutor",
    "LlmExecutor",
    "ConditionExecutor",
    "HttpExecutor",
    "CodeExecutor",
    "JavaScriptRunner",
    "ParameterExecutor",
    "TemplateExecutor",
    "KnowledgeRetrievalExecutor",
    "create_executor_registry",
]


def create_executor_registry(
    chat_completion: ChatCompletionPort,
    knowledge_search: KnowledgeSearchPort,
    *,
    default_llm_model: str = "gpt-4o-mini",
    http_timeout_ms: int = 30000,
    code_timeout_ms: int = 30000,
    node_binary: str = "node",
    knowledge_top_k: int = 5,
    knowledge_score_threshold: float = 0.7,
) -> NodeExecutorRegistry:
    """创建执行器注册表

    参数：
        chat_completion: LLM 节点使用的聊天补全服务
        knowledge_search: 知识检索节点使用的检索服务
        default_llm_model: LLM 节点未配置模型时的默认模型
        http_timeout_ms / code_timeout_ms: 默认超时毫秒数
        node_binary: 执行 JavaScript 的 node 可执行文件
        knowledge_top_k / knowledge_score_threshold: 知识检索默认参数

    返回：
        注册了全部内置节点类型的注册表
    """
    registry = NodeExecutorRegistry()

    registry.register(NodeType.START, StartExecutor())
    registry.register(NodeType.END, EndExecutor())
    registry.register(NodeType.COMMENT, CommentExecutor())
    registry.register(NodeType.DELAY, DelayExecutor())
    registry.register(NodeType.SUB_WORKFLOW, SubWorkflowExecutor())

    registry.register(NodeType.LLM, LlmExecutor(chat_completion, default_model=default_llm_model))
    registry.register(NodeType.CONDITION, ConditionExecutor(ExpressionEvaluator()))
    registry.register(NodeType.HTTP, HttpExecutor(default_timeout_ms=http_timeout_ms))
    registry.register(
        NodeType.CODE,
        CodeExecutor(JavaScriptRunner(node_binary), default_timeout_ms=code_timeout_ms),
    )
    registry.register(NodeType.PARAMETER, ParameterExecutor())
    registry.register(NodeType.TEMPLATE, TemplateExecutor())
    registry.register(
        NodeType.KNOWLEDGE_RETRIEVAL,
        KnowledgeRetrievalExecutor(
            knowledge_search,
            default_top_k=knowledge_top_k,
            default_score_threshold=knowledge_score_threshold,
        ),
    )

    return registry
