"""Domain 端口"""

from flowrun.domain.ports.chat_completion import ChatCompletionPort, ChatMessage
from flowrun.domain.ports.execution_repository import ExecutionRepository
from flowrun.domain.ports.knowledge_search import (
    KnowledgeBaseInfo,
    KnowledgeSearchPort,
    RetrievalResult,
)
from flowrun.domain.ports.node_executor import (
    NodeExecutionContext,
    NodeExecutor,
    NodeExecutorRegistry,
)

__all__ = [
    "ChatCompletionPort",
    "ChatMessage",
    "ExecutionRepository",
    "KnowledgeBaseInfo",
    "KnowledgeSearchPort",
    "NodeExecutionContext",
    "NodeExecutor",
    "NodeExecutorRegistry",
    "RetrievalResult",
]
