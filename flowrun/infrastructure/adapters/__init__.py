from flowrun.infrastructure.adapters.in_memory_execution_repository import (
    InMemoryExecutionRepository,
)
from flowrun.infrastructure.adapters.in_memory_knowledge_search import InMemoryKnowledgeSearch
from flowrun.infrastructure.adapters.llm_stub_adapter import LLMStubAdapter

__all__ = ["InMemoryExecutionRepository", "InMemoryKnowledgeSearch", "LLMStubAdapter"]
