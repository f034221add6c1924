"""KnowledgeSearch Port - 知识库检索接口

knowledge_retrieval 节点通过该端口：
1. 查询知识库的索引方式（vector / hybrid / keyword）
2. 执行向量检索；失败时回退到关键词检索
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class KnowledgeBaseInfo:
    id: str
    name: str = ""
    indexing_method: str = "vector"


@dataclass(frozen=True)
class RetrievalResult:
    """一条检索结果（文档片段）"""

    segment_id: str
    document_id: str
    content: str
    score: float
    document_name: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "segmentId": self.segment_id,
            "documentId": self.document_id,
            "documentName": self.document_name,
            "content": self.content,
            "score": self.score,
            "metadata": dict(self.metadata),
        }


class KnowledgeSearchPort(Protocol):
    """知识检索端口"""

    async def get_knowledge_base(self, knowledge_base_id: str) -> KnowledgeBaseInfo | None:
        """获取知识库信息，不存在返回 None"""
        ...

    async def search(
        self,
        knowledge_base_id: str,
        query: str,
        *,
        top_k: int = 5,
        score_threshold: float = 0.7,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalResult]:
        """向量检索（按相似度降序，过滤低于阈值的结果）"""
        ...

    async def keyword_search(
        self,
        knowledge_base_id: str,
        query: str,
        *,
        top_k: int = 5,
    ) -> list[RetrievalResult]:
        """关键词检索（向量检索的回退方案，结果形状相同）"""
        ...
