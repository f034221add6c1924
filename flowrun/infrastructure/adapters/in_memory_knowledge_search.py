"""In-memory KnowledgeSearchPort adapter (Infrastructure).

用于本地开发与测试：文档片段保存在内存中。
- search：按查询词与片段词的重合比例打分（近似相似度），过滤低于阈值的结果
- keyword_search：按查询词在片段中的命中次数排序
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from flowrun.domain.ports.knowledge_search import KnowledgeBaseInfo, RetrievalResult

_TOKEN = re.compile(r"\w+", re.UNICODE)


def _tokens(text: str) -> list[str]:
    return [token.lower() for token in _TOKEN.findall(text)]


@dataclass
class Segment:
    segment_id: str
    document_id: str
    content: str
    document_name: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


class InMemoryKnowledgeSearch:
    def __init__(self) -> None:
        self._bases: dict[str, KnowledgeBaseInfo] = {}
        self._segments: dict[str, list[Segment]] = {}

    def add_knowledge_base(
        self, info: KnowledgeBaseInfo, segments: list[Segment] | None = None
    ) -> None:
        self._bases[info.id] = info
        self._segments.setdefault(info.id, []).extend(segments or [])

    async def get_knowledge_base(self, knowledge_base_id: str) -> KnowledgeBaseInfo | None:
        return self._bases.get(knowledge_base_id)

    async def search(
        self,
        knowledge_base_id: str,
        query: str,
        *,
        top_k: int = 5,
        score_threshold: float = 0.7,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalResult]:
        query_tokens = set(_tokens(query))
        if not query_tokens:
            return []

        scored: list[RetrievalResult] = []
        for segment in self._segments.get(knowledge_base_id, []):
            if filters and any(segment.metadata.get(k) != v for k, v in filters.items()):
                continue
            overlap = query_tokens & set(_tokens(segment.content))
            score = len(overlap) / len(query_tokens)
            if score >= score_threshold:
                scored.append(self._to_result(segment, score))

        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[:top_k]

    async def keyword_search(
        self,
        knowledge_base_id: str,
        query: str,
        *,
        top_k: int = 5,
    ) -> list[RetrievalResult]:
        query_tokens = set(_tokens(query))
        hits: list[RetrievalResult] = []
        for segment in self._segments.get(knowledge_base_id, []):
            count = sum(1 for token in _tokens(segment.content) if token in query_tokens)
            if count:
                hits.append(self._to_result(segment, float(count)))

        hits.sort(key=lambda r: r.score, reverse=True)
        return hits[:top_k]

    @staticmethod
    def _to_result(segment: Segment, score: float) -> RetrievalResult:
        return RetrievalResult(
            segment_id=segment.segment_id,
            document_id=segment.document_id,
            content=segment.content,
            score=score,
            document_name=segment.document_name,
            metadata=dict(segment.metadata),
        )
