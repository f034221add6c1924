"""Knowledge Retrieval Executor（知识检索执行器）

Infrastructure 层：渲染查询语句并检索知识库

检索策略：
- 知识库 indexing_method 为 vector / hybrid：向量检索，失败时回退到关键词检索
- 其他索引方式：关键词检索
"""

import logging
from typing import Any

from flowrun.domain.entities.node import Node
from flowrun.domain.exceptions import NodeExecutionError
from flowrun.domain.ports.knowledge_search import KnowledgeSearchPort, RetrievalResult
from flowrun.domain.ports.node_executor import NodeExecutionContext, NodeExecutor
from flowrun.domain.services.template_renderer import render_template
from flowrun.domain.value_objects.node_config import KnowledgeRetrievalConfig

logger = logging.getLogger(__name__)

VECTOR_INDEXING_METHODS = {"vector", "hybrid"}


class KnowledgeRetrievalExecutor(NodeExecutor):
    """知识检索节点执行器

    参数：
        knowledge_search: 知识检索端口
        default_top_k: 未配置 topK 时的返回条数
        default_score_threshold: 未配置 scoreThreshold 时的相似度阈值
    """

    def __init__(
        self,
        knowledge_search: KnowledgeSearchPort,
        default_top_k: int = 5,
        default_score_threshold: float = 0.7,
    ):
        self.knowledge_search = knowledge_search
        self.default_top_k = default_top_k
        self.default_score_threshold = default_score_threshold

    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        config = self.require_config(node, KnowledgeRetrievalConfig)

        if not config.knowledge_base_id or not config.query:
            raise NodeExecutionError(
                "Knowledge retrieval node is missing knowledgeBaseId or query", node_id=node.id
            )

        query = render_template(config.query, inputs)
        knowledge_base = await self.knowledge_search.get_knowledge_base(config.knowledge_base_id)
        if knowledge_base is None:
            raise NodeExecutionError(
                f"Knowledge base not found: {config.knowledge_base_id}", node_id=node.id
            )

        top_k = config.top_k or self.default_top_k
        results: list[RetrievalResult]
        if knowledge_base.indexing_method in VECTOR_INDEXING_METHODS:
            try:
                results = await self.knowledge_search.search(
                    config.knowledge_base_id,
                    query,
                    top_k=top_k,
                    score_threshold=config.score_threshold or self.default_score_threshold,
                    filters=config.filters or None,
                )
            except Exception as e:  # noqa: BLE001 - 向量检索失败回退关键词检索
                logger.warning(
                    "vector_search_failed_fallback_to_keyword",
                    extra={
                        "node_id": node.id,
                        "knowledge_base_id": config.knowledge_base_id,
                        "error": str(e),
                    },
                )
                results = await self.knowledge_search.keyword_search(
                    config.knowledge_base_id, query, top_k=top_k
                )
        else:
            results = await self.knowledge_search.keyword_search(
                config.knowledge_base_id, query, top_k=top_k
            )

        return {
            **inputs,
            "retrievalResults": [result.to_dict() for result in results],
            "retrievalCount": len(results),
        }
