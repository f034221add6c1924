"""LLM Stub Adapter - 返回固定响应的确定性实现.

职责:
- 提供完全确定性的LLM响应(用于测试与无 API Key 的本地开发)
- 支持基于 user 消息 hash 的响应映射
"""

import hashlib
from typing import Any

from flowrun.domain.ports.chat_completion import ChatMessage


def prompt_hash(prompt: str) -> str:
    return hashlib.md5(prompt.encode("utf-8")).hexdigest()


class LLMStubAdapter:
    """ChatCompletionPort 的 Stub 实现.

    参数:
        fixed_responses: prompt_hash -> response 的映射(可选)
        default_response: 未命中映射时的响应
    """

    def __init__(
        self,
        fixed_responses: dict[str, str] | None = None,
        default_response: str = "stubbed_llm_output",
    ) -> None:
        self.fixed_responses = fixed_responses or {}
        self.default_response = default_response
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        model: str,
        messages: list[ChatMessage],
        **kwargs: Any,
    ) -> str:
        self.calls.append({"model": model, "messages": list(messages), **kwargs})
        user_prompt = next(
            (m.content for m in reversed(messages) if m.role == "user"), ""
        )
        return self.fixed_responses.get(prompt_hash(user_prompt), self.default_response)
