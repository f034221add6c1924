"""LLM OpenAI Adapter - 真实OpenAI API调用实现.

职责:
- 实现 ChatCompletionPort，供 LLM 节点调用
- 支持自定义 base_url（兼容 OpenAI 协议的本地/私有部署）
"""

from typing import Any

from flowrun.domain.ports.chat_completion import ChatMessage


class LLMOpenAIAdapter:
    """ChatCompletionPort 的 OpenAI 实现."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
    ) -> None:
        """初始化OpenAI Adapter.

        参数:
            api_key: OpenAI API密钥
            base_url: API基础URL(支持自定义端点)
        """
        # 延迟导入,避免未使用OpenAI时加载SDK
        from openai import AsyncOpenAI

        if not api_key:
            raise ValueError(
                "OpenAI API key is required. Please set OPENAI_API_KEY in your .env file."
            )

        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def complete(
        self,
        model: str,
        messages: list[ChatMessage],
        **kwargs: Any,
    ) -> str:
        """调用 Chat Completions API 并返回完整文本.

        异常:
            openai.APIError: API调用失败
            RuntimeError: 返回内容为空
        """
        response = await self.client.chat.completions.create(
            model=model,
            messages=[message.to_dict() for message in messages],
            **kwargs,
        )

        content = response.choices[0].message.content
        if content is None:
            raise RuntimeError(f"OpenAI returned empty content. Response: {response}")

        return content
