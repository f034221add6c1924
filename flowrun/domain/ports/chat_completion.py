"""ChatCompletion Port - 聊天补全服务接口

LLM 节点只依赖这个接口；OpenAI / Stub 等实现在 infrastructure/adapters。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol


@dataclass(frozen=True)
class ChatMessage:
    role: Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ChatCompletionPort(Protocol):
    """聊天补全接口"""

    async def complete(
        self,
        model: str,
        messages: list[ChatMessage],
        **kwargs: Any,
    ) -> str:
        """生成回复文本

        参数：
            model: 模型标识
            messages: 对话消息
            **kwargs: temperature / max_tokens 等可选参数

        返回：
            生成的文本

        异常：
            任意异常：由 LLM 执行器包装为 NodeExecutionError
        """
        ...
