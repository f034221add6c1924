"""LLM Executor（LLM 执行器）

Infrastructure 层：实现 LLM 文本生成节点执行器

流程：
1. 用上下文渲染 systemPrompt / userPrompt 中的 {{path}} 占位符
2. 组装消息（systemPrompt 为空时只发送 user 消息）
3. 调用 ChatCompletionPort，返回 input + output + model
"""

import logging
from typing import Any

from flowrun.domain.entities.node import Node
from flowrun.domain.exceptions import NodeExecutionError
from flowrun.domain.ports.chat_completion import ChatCompletionPort, ChatMessage
from flowrun.domain.ports.node_executor import NodeExecutionContext, NodeExecutor
from flowrun.domain.services.template_renderer import render_template
from flowrun.domain.value_objects.node_config import LlmConfig

logger = logging.getLogger(__name__)


class LlmExecutor(NodeExecutor):
    """LLM 文本生成节点执行器

    参数：
        chat_completion: 聊天补全服务
        default_model: 节点未配置 model 时使用的模型
    """

    def __init__(self, chat_completion: ChatCompletionPort, default_model: str = "gpt-4o-mini"):
        self.chat_completion = chat_completion
        self.default_model = default_model

    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        config = self.require_config(node, LlmConfig)

        system_prompt = render_template(config.system_prompt, inputs)
        user_prompt = render_template(config.user_prompt, inputs)

        messages: list[ChatMessage] = []
        if system_prompt:
            messages.append(ChatMessage(role="system", content=system_prompt))
        messages.append(ChatMessage(role="user", content=user_prompt))

        kwargs: dict[str, Any] = {}
        if config.temperature is not None:
            kwargs["temperature"] = config.temperature
        if config.max_tokens is not None:
            kwargs["max_tokens"] = config.max_tokens

        model = config.model or self.default_model
        try:
            text = await self.chat_completion.complete(model, messages, **kwargs)
        except NodeExecutionError:
            raise
        except Exception as e:
            logger.warning(
                "llm_call_failed",
                extra={"node_id": node.id, "model": model, "error": str(e)},
            )
            raise NodeExecutionError(f"LLM call failed: {e}", node_id=node.id) from e

        return {**inputs, "output": text, "model": model}
