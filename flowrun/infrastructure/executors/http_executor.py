"""HTTP Executor（HTTP 执行器）

Infrastructure 层：实现 HTTP 请求节点执行器

流程：
1. 渲染 url / headers / body 中的 {{path}} 占位符
2. 校验 URL（只允许 http/https 且必须有主机名）
3. 发送请求（GET/HEAD 不带请求体），超时默认 30000ms
4. 响应体能解析为 JSON 时返回 JSON，否则返回文本；非 2xx 状态不视为失败
"""

import json
import logging
from typing import Any

import httpx

from flowrun.domain.entities.node import Node
from flowrun.domain.exceptions import ExecutionTimeoutError, NodeExecutionError
from flowrun.domain.ports.node_executor import NodeExecutionContext, NodeExecutor
from flowrun.domain.services.template_renderer import render_template
from flowrun.domain.value_objects.node_config import HttpConfig

logger = logging.getLogger(__name__)

_BODYLESS_METHODS = {"GET", "HEAD"}


class HttpExecutor(NodeExecutor):
    """HTTP 请求节点执行器

    参数：
        default_timeout_ms: 节点未配置 timeout 时的超时毫秒数
    """

    def __init__(self, default_timeout_ms: int = 30000):
        self.default_timeout_ms = default_timeout_ms

    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        """执行 HTTP 请求节点

        配置参数：
            url: 请求 URL
            method: 请求方法（GET, POST, PUT, DELETE, PATCH）
            headers: 请求头（字典或 JSON 字符串）
            body: 请求体文本
            timeout: 超时毫秒数
        """
        config = self.require_config(node, HttpConfig)

        url = self._build_url(render_template(config.url, inputs).strip(), node)
        headers = self._build_headers(config.headers, inputs, node)
        method = config.method or "GET"

        body: str | None = None
        if config.body and method not in _BODYLESS_METHODS:
            body = render_template(config.body, inputs)

        timeout_ms = config.timeout_ms or self.default_timeout_ms
        try:
            async with httpx.AsyncClient(timeout=timeout_ms / 1000) as client:
                response = await client.request(method, url, headers=headers, content=body)
        except httpx.TimeoutException as e:
            logger.warning("http_node_timeout", extra={"node_id": node.id, "url": url})
            raise ExecutionTimeoutError(
                f"HTTP request timed out ({timeout_ms}ms)", node_id=node.id
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(
                "http_node_request_failed",
                extra={"node_id": node.id, "url": url, "error": str(e)},
            )
            raise NodeExecutionError(f"HTTP request failed: {e}", node_id=node.id) from e

        return {
            **inputs,
            "output": self._parse_body(response.text),
            "status": response.status_code,
            "statusText": response.reason_phrase,
            "headers": dict(response.headers),
        }

    @staticmethod
    def _build_url(url: str, node: Node) -> str:
        if not url:
            raise NodeExecutionError("HTTP node has no URL configured", node_id=node.id)
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise NodeExecutionError(f"Invalid URL: {url}", node_id=node.id) from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise NodeExecutionError(f"Invalid URL: {url}", node_id=node.id)
        return url

    @staticmethod
    def _build_headers(
        raw: dict[str, str] | str, inputs: dict[str, Any], node: Node
    ) -> dict[str, str]:
        if isinstance(raw, str):
            text = render_template(raw, inputs).strip()
            if not text:
                return {}
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError as e:
                raise NodeExecutionError(f"Invalid headers JSON: {text}", node_id=node.id) from e
            if not isinstance(parsed, dict):
                raise NodeExecutionError("Headers must be a JSON object", node_id=node.id)
            raw = {str(k): str(v) for k, v in parsed.items()}

        return {key: render_template(value, inputs) for key, value in raw.items()}

    @staticmethod
    def _parse_body(text: str) -> Any:
        try:
            return json.loads(text)
        except ValueError:
            return text
