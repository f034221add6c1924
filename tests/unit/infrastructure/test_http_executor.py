"""HttpExecutor 单元测试

测试原则：
- 使用 monkeypatch 隔离 httpx.AsyncClient（不依赖真实网络）
- Fake objects pattern: _FakeResponse、_FakeAsyncClient、_FakeHTTPXState
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest

from flowrun.domain.entities.node import Node
from flowrun.domain.exceptions import ExecutionTimeoutError, NodeExecutionError
from flowrun.infrastructure.executors.http_executor import HttpExecutor

# ====================
# Fake Objects
# ====================


@dataclass
class _FakeHTTPXState:
    """记录 httpx 调用状态"""

    init_timeouts: list[Any] = field(default_factory=list)
    request_calls: list[dict[str, Any]] = field(default_factory=list)
    response: Any = None
    error: Exception | None = None


class _FakeResponse:
    """模拟 httpx.Response 对象"""

    def __init__(
        self,
        *,
        status_code: int = 200,
        text: str = "",
        reason_phrase: str = "OK",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self.text = text
        self.reason_phrase = reason_phrase
        self.headers = headers or {"content-type": "application/json"}


class _FakeAsyncClient:
    """模拟 httpx.AsyncClient（async context manager）"""

    def __init__(self, state: _FakeHTTPXState, timeout: Any = None) -> None:
        self._state = state
        state.init_timeouts.append(timeout)

    async def __aenter__(self) -> _FakeAsyncClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def request(self, method: str, url: str, **kwargs: Any) -> _FakeResponse:
        self._state.request_calls.append({"method": method, "url": url, **kwargs})
        if self._state.error is not None:
            raise self._state.error
        return self._state.response or _FakeResponse(text='{"ok": true}')


@pytest.fixture
def fake_httpx(monkeypatch) -> _FakeHTTPXState:
    state = _FakeHTTPXState()

    def _factory(*args: Any, **kwargs: Any) -> _FakeAsyncClient:
        return _FakeAsyncClient(state, timeout=kwargs.get("timeout"))

    monkeypatch.setattr(httpx, "AsyncClient", _factory)
    return state


def _http_node(**config: Any) -> Node:
    return Node.create("http", "Fetch", config, id="http_1")


# ====================
# Tests
# ====================


class TestHttpExecutorRequest:
    @pytest.mark.asyncio
    async def test_get_parses_json_response(self, fake_httpx, node_context) -> None:
        """测试：GET 请求返回 JSON

        Given: 响应体为 JSON 文本
        When: 执行 GET
        Then: output 为解析后的对象，status/statusText/headers 一并返回
        """
        node = _http_node(url="https://api.test/users/{{input.id}}")

        result = await HttpExecutor().execute(node, {"id": 7}, node_context)

        assert fake_httpx.request_calls == [
            {"method": "GET", "url": "https://api.test/users/7", "headers": {}, "content": None}
        ]
        assert result["output"] == {"ok": True}
        assert result["status"] == 200
        assert result["statusText"] == "OK"
        assert result["headers"] == {"content-type": "application/json"}
        assert result["id"] == 7

    @pytest.mark.asyncio
    async def test_get_ignores_body(self, fake_httpx, node_context) -> None:
        node = _http_node(url="https://api.test", method="GET", body="{{input.x}}")

        await HttpExecutor().execute(node, {"x": 1}, node_context)

        assert fake_httpx.request_calls[0]["content"] is None

    @pytest.mark.asyncio
    async def test_post_renders_body_and_headers(self, fake_httpx, node_context) -> None:
        node = _http_node(
            url="https://api.test/items",
            method="post",
            headers='{"Authorization": "Bearer {{token}}"}',
            body='{"name": "{{input.name}}"}',
        )

        await HttpExecutor().execute(node, {"token": "t0k", "name": "Ada"}, node_context)

        call = fake_httpx.request_calls[0]
        assert call["method"] == "POST"
        assert call["headers"] == {"Authorization": "Bearer t0k"}
        assert call["content"] == '{"name": "Ada"}'

    @pytest.mark.asyncio
    async def test_text_response_and_error_status_are_not_failures(
        self, fake_httpx, node_context
    ) -> None:
        fake_httpx.response = _FakeResponse(
            status_code=404, text="not found", reason_phrase="Not Found", headers={}
        )

        result = await HttpExecutor().execute(_http_node(url="https://a.test"), {}, node_context)

        assert result["output"] == "not found"
        assert result["status"] == 404
        assert result["statusText"] == "Not Found"

    @pytest.mark.asyncio
    async def test_timeout_configuration(self, fake_httpx, node_context) -> None:
        await HttpExecutor().execute(_http_node(url="https://a.test"), {}, node_context)
        await HttpExecutor().execute(
            _http_node(url="https://a.test", timeout=1500), {}, node_context
        )

        assert fake_httpx.init_timeouts == [30.0, 1.5]


class TestHttpExecutorErrors:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["not a url", "ftp://files.test/x", "{{missing}}"])
    async def test_malformed_url(self, fake_httpx, node_context, url) -> None:
        """测试：URL 不合法

        Given: 非 http/https 或无法解析的 URL
        When: 执行
        Then: NodeExecutionError("Invalid URL: ...")，不会发出请求
        """
        with pytest.raises(NodeExecutionError, match="Invalid URL: ") as exc_info:
            await HttpExecutor().execute(_http_node(url=url), {}, node_context)

        assert exc_info.value.node_id == "http_1"
        assert fake_httpx.request_calls == []

    @pytest.mark.asyncio
    async def test_missing_url(self, fake_httpx, node_context) -> None:
        with pytest.raises(NodeExecutionError, match="HTTP node has no URL configured"):
            await HttpExecutor().execute(_http_node(), {}, node_context)

    @pytest.mark.asyncio
    async def test_invalid_headers_json(self, fake_httpx, node_context) -> None:
        node = _http_node(url="https://a.test", headers="{not json")

        with pytest.raises(NodeExecutionError, match="Invalid headers JSON"):
            await HttpExecutor().execute(node, {}, node_context)

    @pytest.mark.asyncio
    async def test_headers_must_be_object(self, fake_httpx, node_context) -> None:
        node = _http_node(url="https://a.test", headers="[1, 2]")

        with pytest.raises(NodeExecutionError, match="Headers must be a JSON object"):
            await HttpExecutor().execute(node, {}, node_context)

    @pytest.mark.asyncio
    async def test_timeout_raises_execution_timeout(self, fake_httpx, node_context) -> None:
        fake_httpx.error = httpx.ReadTimeout("timed out")

        with pytest.raises(ExecutionTimeoutError, match=r"HTTP request timed out \(250ms\)"):
            await HttpExecutor(default_timeout_ms=250).execute(
                _http_node(url="https://a.test"), {}, node_context
            )

    @pytest.mark.asyncio
    async def test_transport_error(self, fake_httpx, node_context) -> None:
        fake_httpx.error = httpx.ConnectError("connection refused")

        with pytest.raises(NodeExecutionError, match="HTTP request failed: connection refused"):
            await HttpExecutor().execute(_http_node(url="https://a.test"), {}, node_context)
