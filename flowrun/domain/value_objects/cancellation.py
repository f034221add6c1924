"""CancellationToken - 执行取消令牌

cancel() 设置令牌；引擎在每个节点开始前检查，延时节点在等待期间监听。
"""

from __future__ import annotations

import asyncio

from flowrun.domain.exceptions import WorkflowCancelledError


class CancellationToken:
    """单次执行的取消令牌

    示例：
        token = CancellationToken("exec-1")
        token.cancel()
        token.raise_if_cancelled()  # WorkflowCancelledError
    """

    def __init__(self, execution_id: str = "") -> None:
        self.execution_id = execution_id
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise WorkflowCancelledError(self.execution_id)

    async def sleep(self, seconds: float) -> None:
        """可被取消的等待

        令牌在等待期间被设置时立即抛出 WorkflowCancelledError。
        """
        if seconds <= 0:
            self.raise_if_cancelled()
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except TimeoutError:
            return
        raise WorkflowCancelledError(self.execution_id)
