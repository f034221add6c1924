"""Code Executor（代码执行器）

Infrastructure 层：实现代码节点执行器

- javascript：在独立的 Node.js 子进程中执行，输入通过 stdin 以 JSON 传入，
  代码作为 async 函数体运行（可直接 return / await），变量 input 为上下文
- python：暂不支持，始终报错

子进程隔离了解释器状态，但不是安全沙箱（不限制文件/网络访问）。
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

from flowrun.domain.entities.node import Node
from flowrun.domain.exceptions import ExecutionTimeoutError, NodeExecutionError
from flowrun.domain.ports.node_executor import NodeExecutionContext, NodeExecutor
from flowrun.domain.value_objects.node_config import CodeConfig

logger = logging.getLogger(__name__)

RESULT_SENTINEL = "__FLOWRUN_RESULT__"

_RUNNER_SCRIPT = r"""
const fs = require("fs");
const SENTINEL = "__FLOWRUN_RESULT__";
const payload = JSON.parse(fs.readFileSync(0, "utf8"));
const AsyncFunction = Object.getPrototypeOf(async function () {}).constructor;
const emit = (data) => {
  process.stdout.write("\n" + SENTINEL + JSON.stringify(data) + "\n", () => process.exit(0));
};
(async () => {
  try {
    const fn = new AsyncFunction("input", payload.code);
    const result = await fn(payload.input);
    emit({ ok: true, result: result === undefined ? null : result });
  } catch (error) {
    emit({ ok: false, error: error && error.message ? error.message : String(error) });
  }
})();
"""


@dataclass(frozen=True)
class ScriptResult:
    ok: bool
    result: Any = None
    error: str | None = None


class JavaScriptRunner:
    """在 Node.js 子进程中执行一段 JavaScript

    参数：
        node_binary: node 可执行文件
    """

    def __init__(self, node_binary: str = "node"):
        self.node_binary = node_binary

    async def run(self, code: str, input_data: dict[str, Any], timeout_ms: int) -> ScriptResult:
        """执行代码并返回结果

        抛出：
            ExecutionTimeoutError: 超时（子进程会被终止；任务被取消时同样终止子进程）
            NodeExecutionError: 找不到 node 或进程异常退出
        """
        payload = json.dumps({"code": code, "input": input_data}, default=str).encode("utf-8")

        try:
            process = await asyncio.create_subprocess_exec(
                self.node_binary,
                "-e",
                _RUNNER_SCRIPT,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise NodeExecutionError(f"JavaScript runtime not found: {self.node_binary}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(payload), timeout=timeout_ms / 1000
            )
        except TimeoutError as e:
            raise ExecutionTimeoutError(f"Code execution timed out ({timeout_ms}ms)") from e
        finally:
            # 超时或任务被取消时子进程仍在运行
            if process.returncode is None:
                await self._kill(process)

        return self._parse_output(
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
            process.returncode,
        )

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()
        logger.info("javascript_process_killed", extra={"returncode": process.returncode})

    @staticmethod
    def _parse_output(stdout: str, stderr: str, returncode: int | None) -> ScriptResult:
        for line in reversed(stdout.splitlines()):
            if line.startswith(RESULT_SENTINEL):
                try:
                    data = json.loads(line[len(RESULT_SENTINEL) :])
                except json.JSONDecodeError:
                    continue
                return ScriptResult(
                    ok=bool(data.get("ok")), result=data.get("result"), error=data.get("error")
                )

        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no output"
        logger.warning(
            "javascript_process_failed", extra={"returncode": returncode, "stderr": stderr[-2000:]}
        )
        raise NodeExecutionError(f"JavaScript process exited with code {returncode}: {detail}")


class CodeExecutor(NodeExecutor):
    """代码节点执行器

    参数：
        runner: JavaScript 运行器
        default_timeout_ms: 节点未配置 timeout 时的超时毫秒数
    """

    def __init__(self, runner: JavaScriptRunner | None = None, default_timeout_ms: int = 30000):
        self.runner = runner or JavaScriptRunner()
        self.default_timeout_ms = default_timeout_ms

    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        config = self.require_config(node, CodeConfig)

        if not config.code.strip():
            raise NodeExecutionError("Code node has no code", node_id=node.id)

        if config.language == "python":
            raise NodeExecutionError(
                "Code execution failed: Python code execution is not implemented",
                node_id=node.id,
            )
        if config.language not in ("javascript", "js"):
            raise NodeExecutionError(
                f"Code execution failed: unsupported language: {config.language}",
                node_id=node.id,
            )

        timeout_ms = config.timeout_ms or self.default_timeout_ms
        try:
            script = await self.runner.run(config.code, inputs, timeout_ms)
        except NodeExecutionError as e:
            e.node_id = e.node_id or node.id
            raise

        if not script.ok:
            raise NodeExecutionError(f"Code execution failed: {script.error}", node_id=node.id)

        return {**inputs, "output": script.result}
