"""Template Executor（模板执行器）

Infrastructure 层：渲染 {{path}} 模板（对象值序列化为 JSON）。
outputFormat 为 json 时尝试解析渲染结果，解析失败保留原文本。
"""

import json
from typing import Any

from flowrun.domain.entities.node import Node
from flowrun.domain.ports.node_executor import NodeExecutionContext, NodeExecutor
from flowrun.domain.services.template_renderer import render_template
from flowrun.domain.value_objects.node_config import TemplateConfig


class TemplateExecutor(NodeExecutor):
    async def execute(
        self, node: Node, inputs: dict[str, Any], context: NodeExecutionContext
    ) -> dict[str, Any]:
        config = self.require_config(node, TemplateConfig)

        rendered = render_template(config.template, inputs)
        output: Any = rendered
        if config.output_format == "json":
            try:
                output = json.loads(rendered)
            except ValueError:
                output = rendered

        return {**inputs, "output": output}
