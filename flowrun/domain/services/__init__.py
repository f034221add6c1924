"""Domain services: validation, placeholder rendering, expression evaluation, traversal."""

from flowrun.domain.services.expression_evaluator import (
    ExpressionEvaluationError,
    ExpressionEvaluator,
    UnsafeExpressionError,
)
from flowrun.domain.services.graph_validator import GraphValidator, validate_graph
from flowrun.domain.services.template_renderer import render_template, resolve_path
from flowrun.domain.services.workflow_engine import WorkflowEngine

__all__ = [
    "ExpressionEvaluationError",
    "ExpressionEvaluator",
    "GraphValidator",
    "UnsafeExpressionError",
    "WorkflowEngine",
    "render_template",
    "resolve_path",
    "validate_graph",
]
