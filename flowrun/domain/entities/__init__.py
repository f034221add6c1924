"""Domain 实体"""

from flowrun.domain.entities.edge import Edge
from flowrun.domain.entities.execution import Execution
from flowrun.domain.entities.graph import Graph
from flowrun.domain.entities.node import Node
from flowrun.domain.entities.node_execution import NodeExecution

__all__ = ["Edge", "Execution", "Graph", "Node", "NodeExecution"]
