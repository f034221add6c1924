"""Position 值对象 - 节点在画布上的位置

引擎不读取位置信息，只随图一起保存，保证编辑器往返不丢数据。
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Position:
    """Position 值对象

    属性说明：
    - x: 横坐标（像素，可以为负）
    - y: 纵坐标（像素，可以为负）

    示例：
    >>> Position(x=100, y=200) == Position(x=100, y=200)
    True
    """

    x: float = 0.0
    y: float = 0.0
