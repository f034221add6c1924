"""数据库表结构初始化

execution_store=database 时在应用启动阶段调用，创建缺失的表（已存在的表不修改）。
"""

from __future__ import annotations

from sqlalchemy import Engine

from flowrun.infrastructure.database.base import Base


def ensure_schema(engine: Engine) -> None:
    """创建 ORM 模型对应的表（幂等）"""

    # 导入模型以注册到 Base.metadata
    from flowrun.infrastructure.database import models as _models  # noqa: F401

    Base.metadata.create_all(bind=engine)
