"""数据库 Base 模型

所有 ORM 模型都继承自 Base，Base.metadata 包含所有表的元数据。
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """ORM 模型基类（SQLAlchemy 2.0 DeclarativeBase）"""

    pass
