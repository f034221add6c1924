"""数据库引擎配置

设计说明：
- 使用 create_engine 创建同步引擎（Repository 为同步实现）
- 从配置读取 database_url
- 非 SQLite 数据库配置连接池参数（pool_size、max_overflow）
- SQLite 关闭线程检查（后台执行任务与请求处理共用连接池）
"""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from flowrun.config import settings


def get_sync_engine(database_url: str | None = None, *, echo: bool | None = None) -> Engine:
    """创建同步数据库引擎

    参数：
        database_url: 数据库 URL（默认 settings.database_url）
        echo: 是否打印 SQL（默认 settings.debug）

    返回：
        Engine: 同步数据库引擎
    """
    url = database_url or settings.database_url
    echo = settings.debug if echo is None else echo

    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # 内存库：所有会话共享同一个连接，否则每个连接都是空库
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """创建 Session 工厂（每次调用返回新的会话）"""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
