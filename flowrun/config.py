"""应用配置模块 - 使用 Pydantic Settings 管理环境变量"""

import logging
from typing import Any, Literal, TextIO

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Flowrun", description="应用名称")
    app_version: str = Field(default="0.1.0", description="应用版本")
    env: Literal["development", "production", "test"] = Field(
        default="development", description="运行环境"
    )
    debug: bool = Field(default=False, description="调试模式")
    log_level: str = Field(default="INFO", description="日志级别")
    log_format: Literal["json", "text"] = Field(default="text", description="日志格式")

    # Server
    host: str = Field(default="0.0.0.0", description="服务器地址")
    port: int = Field(default=8000, description="服务器端口")
    reload: bool = Field(default=False, description="热重载")

    # Execution store
    execution_store: Literal["memory", "database"] = Field(
        default="memory", description="执行记录存储（memory / database）"
    )
    database_url: str = Field(
        default="sqlite:///./flowrun.db",
        description="数据库连接 URL（execution_store=database 时使用）",
    )

    # LLM Provider
    llm_provider: Literal["openai", "stub"] = Field(default="openai", description="LLM 提供方")
    openai_api_key: str = Field(default="", description="OpenAI API Key")
    openai_base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI Base URL")
    openai_model: str = Field(default="gpt-4o-mini", description="LLM 节点未指定模型时的默认模型")

    # Node executors
    http_node_timeout_ms: int = Field(default=30000, description="HTTP 节点默认超时（毫秒）")
    code_node_timeout_ms: int = Field(default=30000, description="代码节点默认超时（毫秒）")
    node_binary: str = Field(default="node", description="执行 JavaScript 代码节点的 Node.js 可执行文件")
    knowledge_top_k: int = Field(default=5, description="知识检索默认返回条数")
    knowledge_score_threshold: float = Field(default=0.7, description="知识检索默认相似度阈值")

    # Engine
    max_node_visits: int = Field(
        default=0, description="单次执行最大节点访问次数（0 表示不限制）"
    )

    # CORS
    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
        description="允许的跨域源",
    )


LOG_HANDLER_NAME = "flowrun"

_SHARED_PROCESSORS: list[Any] = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.stdlib.ExtraAdder(),
]


def configure_logging(config: Settings | None = None, *, stream: TextIO | None = None) -> None:
    """按配置初始化根日志（应用启动时调用一次）

    标准库 logger 的 extra 字段由 structlog 合并到事件中：
    - json：每行一个 JSON 对象（JSONRenderer）
    - text：ConsoleRenderer 的 key=value 格式

    参数：
        config: 应用配置（默认全局 settings）
        stream: 输出流（默认 stderr）
    """
    config = config or settings
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    processors: list[Any] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if config.log_format == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        # ConsoleRenderer 自行格式化异常
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS, processors=processors
    )

    handler = logging.StreamHandler(stream)
    handler.set_name(LOG_HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == LOG_HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)


# 全局配置实例
settings = Settings()
