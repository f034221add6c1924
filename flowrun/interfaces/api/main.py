"""FastAPI 应用入口"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flowrun.application.services.workflow_execution_service import WorkflowExecutionService
from flowrun.config import Settings, configure_logging, settings
from flowrun.domain.ports.chat_completion import ChatCompletionPort
from flowrun.domain.ports.execution_repository import ExecutionRepository
from flowrun.domain.ports.knowledge_search import KnowledgeSearchPort
from flowrun.domain.services.workflow_engine import WorkflowEngine
from flowrun.infrastructure.adapters import (
    InMemoryExecutionRepository,
    InMemoryKnowledgeSearch,
    LLMStubAdapter,
)
from flowrun.infrastructure.executors import create_executor_registry
from flowrun.interfaces.api.container import ApiContainer
from flowrun.interfaces.api.routes import executions as executions_routes
from flowrun.interfaces.api.routes import workflows as workflows_routes

logger = logging.getLogger(__name__)


def _build_repository(config: Settings) -> ExecutionRepository:
    if config.execution_store == "database":
        from flowrun.infrastructure.database.engine import create_session_factory, get_sync_engine
        from flowrun.infrastructure.database.repositories import SQLAlchemyExecutionRepository
        from flowrun.infrastructure.database.schema import ensure_schema

        engine = get_sync_engine(config.database_url, echo=config.debug)
        ensure_schema(engine)
        return SQLAlchemyExecutionRepository(create_session_factory(engine))

    return InMemoryExecutionRepository()


def _build_chat_completion(config: Settings) -> ChatCompletionPort:
    if config.llm_provider == "openai":
        if config.openai_api_key:
            from flowrun.infrastructure.adapters.llm_openai_adapter import LLMOpenAIAdapter

            return LLMOpenAIAdapter(config.openai_api_key, config.openai_base_url)
        logger.warning("openai_api_key_missing", extra={"fallback": "stub"})

    return LLMStubAdapter()


def build_container(
    config: Settings,
    *,
    chat_completion: ChatCompletionPort | None = None,
    knowledge_search: KnowledgeSearchPort | None = None,
    repository: ExecutionRepository | None = None,
) -> ApiContainer:
    """组装 ApiContainer（composition root）

    参数：
        config: 应用配置
        chat_completion / knowledge_search / repository: 显式注入的适配器（为空时按配置创建）
    """
    repository = repository or _build_repository(config)
    executor_registry = create_executor_registry(
        chat_completion or _build_chat_completion(config),
        knowledge_search or InMemoryKnowledgeSearch(),
        default_llm_model=config.openai_model,
        http_timeout_ms=config.http_node_timeout_ms,
        code_timeout_ms=config.code_node_timeout_ms,
        node_binary=config.node_binary,
        knowledge_top_k=config.knowledge_top_k,
        knowledge_score_threshold=config.knowledge_score_threshold,
    )
    engine = WorkflowEngine(
        executor_registry=executor_registry,
        repository=repository,
        max_node_visits=config.max_node_visits,
    )
    return ApiContainer(
        executor_registry=executor_registry,
        execution_repository=repository,
        execution_service=WorkflowExecutionService(engine=engine, repository=repository),
    )


def _get_display_host(config: Settings) -> str:
    """Return a host suitable for displaying in links."""
    if config.host in {"0.0.0.0", "::"}:
        return "127.0.0.1"
    return config.host


def create_app(
    config: Settings | None = None,
    *,
    container: ApiContainer | None = None,
) -> FastAPI:
    """创建 FastAPI 应用

    参数：
        config: 应用配置（默认全局 settings）
        container: 预先组装的容器（测试注入，默认在 lifespan 中按配置组装）
    """
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        configure_logging(config)
        logger.info(
            "app_starting",
            extra={
                "app_name": config.app_name,
                "version": config.app_version,
                "env": config.env,
                "execution_store": config.execution_store,
                "url": f"http://{_get_display_host(config)}:{config.port}",
            },
        )
        app.state.container = container or build_container(config)
        try:
            yield
        finally:
            await app.state.container.execution_service.shutdown()
            logger.info("app_shutdown", extra={"app_name": config.app_name})

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="工作流图校验与执行引擎",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["Health"])
    async def health_check() -> JSONResponse:
        return JSONResponse(
            content={
                "status": "healthy",
                "app_name": config.app_name,
                "version": config.app_version,
                "env": config.env,
            }
        )

    # executions 路由先注册：/workflows/executions/{id} 优先于 /workflows/{graph_id}/...
    app.include_router(executions_routes.router, prefix="/api")
    app.include_router(workflows_routes.router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "flowrun.interfaces.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
