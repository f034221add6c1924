from flowrun.infrastructure.database.repositories.execution_repository import (
    SQLAlchemyExecutionRepository,
)

__all__ = ["SQLAlchemyExecutionRepository"]
