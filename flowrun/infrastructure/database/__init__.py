"""Database persistence (SQLAlchemy) for executions."""
