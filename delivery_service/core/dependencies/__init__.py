"""FastAPI dependencies shared across feature routers."""

from delivery_service.core.dependencies.database import DbSessionDep, get_db_session

__all__ = ["DbSessionDep", "get_db_session"]
