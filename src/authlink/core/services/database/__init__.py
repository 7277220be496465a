from .barrier import SchemaBarrier
from .db_manage import DbManageService
from .db_session import DbSessionService, create_db_engine

__all__ = ["DbManageService", "DbSessionService", "SchemaBarrier", "create_db_engine"]
