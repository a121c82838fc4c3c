"""Database layer: engine, session, ORM base."""

from forecast_core.db.base import Base
from forecast_core.db.engine import get_engine, get_session, init_engine

__all__ = ["Base", "get_engine", "get_session", "init_engine"]
