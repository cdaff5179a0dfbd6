"""Database engine, session factory and unit-of-work helpers."""

from collabhub.db.session import Base, SessionLocal, engine, get_db
from collabhub.db.transaction import unit_of_work

__all__ = ["Base", "SessionLocal", "engine", "get_db", "unit_of_work"]
