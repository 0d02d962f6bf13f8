"""
Database connectivity for Impact Wrapped.

SQLAlchemy 2.x engines (psycopg3 for PostgreSQL) and the table
definitions for organizations and donors.
"""

from .connector import get_engine, init_schema
from .schema import donors, metadata, organizations

__all__ = ["get_engine", "init_schema", "donors", "metadata", "organizations"]
