"""PostgreSQL access via psycopg 3."""

from .adapter import PostgreSQLAdapter
from .connection import DatabaseConnection
from .schema import SCHEMA_STATEMENTS, apply_schema

__all__ = ["DatabaseConnection", "PostgreSQLAdapter", "SCHEMA_STATEMENTS", "apply_schema"]
