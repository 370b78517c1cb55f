"""Async database operations for the Terra alert monitor.

This package provides async database operations using aiosqlite for non-blocking
database access throughout the application.

See connection.py for details on connection patterns (persistent vs pooled).
"""

from terra.lib.db.connection import ConnectionPool as ConnectionPool
from terra.lib.db.connection import Database as Database
from terra.lib.db.connection import close_db as close_db
from terra.lib.db.connection import create_schema as create_schema
from terra.lib.db.connection import get_db as get_db
from terra.lib.db.connection import init_db as init_db
from terra.lib.db.connection import load_template as load_template
from terra.lib.db.types import NotificationRow as NotificationRow
from terra.lib.db.types import SQLParams as SQLParams
