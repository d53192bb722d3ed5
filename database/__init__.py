"""
CabinShare SQLite store.

- connection: per-context connection (get_db, close_db, init_db)
- schema: tables and indexes
- seed: default organization, billing settings and admin member
"""

from database.connection import get_db, close_db, init_db

__all__ = ['get_db', 'close_db', 'init_db']
