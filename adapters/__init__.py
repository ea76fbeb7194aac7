"""
어댑터 레이어

외부 저장소(SQLite)와의 연동을 담당.
"""

from adapters.db import DatabaseBusyError, SQLiteAdapter, create_connection, get_db_path

__all__ = [
    "DatabaseBusyError",
    "SQLiteAdapter",
    "create_connection",
    "get_db_path",
]
