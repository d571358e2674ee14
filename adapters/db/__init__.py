"""
데이터베이스 어댑터

SQLite WAL 모드 연결 관리 및 원자적 작업 범위.
"""

from adapters.db.sqlite_adapter import (
    AtomicScope,
    SQLiteAdapter,
    create_connection,
)

__all__ = [
    "AtomicScope",
    "SQLiteAdapter",
    "create_connection",
]
