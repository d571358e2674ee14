"""
복식부기 스키마 초기화

시작 시 Ledger 테이블과 인덱스 생성.
CREATE ... IF NOT EXISTS 패턴으로 여러 번 호출해도 안전하게 동작.
"""

import logging
from typing import TYPE_CHECKING

from core.constants import Tables
from core.ledger.types import ReferenceType

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> list[str]:
    """Ledger 스키마 초기화 (테이블 + 인덱스)

    Args:
        db: SQLiteAdapter 인스턴스

    Returns:
        Ledger 테이블에 존재하는 인덱스 이름 목록
    """
    await _create_ledger_tables(db)
    await _create_ledger_indexes(db)
    await db.commit()

    names: list[str] = []
    for table in (Tables.ACCOUNTS, Tables.JOURNALS, Tables.ENTRIES):
        names.extend(await db.index_names(table))

    logger.info("Ledger 스키마 초기화 완료", extra={"indexes": len(names)})
    return names


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """Ledger 테이블 생성"""

    # 계정과목표
    await db.execute(f"""
        CREATE TABLE IF NOT EXISTS {Tables.ACCOUNTS} (
            id                 TEXT PRIMARY KEY,
            key                TEXT NOT NULL,
            code               TEXT NOT NULL,
            name               TEXT NOT NULL,
            type               TEXT NOT NULL,
            parent_group       TEXT NOT NULL,
            group_name         TEXT NOT NULL,
            origin             TEXT NOT NULL,
            is_active          INTEGER NOT NULL DEFAULT 1,
            parent_account_key TEXT,
            extra              TEXT,
            created_at         TEXT NOT NULL,
            updated_at         TEXT NOT NULL
        )
    """)

    # 분개 헤더
    await db.execute(f"""
        CREATE TABLE IF NOT EXISTS {Tables.JOURNALS} (
            id               TEXT PRIMARY KEY,
            memo             TEXT NOT NULL,
            datetime         TEXT NOT NULL,
            reference_type   TEXT,
            reference_id     TEXT,
            voided           INTEGER NOT NULL DEFAULT 0,
            void_reason      TEXT,
            extra            TEXT,
            created_at       TEXT NOT NULL,
            updated_at       TEXT NOT NULL
        )
    """)

    # 분개 항목 (금액은 정수 센트, 한쪽만 양수)
    await db.execute(f"""
        CREATE TABLE IF NOT EXISTS {Tables.ENTRIES} (
            seq              INTEGER PRIMARY KEY AUTOINCREMENT,
            id               TEXT NOT NULL UNIQUE,
            journal_id       TEXT NOT NULL,
            account_key      TEXT NOT NULL,
            account_code     TEXT NOT NULL,
            debit_cents      INTEGER NOT NULL DEFAULT 0 CHECK (debit_cents >= 0),
            credit_cents     INTEGER NOT NULL DEFAULT 0 CHECK (credit_cents >= 0),
            meta             TEXT,
            extra            TEXT,
            datetime         TEXT NOT NULL,
            voided           INTEGER NOT NULL DEFAULT 0,
            created_at       TEXT NOT NULL,
            updated_at       TEXT NOT NULL,
            CHECK ((debit_cents = 0) <> (credit_cents = 0)),
            FOREIGN KEY (journal_id) REFERENCES {Tables.JOURNALS}(id),
            FOREIGN KEY (account_key) REFERENCES {Tables.ACCOUNTS}(key)
        )
    """)


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    """Ledger 인덱스 생성"""

    # 계정: key/code 유일, 유형/그룹 조회
    await db.execute(f"""
        CREATE UNIQUE INDEX IF NOT EXISTS ux_accounts_key
        ON {Tables.ACCOUNTS}(key)
    """)
    await db.execute(f"""
        CREATE UNIQUE INDEX IF NOT EXISTS ux_accounts_code
        ON {Tables.ACCOUNTS}(code)
    """)
    await db.execute(f"""
        CREATE INDEX IF NOT EXISTS ix_accounts_type
        ON {Tables.ACCOUNTS}(type)
    """)
    await db.execute(f"""
        CREATE INDEX IF NOT EXISTS ix_accounts_parent_group
        ON {Tables.ACCOUNTS}(parent_group)
    """)

    # 분개: 기간 조회, 참조 조회
    await db.execute(f"""
        CREATE INDEX IF NOT EXISTS ix_journals_datetime
        ON {Tables.JOURNALS}(datetime)
    """)
    await db.execute(f"""
        CREATE INDEX IF NOT EXISTS ix_journals_reference
        ON {Tables.JOURNALS}(reference_type, reference_id)
    """)

    # 유효한 기초 잔액 분개는 계정당 하나
    await db.execute(f"""
        CREATE UNIQUE INDEX IF NOT EXISTS ux_journals_active_opening_balance
        ON {Tables.JOURNALS}(reference_type, reference_id)
        WHERE voided = 0 AND reference_type = '{ReferenceType.OPENING_BALANCE.value}'
    """)

    # 분개 항목: 잔액/원장 조회, 분개 상세 조회
    await db.execute(f"""
        CREATE INDEX IF NOT EXISTS ix_entries_account_datetime
        ON {Tables.ENTRIES}(account_key, datetime)
    """)
    await db.execute(f"""
        CREATE INDEX IF NOT EXISTS ix_entries_journal
        ON {Tables.ENTRIES}(journal_id)
    """)
