"""Ledger 스키마 통합 테스트"""

import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.errors import StorageError
from core.ledger.schema import init_ledger_schema


class TestInitLedgerSchema:
    """init_ledger_schema 테스트"""

    @pytest.mark.asyncio
    async def test_creates_tables(self, db: SQLiteAdapter) -> None:
        """테이블 생성"""
        await init_ledger_schema(db)

        assert await db.table_exists("acct_accounts")
        assert await db.table_exists("acct_journals")
        assert await db.table_exists("acct_entries")

    @pytest.mark.asyncio
    async def test_reports_indexes(self, db: SQLiteAdapter) -> None:
        """인덱스 이름 반환"""
        names = await init_ledger_schema(db)

        for expected in (
            "ux_accounts_key",
            "ux_accounts_code",
            "ix_accounts_type",
            "ix_journals_datetime",
            "ix_journals_reference",
            "ux_journals_active_opening_balance",
            "ix_entries_account_datetime",
            "ix_entries_journal",
        ):
            assert expected in names

    @pytest.mark.asyncio
    async def test_idempotent(self, db: SQLiteAdapter) -> None:
        """여러 번 호출해도 안전"""
        first = await init_ledger_schema(db)
        second = await init_ledger_schema(db)

        assert first == second

    @pytest.mark.asyncio
    async def test_one_active_opening_balance_per_account(self, db: SQLiteAdapter) -> None:
        """유효한 기초 잔액 분개는 계정당 하나 (무효화된 분개는 예외)"""
        await init_ledger_schema(db)

        insert = """
            INSERT INTO acct_journals (
                id, memo, datetime, reference_type, reference_id,
                voided, created_at, updated_at
            ) VALUES (?, 'ob', '2026-03-01T00:00:00.000000Z', 'opening_balance', 'CASH', ?, 'x', 'x')
        """
        await db.execute(insert, ("j1", 1))
        await db.execute(insert, ("j2", 0))
        await db.commit()

        with pytest.raises(StorageError) as exc_info:
            await db.execute(insert, ("j3", 0))

        assert exc_info.value.is_constraint_violation
        await db.rollback()

    @pytest.mark.asyncio
    async def test_entry_must_have_one_side(self, db: SQLiteAdapter) -> None:
        """분개 항목은 차변/대변 중 한쪽만 양수"""
        await init_ledger_schema(db)

        with pytest.raises(StorageError) as exc_info:
            await db.execute(
                """
                INSERT INTO acct_entries (
                    id, journal_id, account_key, account_code,
                    debit_cents, credit_cents, datetime, created_at, updated_at
                ) VALUES ('e1', 'j1', 'CASH', '1000', 100, 100, 'x', 'x', 'x')
                """
            )

        assert exc_info.value.is_constraint_violation
        await db.rollback()
