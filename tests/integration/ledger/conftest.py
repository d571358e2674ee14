"""
Ledger 통합 테스트 공통 fixture

임시 SQLite DB + 스키마 + 기본 계정과목표
"""

from pathlib import Path

import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import LedgerConfig, LedgerSettings
from core.ledger.engine import LedgerEngine

# 기본 계정과목표
CHART_OF_ACCOUNTS = [
    {
        "key": "CASH",
        "code": "1000",
        "name": "Cash",
        "type": "asset",
        "parent_group": "asset",
        "group": "Current Assets",
    },
    {
        "key": "EQUIPMENT",
        "code": "1500",
        "name": "Equipment",
        "type": "asset",
        "parent_group": "asset",
        "group": "Fixed Assets",
    },
    {
        "key": "ACCUM_DEP",
        "code": "1590",
        "name": "Accumulated Depreciation",
        "type": "contra",
        "parent_group": "asset",
        "group": "Fixed Assets",
    },
    {
        "key": "LOAN",
        "code": "2000",
        "name": "Bank Loan",
        "type": "liability",
        "parent_group": "liability",
        "group": "Long-term Liabilities",
    },
    {
        "key": "BOND_DISCOUNT",
        "code": "2100",
        "name": "Discount on Bonds Payable",
        "type": "contra",
        "parent_group": "liability",
        "group": "Long-term Liabilities",
    },
    {
        "key": "CAPITAL",
        "code": "3000",
        "name": "Owner Capital",
        "type": "equity",
        "parent_group": "equity",
        "group": "Capital",
    },
    {
        "key": "SALES",
        "code": "4000",
        "name": "Sales",
        "type": "income",
        "parent_group": "income",
        "group": "Revenue",
    },
    {
        "key": "RENT",
        "code": "5000",
        "name": "Rent",
        "type": "expense",
        "parent_group": "expense",
        "group": "Operating Expenses",
    },
    {
        "key": "DEPRECIATION",
        "code": "5100",
        "name": "Depreciation",
        "type": "expense",
        "parent_group": "expense",
        "group": "Operating Expenses",
    },
]


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> SQLiteAdapter:
    """테스트용 임시 DB"""
    adapter = SQLiteAdapter(tmp_path / "test_ledger.db")
    await adapter.connect()
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def ledger(db: SQLiteAdapter) -> LedgerEngine:
    """스키마가 준비된 빈 Ledger"""
    engine = LedgerEngine(db, LedgerConfig(ledger=LedgerSettings(max_parent_depth=10)))
    await engine.initialize()
    return engine


@pytest_asyncio.fixture
async def seeded(ledger: LedgerEngine) -> LedgerEngine:
    """기본 계정과목표가 시드된 Ledger"""
    await ledger.accounts.seed_accounts(CHART_OF_ACCOUNTS)
    return ledger
