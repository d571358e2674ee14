"""
Ledger 엔진

저장소와 네 서비스(계정, 분개, 보고서, 기초 잔액)를 묶는 진입점.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator

from adapters.db.sqlite_adapter import AtomicScope, SQLiteAdapter
from core.config.loader import LedgerConfig, load_config
from core.ledger.accounts import AccountService
from core.ledger.opening_balance import OpeningBalanceService
from core.ledger.posting import PostingEngine
from core.ledger.reports import ReportService
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore

logger = logging.getLogger(__name__)


class LedgerEngine:
    """Ledger 엔진

    Args:
        db: 연결된 SQLite 어댑터 (연결 수명은 호출자가 관리)
        config: Ledger 설정 (None이면 기본값)

    사용 예시:
    ```python
    async with LedgerEngine.open(config) as ledger:
        await ledger.accounts.create_account({...})

        async with ledger.transaction() as scope:
            await ledger.posting.post_journal(request, scope=scope)

        balance = await ledger.reports.get_account_balance("CASH")
    ```
    """

    def __init__(self, db: SQLiteAdapter, config: LedgerConfig | None = None):
        self.db = db
        self.config = config or LedgerConfig()
        self.store = LedgerStore(db)
        self.accounts = AccountService(
            self.store,
            max_parent_depth=self.config.ledger.max_parent_depth,
            offset_account=self.config.opening_balance.overrides(),
        )
        self.posting = PostingEngine(self.store)
        self.reports = ReportService(
            self.store,
            currency=self.config.ledger.currency,
            default_page_size=self.config.ledger.default_page_size,
        )
        self.opening_balances = OpeningBalanceService(self.accounts, self.posting)

    async def initialize(self) -> list[str]:
        """스키마 준비 (테이블 + 인덱스)"""
        return await init_ledger_schema(self.db)

    def transaction(self) -> AsyncContextManager[AtomicScope]:
        """여러 작업을 하나로 묶는 트랜잭션"""
        return self.db.transaction()

    @classmethod
    @asynccontextmanager
    async def open(cls, config: LedgerConfig | None = None) -> AsyncIterator[LedgerEngine]:
        """설정대로 DB에 연결하고 스키마를 준비한 엔진 반환

        블록을 벗어나면 연결 종료.
        """
        config = config or load_config()
        adapter = SQLiteAdapter(
            config.database.path,
            busy_timeout_ms=config.database.busy_timeout_ms,
        )
        async with adapter:
            engine = cls(adapter, config)
            await engine.initialize()
            logger.info("Ledger 엔진 시작", extra={"db_path": str(config.database.path)})
            yield engine
