"""
복식부기 (Double-Entry Bookkeeping) 시스템

계정과목표에 균형 잡힌 분개를 기록하고,
기록된 항목을 집계하여 잔액과 재무제표를 계산.

사용 예시:
```python
from core.ledger import LedgerEngine

async with LedgerEngine.open() as ledger:
    await ledger.accounts.create_account({
        "key": "CASH", "code": "1000", "name": "Cash",
        "type": "asset", "parent_group": "asset", "group": "Current Assets",
    })

    # 기초 잔액
    await ledger.opening_balances.apply_opening_balance("CASH", "500")

    # 분개 기록
    posted = await ledger.posting.post_journal({
        "memo": "Office rent",
        "datetime": "2026-03-01T00:00:00Z",
        "lines": [
            {"account_key": "RENT", "debit": "120"},
            {"account_key": "CASH", "credit": "120"},
        ],
    })

    # 잔액 / 시산표
    balance = await ledger.reports.get_account_balance("CASH")
    trial_balance = await ledger.reports.get_trial_balance()
```
"""

from core.ledger.accounts import AccountService
from core.ledger.engine import LedgerEngine
from core.ledger.hierarchy import build_forest, validate_forest
from core.ledger.models import (
    Account,
    AccountBalance,
    AccountLedger,
    AccountNode,
    BalanceSheet,
    Entry,
    ForestReport,
    Journal,
    LedgerItem,
    PostedJournal,
    ProfitAndLoss,
    TrialBalance,
    TrialBalanceLine,
    VoidResult,
)
from core.ledger.opening_balance import OpeningBalanceService
from core.ledger.posting import PostingEngine
from core.ledger.reports import ReportService
from core.ledger.requests import (
    CreateAccountRequest,
    JournalLineRequest,
    OpeningBalanceRequest,
    PostJournalRequest,
    UpdateAccountRequest,
)
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.ledger.types import (
    DEFAULT_OPENING_BALANCE_ACCOUNT,
    AccountOrigin,
    AccountType,
    JournalSide,
    ParentGroup,
    ReferenceType,
    is_debit_normal,
)

__all__ = [
    # 핵심 클래스
    "LedgerEngine",
    "LedgerStore",
    "AccountService",
    "PostingEngine",
    "ReportService",
    "OpeningBalanceService",
    "init_ledger_schema",
    "build_forest",
    "validate_forest",
    # 요청
    "CreateAccountRequest",
    "UpdateAccountRequest",
    "JournalLineRequest",
    "PostJournalRequest",
    "OpeningBalanceRequest",
    # 모델
    "Account",
    "AccountNode",
    "Journal",
    "Entry",
    "PostedJournal",
    "VoidResult",
    "AccountBalance",
    "LedgerItem",
    "AccountLedger",
    "TrialBalanceLine",
    "TrialBalance",
    "ProfitAndLoss",
    "BalanceSheet",
    "ForestReport",
    # Enum
    "AccountType",
    "ParentGroup",
    "AccountOrigin",
    "JournalSide",
    "ReferenceType",
    # 규칙
    "DEFAULT_OPENING_BALANCE_ACCOUNT",
    "is_debit_normal",
]
