"""
Ledger 도메인 모델

계정, 분개, 분개 항목 및 보고서 결과 타입.
모든 금액은 Decimal (소수점 2자리).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping

from core.ledger.types import AccountType, ParentGroup, is_debit_normal
from core.utils.money import ZERO, from_cents
from core.utils.timezone import from_storage


def _load_json(value: str | None) -> dict[str, Any] | None:
    return json.loads(value) if value else None


@dataclass(frozen=True)
class Account:
    """계정 (계정과목표의 노드)"""

    id: str
    key: str
    code: str
    name: str
    type: AccountType
    parent_group: ParentGroup
    group: str
    origin: str
    is_active: bool
    parent_account_key: str | None
    extra: dict[str, Any]
    created_at: datetime
    updated_at: datetime

    @property
    def is_debit_normal(self) -> bool:
        """정상 잔액이 차변인지 여부"""
        return is_debit_normal(self.type, self.parent_group)

    def net_balance(self, debit: Decimal, credit: Decimal) -> Decimal:
        """정상 잔액 방향 기준 순잔액"""
        if self.is_debit_normal:
            return debit - credit
        return credit - debit

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Account:
        return cls(
            id=row["id"],
            key=row["key"],
            code=row["code"],
            name=row["name"],
            type=AccountType(row["type"]),
            parent_group=ParentGroup(row["parent_group"]),
            group=row["group_name"],
            origin=row["origin"],
            is_active=bool(row["is_active"]),
            parent_account_key=row["parent_account_key"],
            extra=_load_json(row["extra"]) or {},
            created_at=from_storage(row["created_at"]),
            updated_at=from_storage(row["updated_at"]),
        )


@dataclass
class AccountNode:
    """계층 조회용 계정 노드"""

    account: Account
    children: list[AccountNode] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.account.key


@dataclass(frozen=True)
class Journal:
    """분개 (하나의 균형 잡힌 거래)"""

    id: str
    memo: str
    datetime: datetime
    reference_type: str | None
    reference_id: str | None
    voided: bool
    void_reason: str | None
    extra: dict[str, Any]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Journal:
        return cls(
            id=row["id"],
            memo=row["memo"],
            datetime=from_storage(row["datetime"]),
            reference_type=row["reference_type"],
            reference_id=row["reference_id"],
            voided=bool(row["voided"]),
            void_reason=row["void_reason"],
            extra=_load_json(row["extra"]) or {},
            created_at=from_storage(row["created_at"]),
            updated_at=from_storage(row["updated_at"]),
        )


@dataclass(frozen=True)
class Entry:
    """분개 항목 (차변 또는 대변 한 줄)"""

    id: str
    seq: int
    journal_id: str
    account_key: str
    account_code: str
    debit: Decimal
    credit: Decimal
    meta: dict[str, Any] | None
    extra: dict[str, Any] | None
    datetime: datetime
    voided: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Entry:
        return cls(
            id=row["id"],
            seq=row["seq"],
            journal_id=row["journal_id"],
            account_key=row["account_key"],
            account_code=row["account_code"],
            debit=from_cents(row["debit_cents"]),
            credit=from_cents(row["credit_cents"]),
            meta=_load_json(row["meta"]),
            extra=_load_json(row["extra"]),
            datetime=from_storage(row["datetime"]),
            voided=bool(row["voided"]),
            created_at=from_storage(row["created_at"]),
            updated_at=from_storage(row["updated_at"]),
        )


@dataclass(frozen=True)
class PostedJournal:
    """저장된 분개와 항목"""

    journal: Journal
    entries: list[Entry]


@dataclass(frozen=True)
class VoidResult:
    """일괄 무효화 결과"""

    journals_voided: int
    entries_voided: int


@dataclass(frozen=True)
class AccountBalance:
    """계정 잔액"""

    debit: Decimal = ZERO
    credit: Decimal = ZERO
    balance: Decimal = ZERO


@dataclass(frozen=True)
class LedgerItem:
    """원장 항목 (누적 잔액 포함)"""

    entry: Entry
    net_change: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class AccountLedger:
    """계정 원장 페이지"""

    account_key: str
    items: list[LedgerItem]
    total: int
    page: int
    page_size: int
    opening_balance: Decimal

    @property
    def closing_balance(self) -> Decimal:
        """페이지 마지막 누적 잔액"""
        if not self.items:
            return self.opening_balance
        return self.items[-1].running_balance


@dataclass(frozen=True)
class TrialBalanceLine:
    """시산표 한 줄"""

    account_key: str
    account_code: str
    account_name: str
    debit: Decimal
    credit: Decimal
    balance: Decimal


@dataclass(frozen=True)
class TrialBalance:
    """시산표"""

    lines: list[TrialBalanceLine]
    total_debit: Decimal
    total_credit: Decimal
    as_of: datetime

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


@dataclass(frozen=True)
class ProfitAndLoss:
    """손익계산서"""

    income: Decimal
    expense: Decimal
    net_profit: Decimal
    currency: str
    from_: datetime
    to: datetime
    income_breakdown: dict[str, Decimal]
    expense_breakdown: dict[str, Decimal]


@dataclass(frozen=True)
class BalanceSheet:
    """재무상태표"""

    assets: Decimal
    liabilities: Decimal
    equity: Decimal
    as_of: datetime
    asset_breakdown: dict[str, Decimal]
    liability_breakdown: dict[str, Decimal]
    equity_breakdown: dict[str, Decimal]

    @property
    def is_balanced(self) -> bool:
        """자산 == 부채 + 자본"""
        return self.assets == self.liabilities + self.equity


@dataclass(frozen=True)
class ForestReport:
    """계정 계층 진단 결과"""

    account_count: int
    root_keys: list[str]
    cycles: list[list[str]]
    dangling_parents: dict[str, str]  # account_key -> 존재하지 않는 parent key

    @property
    def is_valid(self) -> bool:
        return not self.cycles and not self.dangling_parents
