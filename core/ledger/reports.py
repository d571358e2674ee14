"""
잔액 및 재무 보고서

무효화되지 않은 분개 항목을 집계하여 잔액, 원장, 시산표, 손익계산서, 재무상태표 계산.
집계는 정수 센트로 수행하고 결과만 Decimal로 변환.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from core.constants import Defaults
from core.errors import AccountNotFoundError, ValidationError
from core.ledger.models import (
    Account,
    AccountBalance,
    AccountLedger,
    BalanceSheet,
    LedgerItem,
    ProfitAndLoss,
    TrialBalance,
    TrialBalanceLine,
)
from core.ledger.store import LedgerStore
from core.ledger.types import ParentGroup
from core.utils.money import from_cents, to_cents
from core.utils.timezone import EPOCH, now_utc, to_utc

logger = logging.getLogger(__name__)


def _net_cents(account: Account, debit_cents: int, credit_cents: int) -> int:
    """정상 잔액 방향 기준 순액 (센트)"""
    if account.is_debit_normal:
        return debit_cents - credit_cents
    return credit_cents - debit_cents


def _group_label(account: Account) -> str:
    return account.group or Defaults.GROUP_LABEL


def _to_decimals(breakdown: dict[str, int]) -> dict[str, Decimal]:
    return {label: from_cents(cents) for label, cents in breakdown.items()}


class ReportService:
    """잔액/보고서 서비스

    Args:
        store: Ledger 저장소
        currency: 손익계산서 통화 표기
        default_page_size: 원장 기본 페이지 크기
    """

    def __init__(
        self,
        store: LedgerStore,
        currency: str = Defaults.CURRENCY,
        default_page_size: int = Defaults.PAGE_SIZE,
    ):
        self.store = store
        self.currency = currency
        self.default_page_size = default_page_size

    async def _require_account(self, account_key: str) -> Account:
        account = await self.store.get_account(account_key)
        if account is None:
            raise AccountNotFoundError(account_key)
        return account

    # =====================================
    # 계정 잔액 / 원장
    # =====================================

    async def get_account_balance(
        self,
        account_key: str,
        from_: datetime | None = None,
        to: datetime | None = None,
        meta_filter: dict[str, Any] | None = None,
    ) -> AccountBalance:
        """계정 잔액 (기간, meta 조건 선택)

        Raises:
            AccountNotFoundError: 계정 없음
        """
        account = await self._require_account(account_key)
        sums = await self.store.sum_by_account(
            account_key=account_key,
            from_=from_,
            to=to,
            meta_filter=meta_filter,
        )
        debit_cents, credit_cents = sums.get(account_key, (0, 0))

        return AccountBalance(
            debit=from_cents(debit_cents),
            credit=from_cents(credit_cents),
            balance=from_cents(_net_cents(account, debit_cents, credit_cents)),
        )

    async def get_account_ledger(
        self,
        account_key: str,
        from_: datetime | None = None,
        to: datetime | None = None,
        meta_filter: dict[str, Any] | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> AccountLedger:
        """계정 원장 (누적 잔액 포함, 페이지 단위)

        기초 잔액 = from_ 이전까지의 잔액.
        누적 잔액은 페이지마다 기초 잔액에서 시작.
        정렬: 업무 시각, 저장 순서.

        Raises:
            AccountNotFoundError: 계정 없음
            ValidationError: page, page_size가 1 미만
        """
        page_size = page_size or self.default_page_size
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be positive", page=page, page_size=page_size)

        account = await self._require_account(account_key)

        opening_cents = 0
        if from_ is not None:
            before = await self.store.sum_by_account(
                account_key=account_key,
                before=from_,
                meta_filter=meta_filter,
            )
            opening_cents = _net_cents(account, *before.get(account_key, (0, 0)))

        filters = {
            "account_key": account_key,
            "from_": from_,
            "to": to,
            "meta_filter": meta_filter,
        }
        total = await self.store.count_entries(**filters)
        entries = await self.store.find_entries(limit=page_size, offset=(page - 1) * page_size, **filters)

        running = opening_cents
        items: list[LedgerItem] = []
        for entry in entries:
            change = _net_cents(account, to_cents(entry.debit), to_cents(entry.credit))
            running += change
            items.append(
                LedgerItem(
                    entry=entry,
                    net_change=from_cents(change),
                    running_balance=from_cents(running),
                )
            )

        logger.debug(
            "원장 조회",
            extra={"account_key": account_key, "page": page, "items": len(items), "total": total},
        )
        return AccountLedger(
            account_key=account_key,
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            opening_balance=from_cents(opening_cents),
        )

    # =====================================
    # 재무 보고서
    # =====================================

    async def get_trial_balance(
        self,
        from_: datetime | None = None,
        to: datetime | None = None,
    ) -> TrialBalance:
        """시산표 (계정 코드 오름차순)

        차변 합계 == 대변 합계는 각 분개가 균형이면 항상 성립.
        """
        sums = await self.store.sum_by_account(from_=from_, to=to)
        accounts = await self.store.get_accounts_by_keys(sums)

        lines: list[TrialBalanceLine] = []
        total_debit = 0
        total_credit = 0
        for key, (debit_cents, credit_cents) in sums.items():
            account = accounts.get(key)
            if account is None:
                continue
            total_debit += debit_cents
            total_credit += credit_cents
            lines.append(
                TrialBalanceLine(
                    account_key=account.key,
                    account_code=account.code,
                    account_name=account.name,
                    debit=from_cents(debit_cents),
                    credit=from_cents(credit_cents),
                    balance=from_cents(_net_cents(account, debit_cents, credit_cents)),
                )
            )

        lines.sort(key=lambda line: line.account_code)

        result = TrialBalance(
            lines=lines,
            total_debit=from_cents(total_debit),
            total_credit=from_cents(total_credit),
            as_of=to_utc(to) if to is not None else now_utc(),
        )
        if not result.is_balanced:
            logger.warning(
                "시산표 불일치",
                extra={"total_debit": str(result.total_debit), "total_credit": str(result.total_credit)},
            )
        return result

    async def get_profit_and_loss(
        self,
        from_: datetime | None = None,
        to: datetime | None = None,
        meta_filter: dict[str, Any] | None = None,
    ) -> ProfitAndLoss:
        """손익계산서 (수익/비용 그룹 계정, 그룹 라벨별 합계)"""
        start = to_utc(from_) if from_ is not None else EPOCH
        end = to_utc(to) if to is not None else now_utc()

        accounts = {
            account.key: account
            for account in await self.store.all_accounts()
            if account.parent_group in (ParentGroup.INCOME, ParentGroup.EXPENSE)
        }
        sums = await self.store.sum_by_account(
            account_keys=accounts,
            from_=start,
            to=end,
            meta_filter=meta_filter,
        )

        income = 0
        expense = 0
        income_breakdown: dict[str, int] = {}
        expense_breakdown: dict[str, int] = {}
        for key, (debit_cents, credit_cents) in sums.items():
            account = accounts[key]
            net = _net_cents(account, debit_cents, credit_cents)
            label = _group_label(account)
            if account.parent_group == ParentGroup.INCOME:
                income += net
                income_breakdown[label] = income_breakdown.get(label, 0) + net
            else:
                expense += net
                expense_breakdown[label] = expense_breakdown.get(label, 0) + net

        return ProfitAndLoss(
            income=from_cents(income),
            expense=from_cents(expense),
            net_profit=from_cents(income - expense),
            currency=self.currency,
            from_=start,
            to=end,
            income_breakdown=_to_decimals(income_breakdown),
            expense_breakdown=_to_decimals(expense_breakdown),
        )

    async def get_balance_sheet(self, as_of: datetime | None = None) -> BalanceSheet:
        """재무상태표

        각 계정을 소속 구역 방향으로 집계 (자산: 차변 - 대변, 부채/자본: 대변 - 차변).
        차감 계정은 소속 구역 합계를 줄임.
        당기 순이익(수익 - 비용)은 자본의 계산된 이익잉여금 라인으로 합산.
        """
        as_of = to_utc(as_of) if as_of is not None else now_utc()

        sums = await self.store.sum_by_account(to=as_of)
        accounts = await self.store.get_accounts_by_keys(sums)

        sections: dict[ParentGroup, dict[str, int]] = {
            ParentGroup.ASSET: {},
            ParentGroup.LIABILITY: {},
            ParentGroup.EQUITY: {},
        }
        net_income = 0
        for key, (debit_cents, credit_cents) in sums.items():
            account = accounts.get(key)
            if account is None:
                continue

            group = account.parent_group
            if group == ParentGroup.ASSET:
                net = debit_cents - credit_cents
            else:
                net = credit_cents - debit_cents

            if group in (ParentGroup.INCOME, ParentGroup.EXPENSE):
                net_income += net
            else:
                breakdown = sections[group]
                label = _group_label(account)
                breakdown[label] = breakdown.get(label, 0) + net

        equity_breakdown = sections[ParentGroup.EQUITY]
        label = Defaults.RETAINED_EARNINGS_LABEL
        equity_breakdown[label] = equity_breakdown.get(label, 0) + net_income

        return BalanceSheet(
            assets=from_cents(sum(sections[ParentGroup.ASSET].values())),
            liabilities=from_cents(sum(sections[ParentGroup.LIABILITY].values())),
            equity=from_cents(sum(equity_breakdown.values())),
            as_of=as_of,
            asset_breakdown=_to_decimals(sections[ParentGroup.ASSET]),
            liability_breakdown=_to_decimals(sections[ParentGroup.LIABILITY]),
            equity_breakdown=_to_decimals(equity_breakdown),
        )
