"""
기초 잔액 설정

계정의 기초 잔액을 상대 계정(기본: Opening Balance Equity)과의 2라인 분개로 기록.
같은 계정에 다시 적용하면 기존 기초 잔액 분개를 무효화하고 새로 기록.
"""

from __future__ import annotations

import logging
from datetime import datetime as Datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from core.errors import AccountNotFoundError, ValidationError
from core.ledger.accounts import AccountService
from core.ledger.models import PostedJournal
from core.ledger.posting import PostingEngine
from core.ledger.requests import JournalLineRequest, OpeningBalanceRequest, PostJournalRequest, parse_request
from core.ledger.types import ReferenceType
from core.utils.money import MoneyInput, ZERO, round_money
from core.utils.timezone import now_utc

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import AtomicScope

logger = logging.getLogger(__name__)

REPLACED_REASON = "Updated opening balance"


def split_amount(amount: Decimal, debit_normal: bool) -> tuple[Decimal, Decimal]:
    """부호 있는 잔액 → 대상 계정의 (차변, 대변)

    양수는 정상 잔액 방향으로 증가, 음수는 반대 방향.
    상대 계정은 차변/대변을 뒤집어 사용.

    Example:
        >>> split_amount(Decimal("500.00"), debit_normal=True)
        (Decimal('500.00'), Decimal('0.00'))
    """
    size = abs(amount)
    increases_debit = (amount > 0) == debit_normal
    if increases_debit:
        return size, ZERO
    return ZERO, size


class OpeningBalanceService:
    """기초 잔액 설정 서비스

    Args:
        accounts: 계정과목 관리 서비스
        posting: 분개 기록 엔진
    """

    def __init__(self, accounts: AccountService, posting: PostingEngine):
        self.accounts = accounts
        self.posting = posting

    async def apply_opening_balance(
        self,
        account_key: str,
        amount: MoneyInput | None,
        datetime: Datetime | None = None,
        memo: str | None = None,
        offset_account_key: str | None = None,
        meta: dict[str, Any] | None = None,
        scope: AtomicScope | None = None,
    ) -> PostedJournal | None:
        """기초 잔액 적용

        1. 기존 기초 잔액 분개 무효화
        2. 금액이 0이면 종료 (None 반환)
        3. 상대 계정 확보 (기본 계정은 없으면 생성)
        4. 2라인 분개 기록 (reference: opening_balance / 계정 key)

        모든 단계가 하나의 트랜잭션으로 실행됨.

        Raises:
            ValidationError: 금액 누락, 비활성 계정, 상대 계정 자신에 적용, 상대 계정 없음
            AccountNotFoundError: 대상 계정 없음
        """
        request = parse_request(
            OpeningBalanceRequest,
            {
                "account_key": account_key,
                "amount": amount,
                "datetime": datetime,
                "memo": memo,
                "offset_account_key": offset_account_key,
                "meta": meta,
            },
        )
        if request.amount is None:
            raise ValidationError("Opening balance amount is required")
        rounded = round_money(request.amount)

        offset_key = request.offset_account_key or self.accounts.default_offset_key
        if request.account_key == offset_key:
            raise ValidationError(
                "Cannot apply an opening balance to the offset account itself",
                key=request.account_key,
            )

        db = self.accounts.store.db
        async with db.atomic(scope) as tx:
            account = await self.accounts.get_account_by_key(request.account_key)
            if account is None:
                raise AccountNotFoundError(request.account_key)
            if not account.is_active:
                raise ValidationError(
                    "Cannot set opening balance on inactive accounts",
                    key=account.key,
                )

            replaced = await self.posting.void_journals_by_identifier(
                reference_type=ReferenceType.OPENING_BALANCE.value,
                reference_id=account.key,
                reason=REPLACED_REASON,
                scope=tx,
            )

            if rounded == 0:
                logger.info(
                    "기초 잔액 제거",
                    extra={"account_key": account.key, "replaced": replaced.journals_voided},
                )
                return None

            offset = await self.accounts.ensure_offset_account(request.offset_account_key, scope=tx)
            debit, credit = split_amount(rounded, account.is_debit_normal)

            posted = await self.posting.post_journal(
                PostJournalRequest(
                    memo=request.memo or f"Opening balance for {account.name}",
                    datetime=request.datetime or now_utc(),
                    reference_type=ReferenceType.OPENING_BALANCE.value,
                    reference_id=account.key,
                    lines=[
                        JournalLineRequest(
                            account_key=account.key,
                            debit=debit,
                            credit=credit,
                            meta=request.meta,
                        ),
                        JournalLineRequest(
                            account_key=offset.key,
                            debit=credit,
                            credit=debit,
                            meta={**(request.meta or {}), "offsetFor": account.key},
                        ),
                    ],
                ),
                scope=tx,
            )

        logger.info(
            "기초 잔액 적용",
            extra={
                "account_key": account.key,
                "amount": str(rounded),
                "offset_key": offset.key,
                "journal_id": posted.journal.id,
                "replaced": replaced.journals_voided,
            },
        )
        return posted
