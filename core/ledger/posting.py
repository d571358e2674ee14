"""
분개 기록 엔진

균형 잡힌 분개 저장, 분개 무효화.

검증 순서:
1. 라인 수(2개 이상), 적요, 업무 시각
2. 라인별 금액 (음수 금지, 한쪽만 양수)
3. 차변 합계 == 대변 합계
4. 참조 계정 존재 및 활성 여부
모든 검증이 끝난 뒤에만 쓰기 시작.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Mapping
from uuid import uuid4

from core.errors import AccountNotFoundError, DoubleEntryError, ValidationError
from core.ledger.models import PostedJournal, VoidResult
from core.ledger.requests import PostJournalRequest, parse_request
from core.ledger.store import LedgerStore
from core.utils.money import ZERO, round_money, to_cents
from core.utils.timezone import now_utc, to_utc

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import AtomicScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _CheckedLine:
    """검증이 끝난 라인 (금액은 센트 단위로 반올림됨)"""

    account_key: str
    debit: Decimal
    credit: Decimal
    meta: dict[str, Any] | None
    extra: dict[str, Any] | None


def check_lines(request: PostJournalRequest) -> list[_CheckedLine]:
    """분개 요청 구조 및 차대 균형 검증

    Raises:
        ValidationError: 라인 부족, 적요/시각 누락, 금액 규칙 위반
        DoubleEntryError: 차변 합계 != 대변 합계
    """
    if len(request.lines) < 2:
        raise ValidationError("Journal must have at least two lines")
    if request.datetime is None:
        raise ValidationError("Date is required")
    if not request.memo:
        raise ValidationError("Memo is required")

    checked: list[_CheckedLine] = []
    total_debit = ZERO
    total_credit = ZERO

    for idx, line in enumerate(request.lines):
        debit = round_money(line.debit, "debit")
        credit = round_money(line.credit, "credit")

        if debit < 0 or credit < 0:
            raise ValidationError(f"Line {idx}: Amounts cannot be negative", line=idx)
        if debit == 0 and credit == 0:
            raise ValidationError(f"Line {idx}: Line must have a non-zero debit or credit", line=idx)
        if debit > 0 and credit > 0:
            raise ValidationError(f"Line {idx}: Line cannot have both debit and credit", line=idx)
        if not line.account_key:
            raise ValidationError(f"Line {idx}: Account key is required", line=idx)

        total_debit += debit
        total_credit += credit
        checked.append(
            _CheckedLine(
                account_key=line.account_key,
                debit=debit,
                credit=credit,
                meta=line.meta,
                extra=line.extra,
            )
        )

    if total_debit != total_credit:
        raise DoubleEntryError(
            f"Journal is not balanced. Debit: {total_debit}, Credit: {total_credit}",
            total_debit=str(total_debit),
            total_credit=str(total_credit),
        )

    return checked


class PostingEngine:
    """분개 기록 엔진

    Args:
        store: Ledger 저장소
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    async def post_journal(
        self,
        request: PostJournalRequest | Mapping[str, Any],
        scope: AtomicScope | None = None,
    ) -> PostedJournal:
        """분개 기록

        분개 헤더와 항목을 하나의 트랜잭션으로 저장.
        scope가 주어지면 호출자의 트랜잭션에 합류.

        Returns:
            저장된 분개와 항목

        Raises:
            ValidationError: 구조/금액 규칙 위반, 비활성 계정
            DoubleEntryError: 차대 불균형
            AccountNotFoundError: 없는 계정 참조 (모든 누락 key 포함)
        """
        req = parse_request(PostJournalRequest, request)
        lines = check_lines(req)
        account_keys = list(dict.fromkeys(line.account_key for line in lines))

        async with self.store.db.atomic(scope) as tx:
            accounts = await self.store.get_accounts_by_keys(account_keys)

            missing = [key for key in account_keys if key not in accounts]
            if missing:
                raise AccountNotFoundError(missing)

            inactive = [key for key in account_keys if not accounts[key].is_active]
            if inactive:
                raise ValidationError(
                    f"Cannot post to inactive accounts: {', '.join(inactive)}",
                    keys=inactive,
                )

            now = now_utc()
            journal_id = str(uuid4())
            journal = {
                "id": journal_id,
                "memo": req.memo,
                "datetime": to_utc(req.datetime),
                "reference_type": req.reference_type,
                "reference_id": req.reference_id,
                "extra": req.extra,
                "created_at": now,
                "updated_at": now,
            }
            entries = [
                {
                    "id": str(uuid4()),
                    "account_key": line.account_key,
                    "account_code": accounts[line.account_key].code,
                    "debit_cents": to_cents(line.debit),
                    "credit_cents": to_cents(line.credit),
                    "meta": line.meta,
                    "extra": line.extra,
                }
                for line in lines
            ]

            await self.store.insert_journal(journal, entries, scope=tx)
            posted = await self._load(journal_id)

        assert posted is not None
        logger.info(
            "분개 기록",
            extra={
                "journal_id": journal_id,
                "lines": len(entries),
                "reference_type": req.reference_type,
                "reference_id": req.reference_id,
            },
        )
        return posted

    async def void_journal(
        self,
        journal_id: str,
        reason: str | None = None,
        scope: AtomicScope | None = None,
    ) -> bool:
        """분개 무효화 (항목까지 함께)

        무효화 조건(voided = 0)이 갱신문에 포함되어
        동시에 호출해도 하나만 성공.

        Raises:
            ValidationError: 분개가 없거나 이미 무효화됨
        """
        async with self.store.db.atomic(scope) as tx:
            now = now_utc()
            if not await self.store.mark_journal_voided(journal_id, reason, now, scope=tx):
                raise ValidationError(
                    f"Journal not found or already voided: {journal_id}",
                    journal_id=journal_id,
                )
            entries = await self.store.mark_entries_voided(journal_id, now, scope=tx)

        logger.info(
            "분개 무효화",
            extra={"journal_id": journal_id, "entries": entries, "reason": reason},
        )
        return True

    async def void_journals_by_identifier(
        self,
        journal_id: str | None = None,
        reference_type: str | None = None,
        reference_id: str | None = None,
        reason: str | None = None,
        scope: AtomicScope | None = None,
    ) -> VoidResult:
        """식별자로 분개 일괄 무효화

        journal_id 또는 (reference_type, reference_id)로 대상 지정.
        일치하는 분개가 없어도 오류 아님.

        Raises:
            ValidationError: journal_id, reference_id 모두 없음
        """
        if not journal_id and not reference_id:
            raise ValidationError("journal_id or reference_id is required")

        journals_voided = 0
        entries_voided = 0

        async with self.store.db.atomic(scope) as tx:
            ids = await self.store.find_active_journal_ids(
                journal_id=journal_id,
                reference_type=reference_type,
                reference_id=reference_id,
            )
            now = now_utc()
            for target_id in ids:
                if await self.store.mark_journal_voided(target_id, reason, now, scope=tx):
                    journals_voided += 1
                    entries_voided += await self.store.mark_entries_voided(target_id, now, scope=tx)

        if journals_voided:
            logger.info(
                "분개 일괄 무효화",
                extra={
                    "journal_id": journal_id,
                    "reference_type": reference_type,
                    "reference_id": reference_id,
                    "journals": journals_voided,
                    "entries": entries_voided,
                },
            )
        return VoidResult(journals_voided=journals_voided, entries_voided=entries_voided)

    async def get_journal(self, journal_id: str) -> PostedJournal | None:
        """분개 조회 (없으면 None)"""
        return await self._load(journal_id)

    async def _load(self, journal_id: str) -> PostedJournal | None:
        journal = await self.store.get_journal(journal_id)
        if journal is None:
            return None
        entries = await self.store.get_journal_entries(journal_id)
        return PostedJournal(journal=journal, entries=entries)
