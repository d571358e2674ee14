"""
Ledger 저장소

계정, 분개, 분개 항목의 저장/조회/집계.
서비스 계층은 이 클래스만 통해 DB에 접근.

쓰기 메서드는 모두 선택적 scope(AtomicScope)를 받음.
scope가 없으면 해당 쓰기만으로 트랜잭션을 열고 커밋.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable

from core.constants import Tables
from core.errors import ValidationError
from core.ledger.models import Account, Entry, Journal
from core.utils.timezone import to_storage

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import AtomicScope, SQLiteAdapter

logger = logging.getLogger(__name__)

# 계정 필터/수정 시 허용 필드 (모델 이름 -> 컬럼 이름)
ACCOUNT_COLUMNS: dict[str, str] = {
    "id": "id",
    "key": "key",
    "code": "code",
    "name": "name",
    "type": "type",
    "parent_group": "parent_group",
    "group": "group_name",
    "origin": "origin",
    "is_active": "is_active",
    "parent_account_key": "parent_account_key",
    "extra": "extra",
    "created_at": "created_at",
    "updated_at": "updated_at",
}

UPDATABLE_ACCOUNT_FIELDS = frozenset({"name", "group", "is_active", "extra", "parent_account_key", "updated_at"})

# meta 필터 키 (json_extract 경로에 들어가므로 제한)
META_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ENTRY_COLUMNS = (
    "seq, id, journal_id, account_key, account_code, debit_cents, credit_cents, "
    "meta, extra, datetime, voided, created_at, updated_at"
)


def _to_db_value(value: Any) -> Any:
    """파이썬 값 → SQLite 바인딩 값"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return to_storage(value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False, default=str)
    return value


def _dump_json(value: dict[str, Any] | None) -> str | None:
    return json.dumps(value, ensure_ascii=False, default=str) if value else None


class LedgerStore:
    """Ledger 저장소

    Args:
        db: SQLite 어댑터
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    # =====================================
    # 계정
    # =====================================

    async def get_account(self, key: str) -> Account | None:
        """key로 계정 조회 (없으면 None)"""
        row = await self.db.fetchone(
            f"SELECT * FROM {Tables.ACCOUNTS} WHERE key = ?",
            (key,),
        )
        return Account.from_row(row) if row else None

    async def get_account_by_code(self, code: str) -> Account | None:
        """code로 계정 조회 (없으면 None)"""
        row = await self.db.fetchone(
            f"SELECT * FROM {Tables.ACCOUNTS} WHERE code = ?",
            (code,),
        )
        return Account.from_row(row) if row else None

    async def get_account_by_id(self, account_id: str) -> Account | None:
        """내부 id로 계정 조회"""
        row = await self.db.fetchone(
            f"SELECT * FROM {Tables.ACCOUNTS} WHERE id = ?",
            (account_id,),
        )
        return Account.from_row(row) if row else None

    async def find_account_conflict(self, key: str, code: str) -> Account | None:
        """key 또는 code가 같은 계정 조회 (중복 검사용)"""
        row = await self.db.fetchone(
            f"SELECT * FROM {Tables.ACCOUNTS} WHERE key = ? OR code = ? LIMIT 1",
            (key, code),
        )
        return Account.from_row(row) if row else None

    async def get_accounts_by_keys(self, keys: Iterable[str]) -> dict[str, Account]:
        """여러 key를 한 번에 조회

        Returns:
            {key: Account} (없는 key는 포함되지 않음)
        """
        key_list = list(dict.fromkeys(keys))
        if not key_list:
            return {}

        placeholders = ", ".join("?" for _ in key_list)
        rows = await self.db.fetchall(
            f"SELECT * FROM {Tables.ACCOUNTS} WHERE key IN ({placeholders})",
            key_list,
        )
        accounts = [Account.from_row(row) for row in rows]
        return {account.key: account for account in accounts}

    async def get_parent_key(self, key: str) -> tuple[bool, str | None]:
        """상위 계정 key만 조회 (계층 탐색용)

        Returns:
            (계정 존재 여부, parent_account_key)
        """
        row = await self.db.fetchone(
            f"SELECT parent_account_key FROM {Tables.ACCOUNTS} WHERE key = ?",
            (key,),
        )
        if row is None:
            return False, None
        return True, row[0]

    async def list_accounts(
        self,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        skip: int = 0,
    ) -> list[Account]:
        """계정 목록 조회 (등호 필터 + 페이지)

        Raises:
            ValidationError: 알 수 없는 필터 필드
        """
        where: list[str] = []
        params: list[Any] = []

        for name, value in (filters or {}).items():
            column = ACCOUNT_COLUMNS.get(name)
            if column is None:
                raise ValidationError(f"Unknown account filter field: {name}", field=name)
            if value is None:
                where.append(f"{column} IS NULL")
            else:
                where.append(f"{column} = ?")
                params.append(_to_db_value(value))

        sql = f"SELECT * FROM {Tables.ACCOUNTS}"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY code LIMIT ? OFFSET ?"
        params.extend([limit, skip])

        rows = await self.db.fetchall(sql, params)
        return [Account.from_row(row) for row in rows]

    async def all_accounts(self) -> list[Account]:
        """전체 계정 스냅샷"""
        rows = await self.db.fetchall(f"SELECT * FROM {Tables.ACCOUNTS} ORDER BY code")
        return [Account.from_row(row) for row in rows]

    async def get_child_accounts(self, key: str) -> list[Account]:
        """직계 하위 계정 목록"""
        rows = await self.db.fetchall(
            f"SELECT * FROM {Tables.ACCOUNTS} WHERE parent_account_key = ? ORDER BY code",
            (key,),
        )
        return [Account.from_row(row) for row in rows]

    async def insert_account(
        self,
        fields: dict[str, Any],
        scope: AtomicScope | None = None,
        if_absent: bool = False,
    ) -> bool:
        """계정 저장

        Args:
            fields: 컬럼 값 (모델 필드 이름 기준)
            scope: 원자적 작업 범위
            if_absent: True면 key/code 충돌 시 무시 (INSERT OR IGNORE)

        Returns:
            실제로 저장되었는지 여부
        """
        names = list(fields)
        columns = ", ".join(ACCOUNT_COLUMNS[name] for name in names)
        placeholders = ", ".join("?" for _ in names)
        verb = "INSERT OR IGNORE" if if_absent else "INSERT"

        async with self.db.atomic(scope):
            cursor = await self.db.execute(
                f"{verb} INTO {Tables.ACCOUNTS} ({columns}) VALUES ({placeholders})",
                [_to_db_value(fields[name]) for name in names],
            )
        return cursor.rowcount > 0

    async def update_account(
        self,
        key: str,
        fields: dict[str, Any],
        scope: AtomicScope | None = None,
    ) -> Account | None:
        """계정 일부 필드 수정

        Returns:
            수정된 계정 (key가 없으면 None)
        """
        unknown = set(fields) - UPDATABLE_ACCOUNT_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        assignments = ", ".join(f"{ACCOUNT_COLUMNS[name]} = ?" for name in fields)
        params = [_to_db_value(value) for value in fields.values()]
        params.append(key)

        async with self.db.atomic(scope):
            cursor = await self.db.execute(
                f"UPDATE {Tables.ACCOUNTS} SET {assignments} WHERE key = ?",
                params,
            )
            if cursor.rowcount == 0:
                return None
            return await self.get_account(key)

    async def seed_accounts(
        self,
        accounts: list[dict[str, Any]],
        scope: AtomicScope | None = None,
    ) -> list[Account]:
        """계정 일괄 시드 (key 기준으로 없을 때만 저장)

        Returns:
            시드 대상 key의 현재 계정 목록
        """
        async with self.db.atomic(scope) as tx:
            inserted = 0
            for fields in accounts:
                if await self.insert_account(fields, scope=tx, if_absent=True):
                    inserted += 1
            result = await self.get_accounts_by_keys(fields["key"] for fields in accounts)

        logger.info("계정 시드 완료", extra={"requested": len(accounts), "inserted": inserted})
        return [result[fields["key"]] for fields in accounts if fields["key"] in result]

    # =====================================
    # 분개
    # =====================================

    async def insert_journal(
        self,
        journal: dict[str, Any],
        entries: list[dict[str, Any]],
        scope: AtomicScope | None = None,
    ) -> None:
        """분개 헤더 + 항목을 한 트랜잭션으로 저장"""
        async with self.db.atomic(scope):
            await self.db.execute(
                f"""
                INSERT INTO {Tables.JOURNALS} (
                    id, memo, datetime, reference_type, reference_id,
                    voided, void_reason, extra, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, 0, NULL, ?, ?, ?)
                """,
                (
                    journal["id"],
                    journal["memo"],
                    to_storage(journal["datetime"]),
                    journal.get("reference_type"),
                    journal.get("reference_id"),
                    _dump_json(journal.get("extra")),
                    to_storage(journal["created_at"]),
                    to_storage(journal["updated_at"]),
                ),
            )

            await self.db.executemany(
                f"""
                INSERT INTO {Tables.ENTRIES} (
                    id, journal_id, account_key, account_code,
                    debit_cents, credit_cents, meta, extra,
                    datetime, voided, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                """,
                [
                    (
                        entry["id"],
                        journal["id"],
                        entry["account_key"],
                        entry["account_code"],
                        entry["debit_cents"],
                        entry["credit_cents"],
                        _dump_json(entry.get("meta")),
                        _dump_json(entry.get("extra")),
                        to_storage(journal["datetime"]),
                        to_storage(journal["created_at"]),
                        to_storage(journal["updated_at"]),
                    )
                    for entry in entries
                ],
            )

    async def get_journal(self, journal_id: str) -> Journal | None:
        """분개 헤더 조회"""
        row = await self.db.fetchone(
            f"SELECT * FROM {Tables.JOURNALS} WHERE id = ?",
            (journal_id,),
        )
        return Journal.from_row(row) if row else None

    async def get_journal_entries(self, journal_id: str) -> list[Entry]:
        """분개 항목 조회 (저장 순서)"""
        rows = await self.db.fetchall(
            f"SELECT {ENTRY_COLUMNS} FROM {Tables.ENTRIES} WHERE journal_id = ? ORDER BY seq",
            (journal_id,),
        )
        return [Entry.from_row(row) for row in rows]

    async def find_active_journal_ids(
        self,
        journal_id: str | None = None,
        reference_type: str | None = None,
        reference_id: str | None = None,
    ) -> list[str]:
        """무효화되지 않은 분개 id 조회 (주어진 조건 모두 일치)"""
        where = ["voided = 0"]
        params: list[Any] = []
        for column, value in (
            ("id", journal_id),
            ("reference_type", reference_type),
            ("reference_id", reference_id),
        ):
            if value is not None:
                where.append(f"{column} = ?")
                params.append(value)

        rows = await self.db.fetchall(
            f"SELECT id FROM {Tables.JOURNALS} WHERE {' AND '.join(where)} ORDER BY datetime, id",
            params,
        )
        return [row[0] for row in rows]

    async def mark_journal_voided(
        self,
        journal_id: str,
        reason: str | None,
        updated_at: datetime,
        scope: AtomicScope | None = None,
    ) -> bool:
        """분개 무효화 (조건부 갱신)

        voided = 0 조건이 같은 UPDATE 문에 포함되므로
        동시에 두 번 호출해도 하나만 성공.

        Returns:
            상태가 실제로 바뀌었는지 여부
        """
        async with self.db.atomic(scope):
            cursor = await self.db.execute(
                f"""
                UPDATE {Tables.JOURNALS}
                SET voided = 1, void_reason = ?, updated_at = ?
                WHERE id = ? AND voided = 0
                """,
                (reason, to_storage(updated_at), journal_id),
            )
        return cursor.rowcount == 1

    async def mark_entries_voided(
        self,
        journal_id: str,
        updated_at: datetime,
        scope: AtomicScope | None = None,
    ) -> int:
        """분개 항목 일괄 무효화

        Returns:
            무효화된 항목 수
        """
        async with self.db.atomic(scope):
            cursor = await self.db.execute(
                f"""
                UPDATE {Tables.ENTRIES}
                SET voided = 1, updated_at = ?
                WHERE journal_id = ? AND voided = 0
                """,
                (to_storage(updated_at), journal_id),
            )
        return cursor.rowcount

    # =====================================
    # 분개 항목 조회 / 집계
    # =====================================

    @staticmethod
    def _entry_filter(
        account_key: str | None = None,
        account_keys: Iterable[str] | None = None,
        from_: datetime | None = None,
        to: datetime | None = None,
        before: datetime | None = None,
        meta_filter: dict[str, Any] | None = None,
    ) -> tuple[str, list[Any]]:
        """분개 항목 WHERE 절 생성 (무효화 항목 제외)

        Args:
            from_: 시작 (포함)
            to: 종료 (포함)
            before: 상한 (미포함)
        """
        where = ["e.voided = 0"]
        params: list[Any] = []

        if account_key is not None:
            where.append("e.account_key = ?")
            params.append(account_key)
        if account_keys is not None:
            keys = list(account_keys)
            if not keys:
                where.append("0")
            else:
                where.append(f"e.account_key IN ({', '.join('?' for _ in keys)})")
                params.extend(keys)
        if from_ is not None:
            where.append("e.datetime >= ?")
            params.append(to_storage(from_))
        if to is not None:
            where.append("e.datetime <= ?")
            params.append(to_storage(to))
        if before is not None:
            where.append("e.datetime < ?")
            params.append(to_storage(before))

        for meta_key, value in (meta_filter or {}).items():
            if not META_KEY_PATTERN.match(meta_key):
                raise ValidationError(f"Invalid meta filter key: {meta_key}", field=meta_key)
            if value is None:
                where.append(f"json_extract(e.meta, '$.{meta_key}') IS NULL")
            else:
                where.append(f"json_extract(e.meta, '$.{meta_key}') = ?")
                params.append(_to_db_value(value))

        return " AND ".join(where), params

    async def sum_by_account(self, **filters: Any) -> dict[str, tuple[int, int]]:
        """계정별 차변/대변 합계 (센트)

        Args:
            **filters: _entry_filter 인자

        Returns:
            {account_key: (debit_cents, credit_cents)}
        """
        where, params = self._entry_filter(**filters)
        rows = await self.db.fetchall(
            f"""
            SELECT e.account_key, SUM(e.debit_cents), SUM(e.credit_cents)
            FROM {Tables.ENTRIES} e
            WHERE {where}
            GROUP BY e.account_key
            """,
            params,
        )
        return {row[0]: (row[1] or 0, row[2] or 0) for row in rows}

    async def find_entries(
        self,
        limit: int,
        offset: int = 0,
        **filters: Any,
    ) -> list[Entry]:
        """분개 항목 조회 (업무 시각, 저장 순서 오름차순)"""
        where, params = self._entry_filter(**filters)
        rows = await self.db.fetchall(
            f"""
            SELECT {ENTRY_COLUMNS} FROM {Tables.ENTRIES} e
            WHERE {where}
            ORDER BY e.datetime, e.seq
            LIMIT ? OFFSET ?
            """,
            [*params, limit, offset],
        )
        return [Entry.from_row(row) for row in rows]

    async def count_entries(self, **filters: Any) -> int:
        """조건에 맞는 분개 항목 수"""
        where, params = self._entry_filter(**filters)
        row = await self.db.fetchone(
            f"SELECT COUNT(*) FROM {Tables.ENTRIES} e WHERE {where}",
            params,
        )
        return row[0] if row else 0
