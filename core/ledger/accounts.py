"""
계정과목 관리

계정 생성/수정/조회, 계층 구성, 상위 계정 순환 검증.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping
from uuid import uuid4

from core.constants import Defaults
from core.errors import AccountNotFoundError, StorageError, ValidationError
from core.ledger.hierarchy import build_forest, validate_forest
from core.ledger.models import Account, AccountNode, ForestReport
from core.ledger.requests import CreateAccountRequest, UpdateAccountRequest, parse_request
from core.ledger.store import LedgerStore
from core.ledger.types import (
    ALLOWED_PARENT_GROUPS,
    DEFAULT_OPENING_BALANCE_ACCOUNT,
    AccountOrigin,
    AccountType,
    ParentGroup,
    is_debit_normal,
)
from core.utils.timezone import now_utc

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import AtomicScope

logger = logging.getLogger(__name__)


def _type_mismatch_message(account_type: AccountType) -> str:
    if account_type == AccountType.CONTRA:
        return "Contra accounts must belong to asset or liability parent_group"
    name = account_type.value
    return f"{name.capitalize()} type must have {name} parent_group"


class AccountService:
    """계정과목 관리 서비스

    Args:
        store: Ledger 저장소
        max_parent_depth: 상위 계정 체인 탐색 상한
        offset_account: 기초 잔액 상대 계정 식별 정보 (key/code/name/group)
    """

    def __init__(
        self,
        store: LedgerStore,
        max_parent_depth: int = Defaults.MAX_PARENT_DEPTH,
        offset_account: Mapping[str, str] | None = None,
    ):
        self.store = store
        self.max_parent_depth = max_parent_depth
        self.offset_account_fields: dict[str, Any] = {
            **DEFAULT_OPENING_BALANCE_ACCOUNT,
            **(offset_account or {}),
        }

    # =====================================
    # 생성 / 수정
    # =====================================

    @staticmethod
    def validate_structure(request: CreateAccountRequest) -> tuple[AccountType, ParentGroup, AccountOrigin]:
        """계정 필수 필드, 코드 형식, 유형/그룹 조합 검증

        Returns:
            (유형, 상위 그룹, 출처)

        Raises:
            ValidationError: 규칙 위반
        """
        required = (
            request.key,
            request.code,
            request.name,
            request.type,
            request.parent_group,
            request.group,
        )
        if not all(required):
            raise ValidationError("Missing required account fields")

        code = request.code or ""
        if not (code.isascii() and code.isdigit()):
            raise ValidationError("Account code must be numeric string", code=code)

        try:
            account_type = AccountType(request.type)
        except ValueError as e:
            raise ValidationError(f"Invalid account type: '{request.type}'", field="type") from e
        try:
            parent_group = ParentGroup(request.parent_group)
        except ValueError as e:
            raise ValidationError(
                f"Invalid parent_group: '{request.parent_group}'", field="parent_group"
            ) from e
        try:
            origin = AccountOrigin(request.origin or AccountOrigin.USER_CREATED.value)
        except ValueError as e:
            raise ValidationError(f"Invalid account origin: '{request.origin}'", field="origin") from e

        if parent_group not in ALLOWED_PARENT_GROUPS[account_type]:
            raise ValidationError(
                _type_mismatch_message(account_type),
                type=account_type.value,
                parent_group=parent_group.value,
            )

        return account_type, parent_group, origin

    def _account_fields(self, request: CreateAccountRequest) -> dict[str, Any]:
        """검증된 요청 → 저장 필드"""
        account_type, parent_group, origin = self.validate_structure(request)
        now = now_utc()
        return {
            "id": str(uuid4()),
            "key": request.key,
            "code": request.code,
            "name": request.name,
            "type": account_type,
            "parent_group": parent_group,
            "group": request.group,
            "origin": origin,
            "is_active": True,
            "parent_account_key": request.parent_account_key or None,
            "extra": request.extra or {},
            "created_at": now,
            "updated_at": now,
        }

    async def create_account(
        self,
        request: CreateAccountRequest | Mapping[str, Any],
        scope: AtomicScope | None = None,
    ) -> Account:
        """계정 생성

        Raises:
            ValidationError: 필드 오류, 상위 계정 없음, key/code 중복
        """
        req = parse_request(CreateAccountRequest, request)
        fields = self._account_fields(req)

        async with self.store.db.atomic(scope) as tx:
            parent_key = fields["parent_account_key"]
            if parent_key and await self.store.get_account(parent_key) is None:
                raise ValidationError(f"Parent account '{parent_key}' not found", key=req.key)

            if await self.store.find_account_conflict(req.key, req.code) is not None:
                raise ValidationError(
                    f"Account with key '{req.key}' or code '{req.code}' already exists",
                    key=req.key,
                    code=req.code,
                )

            try:
                await self.store.insert_account(fields, scope=tx)
            except StorageError as e:
                # 동시 생성 경합은 UNIQUE 인덱스가 막음
                if e.is_constraint_violation:
                    raise ValidationError(
                        f"Account with key '{req.key}' or code '{req.code}' already exists",
                        key=req.key,
                        code=req.code,
                    ) from e
                raise

            account = await self.store.get_account(req.key)

        assert account is not None
        logger.info(
            "계정 생성",
            extra={"key": account.key, "code": account.code, "type": account.type.value},
        )
        return account

    async def update_account(
        self,
        request: UpdateAccountRequest | Mapping[str, Any],
        scope: AtomicScope | None = None,
    ) -> Account:
        """계정 일부 수정 (name, group, is_active, extra, parent_account_key)

        Raises:
            AccountNotFoundError: key가 없음
            ValidationError: 자기 자신/순환 상위 계정, 상위 계정 없음
        """
        req = parse_request(UpdateAccountRequest, request)
        if not req.key:
            raise ValidationError("Account key is required for update")

        fields: dict[str, Any] = {}
        for name in ("name", "group", "is_active", "extra"):
            value = getattr(req, name)
            if name in req.model_fields_set and value is not None:
                fields[name] = value
        if "parent_account_key" in req.model_fields_set:
            fields["parent_account_key"] = req.parent_account_key or None
        fields["updated_at"] = now_utc()

        async with self.store.db.atomic(scope) as tx:
            if await self.store.get_account(req.key) is None:
                raise AccountNotFoundError(req.key)

            if fields.get("parent_account_key"):
                await self.validate_parent(req.key, fields["parent_account_key"])

            account = await self.store.update_account(req.key, fields, scope=tx)

        if account is None:
            raise AccountNotFoundError(req.key)

        logger.info(
            "계정 수정",
            extra={"key": account.key, "fields": sorted(set(fields) - {"updated_at"})},
        )
        return account

    async def deactivate_account(self, key: str, scope: AtomicScope | None = None) -> Account:
        """계정 비활성화 (이후 기록 불가)"""
        return await self.update_account({"key": key, "is_active": False}, scope=scope)

    async def seed_accounts(
        self,
        accounts: list[CreateAccountRequest | Mapping[str, Any]],
        scope: AtomicScope | None = None,
    ) -> list[Account]:
        """계정 일괄 시드 (key가 없을 때만 생성)

        출처를 지정하지 않으면 systemSeeded.
        """
        rows = []
        for item in accounts:
            req = parse_request(CreateAccountRequest, item)
            if req.origin is None:
                req = req.model_copy(update={"origin": AccountOrigin.SYSTEM_SEEDED.value})
            rows.append(self._account_fields(req))

        return await self.store.seed_accounts(rows, scope=scope)

    # =====================================
    # 상위 계정 검증
    # =====================================

    async def validate_parent(self, account_key: str, parent_key: str) -> None:
        """상위 계정 지정 시 순환 여부 검증

        parent_key의 상위 체인을 따라 올라가며 account_key를 만나면 거부.
        이미 존재하는 다른 순환을 만나거나 탐색 상한에 도달하면 중단.

        Raises:
            ValidationError: 자기 자신 지정, 상위 계정 없음, 순환 발생
        """
        if account_key == parent_key:
            raise ValidationError("Account cannot be its own parent", key=account_key)

        exists, current = await self.store.get_parent_key(parent_key)
        if not exists:
            raise ValidationError(f"Parent account '{parent_key}' not found", key=account_key)

        visited = {parent_key}
        hops = 0
        while current:
            if current == account_key:
                raise ValidationError(
                    f"Circular dependency detected. Account '{account_key}' is an ancestor of '{parent_key}'",
                    key=account_key,
                    parent_key=parent_key,
                )
            if current in visited:
                break
            visited.add(current)

            exists, current = await self.store.get_parent_key(current)
            if not exists:
                break

            hops += 1
            if hops >= self.max_parent_depth:
                logger.warning(
                    "상위 계정 체인 탐색 상한 도달, 검증 중단",
                    extra={"key": account_key, "parent_key": parent_key, "max_depth": self.max_parent_depth},
                )
                break

    # =====================================
    # 조회
    # =====================================

    async def get_account_by_key(self, key: str) -> Account | None:
        return await self.store.get_account(key)

    async def get_account_by_code(self, code: str) -> Account | None:
        return await self.store.get_account_by_code(code)

    async def list_accounts(
        self,
        filters: Mapping[str, Any] | None = None,
        limit: int = Defaults.LIST_LIMIT,
        skip: int = 0,
    ) -> list[Account]:
        """계정 목록 (등호 필터, 코드순)"""
        if limit < 0 or skip < 0:
            raise ValidationError("limit and skip must not be negative", limit=limit, skip=skip)
        return await self.store.list_accounts(dict(filters or {}), limit=limit, skip=skip)

    async def get_account_hierarchy(self) -> list[AccountNode]:
        """계정 계층 (루트 목록, 각 노드에 하위 계정 포함)"""
        return build_forest(await self.store.all_accounts())

    async def get_child_accounts(self, key: str) -> list[Account]:
        """직계 하위 계정"""
        return await self.store.get_child_accounts(key)

    async def get_parent_accounts(self, key: str) -> list[Account]:
        """상위 계정 체인 (가까운 순)

        Raises:
            AccountNotFoundError: key가 없음
        """
        account = await self.store.get_account(key)
        if account is None:
            raise AccountNotFoundError(key)

        chain: list[Account] = []
        visited = {key}
        current = account.parent_account_key
        while current and current not in visited and len(chain) < self.max_parent_depth:
            visited.add(current)
            parent = await self.store.get_account(current)
            if parent is None:
                break
            chain.append(parent)
            current = parent.parent_account_key

        return chain

    async def validate_hierarchy(self) -> ForestReport:
        """전체 계층 진단 (순환, 끊어진 상위 참조)"""
        report = validate_forest(await self.store.all_accounts())
        if not report.is_valid:
            logger.warning(
                "계정 계층 이상 발견",
                extra={"cycles": report.cycles, "dangling": report.dangling_parents},
            )
        return report

    @staticmethod
    def is_debit_normal(account: Account) -> bool:
        """정상 잔액이 차변인지 여부"""
        return is_debit_normal(account.type, account.parent_group)

    # =====================================
    # 기초 잔액 상대 계정
    # =====================================

    @property
    def default_offset_key(self) -> str:
        return self.offset_account_fields["key"]

    async def ensure_offset_account(
        self,
        offset_key: str | None = None,
        scope: AtomicScope | None = None,
    ) -> Account:
        """기초 잔액 상대 계정 조회 (기본 계정은 없으면 생성)

        기본 계정은 INSERT OR IGNORE로 생성하므로
        여러 프로세스가 동시에 호출해도 하나만 저장됨.

        Raises:
            ValidationError: 지정한 상대 계정이 없음, 기본 계정 코드가 다른 계정과 충돌
        """
        key = offset_key or self.default_offset_key
        existing = await self.store.get_account(key)
        if existing is not None:
            return existing

        if offset_key:
            raise ValidationError(f"Offset account '{offset_key}' not found", key=offset_key)

        now = now_utc()
        fields = {
            **self.offset_account_fields,
            "id": str(uuid4()),
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
        created = await self.store.insert_account(fields, scope=scope, if_absent=True)
        account = await self.store.get_account(key)
        if account is None:
            raise ValidationError(
                f"Offset account code '{fields['code']}' is already used by another account",
                key=key,
            )

        if created:
            logger.info("기초 잔액 상대 계정 생성", extra={"key": account.key, "code": account.code})
        return account
