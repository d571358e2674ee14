"""
복식부기 타입 정의

계정 유형, 상위 그룹 등 Ledger 시스템에서 사용하는 Enum 및 규칙 테이블 정의
"""

from enum import Enum

from core.constants import OpeningBalanceAccount


class AccountType(str, Enum):
    """계정 유형

    str을 상속하여 JSON 직렬화 가능.
    CONTRA는 자산/부채 그룹에 붙는 차감 계정.
    """

    ASSET = "asset"  # 자산
    LIABILITY = "liability"  # 부채
    EQUITY = "equity"  # 자본
    INCOME = "income"  # 수익
    EXPENSE = "expense"  # 비용
    CONTRA = "contra"  # 차감 계정 (감가상각누계액 등)


class ParentGroup(str, Enum):
    """상위 그룹 (재무제표 구분 및 정상 잔액 방향 결정)"""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


class AccountOrigin(str, Enum):
    """계정 생성 출처"""

    SYSTEM_SEEDED = "systemSeeded"  # 일괄 시드
    DYNAMIC_SYSTEM = "dynamicSystem"  # 시스템이 필요 시 생성 (기초 잔액 상대 계정 등)
    USER_CREATED = "userCreated"  # 사용자 생성


class JournalSide(str, Enum):
    """분개 방향 (차변/대변)"""

    DEBIT = "debit"  # 차변 (자산 증가, 비용 증가)
    CREDIT = "credit"  # 대변 (부채/자본/수익 증가)


class ReferenceType(str, Enum):
    """분개 참조 유형 (외부 객체 연결)"""

    OPENING_BALANCE = "opening_balance"


# 계정 유형별 허용 상위 그룹
ALLOWED_PARENT_GROUPS: dict[AccountType, frozenset[ParentGroup]] = {
    AccountType.ASSET: frozenset({ParentGroup.ASSET}),
    AccountType.LIABILITY: frozenset({ParentGroup.LIABILITY}),
    AccountType.EQUITY: frozenset({ParentGroup.EQUITY}),
    AccountType.INCOME: frozenset({ParentGroup.INCOME}),
    AccountType.EXPENSE: frozenset({ParentGroup.EXPENSE}),
    AccountType.CONTRA: frozenset({ParentGroup.ASSET, ParentGroup.LIABILITY}),
}

# 차변 증가 그룹
DEBIT_NORMAL_GROUPS: frozenset[ParentGroup] = frozenset({ParentGroup.ASSET, ParentGroup.EXPENSE})


def is_debit_normal(account_type: AccountType | str, parent_group: ParentGroup | str) -> bool:
    """정상 잔액이 차변인지 여부

    자산/비용 그룹은 차변 증가 (자산 그룹의 CONTRA 포함).
    부채 그룹의 CONTRA 계정도 차변 증가.
    그 외(부채, 자본, 수익)는 대변 증가.
    """
    group = ParentGroup(parent_group)
    if group in DEBIT_NORMAL_GROUPS:
        return True
    return AccountType(account_type) == AccountType.CONTRA and group == ParentGroup.LIABILITY


# 기초 잔액 상대 계정 (없으면 자동 생성)
DEFAULT_OPENING_BALANCE_ACCOUNT: dict = {
    "key": OpeningBalanceAccount.KEY,
    "code": OpeningBalanceAccount.CODE,
    "name": OpeningBalanceAccount.NAME,
    "type": AccountType.EQUITY.value,
    "parent_group": ParentGroup.EQUITY.value,
    "group": OpeningBalanceAccount.GROUP,
    "origin": AccountOrigin.DYNAMIC_SYSTEM.value,
    "extra": {"system": True},
}
