"""
금액 유틸리티

모든 금액은 소수점 2자리 Decimal (ROUND_HALF_UP).
DB에는 정수 센트로 저장하여 합계 계산 시 오차 없음.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from core.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# SQLite INTEGER 범위 안의 최대 센트
MAX_CENTS = 2**63 - 1
MAX_AMOUNT = Decimal(MAX_CENTS) / 100

MoneyInput = Union[Decimal, int, float, str]


def to_decimal(value: MoneyInput, field: str = "amount") -> Decimal:
    """입력값을 Decimal로 변환

    float는 str()을 거쳐 이진 부동소수점 오차를 제거.

    Raises:
        ValidationError: 숫자가 아니거나 NaN/Infinity인 경우
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{field} must be a number: {value!r}", field=field) from e
    if not result.is_finite():
        raise ValidationError(f"{field} must be finite", field=field)
    return result


def round_money(value: MoneyInput, field: str = "amount") -> Decimal:
    """소수점 2자리 반올림

    Example:
        >>> round_money("1.005")
        Decimal('1.01')

    Raises:
        ValidationError: 숫자가 아니거나 센트 값이 저장 범위(부호 있는 64비트)를 넘는 경우
    """
    try:
        result = to_decimal(value, field).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValidationError(f"{field} is out of range: {value!r}", field=field) from e
    if abs(result) > MAX_AMOUNT:
        raise ValidationError(f"{field} is out of range: {value!r}", field=field)
    return result


def to_cents(value: MoneyInput) -> int:
    """금액 → 정수 센트"""
    return int(round_money(value) * 100)


def from_cents(cents: int | None) -> Decimal:
    """정수 센트 → 금액 (None은 0)"""
    if not cents:
        return ZERO
    return (Decimal(cents) / 100).quantize(CENT)
