"""
Ledger 예외 및 결과 타입

모든 실패는 ErrorKind로 분류됨.
예외로 전파하거나 Outcome으로 변환하여 kind 기준 분기 가능.

사용 예시:
```python
outcome = await capture(posting.post_journal(request))
match outcome.kind:
    case None:
        journal = outcome.value
    case ErrorKind.DOUBLE_ENTRY:
        ...
```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """실패 유형"""

    VALIDATION = "VALIDATION"  # 입력 오류, 규칙 위반
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"  # 참조 계정 없음
    DOUBLE_ENTRY = "DOUBLE_ENTRY"  # 차변/대변 불일치
    STORAGE = "STORAGE"  # 저장소 오류 (연결 끊김 등)
    CONFIG = "CONFIG"  # 설정 로드 실패


class LedgerError(Exception):
    """Ledger 예외 기본 클래스

    Attributes:
        kind: 실패 유형
        message: 사람이 읽는 메시지
        context: 구조화된 부가 정보
    """

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "context": self.context,
        }


class ValidationError(LedgerError):
    """입력 검증 실패"""

    kind = ErrorKind.VALIDATION


class AccountNotFoundError(LedgerError):
    """계정 없음

    Args:
        keys: 찾지 못한 계정 key (하나 또는 여러 개)
    """

    kind = ErrorKind.ACCOUNT_NOT_FOUND

    def __init__(self, keys: str | list[str]) -> None:
        key_list = [keys] if isinstance(keys, str) else list(keys)
        super().__init__(
            f"Account not found with key: {', '.join(key_list)}",
            keys=key_list,
        )
        self.keys = key_list


class DoubleEntryError(LedgerError):
    """차변 합계 != 대변 합계"""

    kind = ErrorKind.DOUBLE_ENTRY


class StorageError(LedgerError):
    """저장소 계층 오류

    원본 예외는 original 및 __cause__로 보존.
    """

    kind = ErrorKind.STORAGE

    def __init__(self, original: BaseException, operation: str | None = None) -> None:
        message = str(original) or "Database error occurred"
        super().__init__(message, operation=operation, error_type=type(original).__name__)
        self.original = original

    @property
    def is_constraint_violation(self) -> bool:
        """UNIQUE 등 제약 조건 위반 여부"""
        return type(self.original).__name__ == "IntegrityError"


class ConfigLoadError(LedgerError):
    """설정 파일 로드 실패"""

    kind = ErrorKind.CONFIG


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """작업 결과 (성공 값 또는 실패 정보)"""

    value: T | None = None
    error: LedgerError | None = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        """실패 유형 (성공 시 None)"""
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> T:
        """성공 값 반환, 실패 시 원래 예외를 다시 발생"""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


async def capture(awaitable: Awaitable[T]) -> Outcome[T]:
    """LedgerError를 Outcome으로 변환

    LedgerError가 아닌 예외는 그대로 전파.
    """
    try:
        return Outcome(value=await awaitable)
    except LedgerError as e:
        return Outcome(error=e)
