"""
요청 스키마 (Pydantic)

Ledger 서비스 입력 데이터 검증.
서비스는 모델 인스턴스 또는 dict를 모두 받음.

업무 규칙(필수 필드, 금액 부호, 계정 유형 조합)은 서비스에서 검증하고,
여기서는 타입 변환만 담당.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from core.errors import ValidationError

RequestT = TypeVar("RequestT", bound=BaseModel)


class CreateAccountRequest(BaseModel):
    """계정 생성 요청"""

    key: str | None = Field(default=None, description="계정 key (업무 식별자)")
    code: str | None = Field(default=None, description="계정 코드 (숫자 문자열)")
    name: str | None = Field(default=None, description="계정 이름")
    type: str | None = Field(default=None, description="계정 유형 (asset, liability, ...)")
    parent_group: str | None = Field(default=None, description="상위 그룹")
    group: str | None = Field(default=None, description="보고서 그룹 라벨")
    origin: str | None = Field(default=None, description="생성 출처 (기본: userCreated)")
    parent_account_key: str | None = Field(default=None, description="상위 계정 key")
    extra: dict[str, Any] | None = Field(default=None, description="부가 속성")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "key": "CASH",
                    "code": "1000",
                    "name": "Cash",
                    "type": "asset",
                    "parent_group": "asset",
                    "group": "Current Assets",
                },
            ]
        }
    }


class UpdateAccountRequest(BaseModel):
    """계정 수정 요청

    명시적으로 전달된 필드만 수정.
    parent_account_key=None을 명시하면 상위 계정 해제.
    """

    key: str = Field(..., description="수정할 계정 key")
    name: str | None = Field(default=None, description="계정 이름")
    group: str | None = Field(default=None, description="보고서 그룹 라벨")
    is_active: bool | None = Field(default=None, description="활성 여부")
    extra: dict[str, Any] | None = Field(default=None, description="부가 속성")
    parent_account_key: str | None = Field(default=None, description="상위 계정 key")


class JournalLineRequest(BaseModel):
    """분개 라인 요청"""

    account_key: str = Field(..., description="계정 key")
    debit: Decimal = Field(default=Decimal("0"), description="차변 금액")
    credit: Decimal = Field(default=Decimal("0"), description="대변 금액")
    meta: dict[str, Any] | None = Field(default=None, description="필터 가능한 메타데이터")
    extra: dict[str, Any] | None = Field(default=None, description="부가 속성")


class PostJournalRequest(BaseModel):
    """분개 기록 요청"""

    memo: str | None = Field(default=None, description="적요")
    datetime: dt.datetime | None = Field(default=None, description="업무 발생 시각")
    lines: list[JournalLineRequest] = Field(default_factory=list, description="분개 라인 (2개 이상)")
    reference_type: str | None = Field(default=None, description="참조 유형")
    reference_id: str | None = Field(default=None, description="참조 ID")
    extra: dict[str, Any] | None = Field(default=None, description="부가 속성")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "memo": "Office rent",
                    "datetime": "2026-03-01T00:00:00Z",
                    "lines": [
                        {"account_key": "RENT", "debit": "1200.00"},
                        {"account_key": "CASH", "credit": "1200.00"},
                    ],
                },
            ]
        }
    }


class OpeningBalanceRequest(BaseModel):
    """기초 잔액 설정 요청

    amount 부호는 계정의 정상 잔액 방향 기준 (양수 = 잔액 증가).
    """

    account_key: str = Field(..., description="대상 계정 key")
    amount: Decimal | None = Field(default=None, description="기초 잔액")
    datetime: dt.datetime | None = Field(default=None, description="기준 시각 (기본: 현재)")
    memo: str | None = Field(default=None, description="적요")
    offset_account_key: str | None = Field(default=None, description="상대 계정 key")
    meta: dict[str, Any] | None = Field(default=None, description="분개 라인 메타데이터")


def parse_request(
    model: type[RequestT],
    data: RequestT | Mapping[str, Any] | None,
) -> RequestT:
    """dict 또는 모델 인스턴스를 요청 모델로 변환

    Raises:
        ValidationError: 데이터 없음 또는 타입 변환 실패
    """
    if isinstance(data, model):
        return data
    if data is None:
        raise ValidationError("Data object is required")

    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or model.__name__
        raise ValidationError(f"{location}: {first['msg']}", field=location) from e
