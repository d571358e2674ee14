"""
타임존 유틸리티

내부 저장: UTC 고정 폭 문자열 원칙 준수를 위한 헬퍼 함수.
고정 폭이므로 문자열 비교 순서 == 시간 순서.
"""

from datetime import datetime, timezone

# 저장 포맷 (마이크로초 + Z, 항상 27자)
STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# 기간 기본 시작점
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """datetime을 UTC로 변환

    Args:
        dt: datetime 객체 (naive면 UTC로 간주)

    Returns:
        UTC 타임존의 datetime
    """
    if dt.tzinfo is None:
        # naive datetime은 UTC로 간주
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def now_utc() -> datetime:
    """현재 UTC 시간 반환 (타임존 명시)"""
    return datetime.now(timezone.utc)


def to_storage(dt: datetime) -> str:
    """datetime을 저장용 문자열로 변환

    Example:
        >>> to_storage(datetime(2026, 2, 20, 16, 0, tzinfo=timezone.utc))
        '2026-02-20T16:00:00.000000Z'
    """
    return to_utc(dt).strftime(STORAGE_FORMAT)


def from_storage(value: str) -> datetime:
    """저장용 문자열을 UTC datetime으로 변환"""
    return datetime.strptime(value, STORAGE_FORMAT).replace(tzinfo=timezone.utc)

