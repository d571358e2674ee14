"""
유틸리티 패키지

금액 반올림, 타임존 처리 등 공통 유틸리티
"""

from core.utils.money import (
    CENT,
    ZERO,
    from_cents,
    round_money,
    to_cents,
    to_decimal,
)
from core.utils.timezone import (
    EPOCH,
    from_storage,
    now_utc,
    to_storage,
    to_utc,
)

__all__ = [
    "CENT",
    "ZERO",
    "from_cents",
    "round_money",
    "to_cents",
    "to_decimal",
    "EPOCH",
    "from_storage",
    "now_utc",
    "to_storage",
    "to_utc",
]
