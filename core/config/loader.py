"""
설정 로더

ledger.yaml 로드 및 Ledger 설정 생성.
파일이 없으면 기본값으로 동작.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.constants import PROJECT_ROOT, Defaults, OpeningBalanceAccount, Paths
from core.errors import ConfigLoadError

MEMORY_DB = ":memory:"


@dataclass(frozen=True)
class DatabaseConfig:
    """DB 연결 설정"""

    path: Path = Paths.DEFAULT_DB
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS


@dataclass(frozen=True)
class LedgerSettings:
    """장부 동작 설정"""

    currency: str = Defaults.CURRENCY
    default_page_size: int = Defaults.PAGE_SIZE
    max_parent_depth: int = Defaults.MAX_PARENT_DEPTH


@dataclass(frozen=True)
class OpeningBalanceConfig:
    """기초 잔액 상대 계정 설정

    유형/상위 그룹은 자본으로 고정, 식별 정보만 변경 가능.
    """

    key: str = OpeningBalanceAccount.KEY
    code: str = OpeningBalanceAccount.CODE
    name: str = OpeningBalanceAccount.NAME
    group: str = OpeningBalanceAccount.GROUP

    def overrides(self) -> dict[str, str]:
        """상대 계정 식별 정보"""
        return {"key": self.key, "code": self.code, "name": self.name, "group": self.group}


@dataclass(frozen=True)
class LoggingConfig:
    """로깅 설정"""

    console_level: str = Defaults.LOG_LEVEL
    file_level: str = Defaults.LOG_LEVEL
    dir: Path = Paths.LOGS_DIR

    @property
    def console_level_no(self) -> int:
        return logging.getLevelName(self.console_level)

    @property
    def file_level_no(self) -> int:
        return logging.getLevelName(self.file_level)


@dataclass(frozen=True)
class LedgerConfig:
    """Ledger 전체 설정

    불변 데이터 구조로 설정 변경 방지
    """

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    opening_balance: OpeningBalanceConfig = field(default_factory=OpeningBalanceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """최상위 섹션 추출 (없으면 빈 dict)"""
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigLoadError(f"ledger.yaml의 '{name}' 섹션은 매핑이어야 합니다", section=name)
    return value


def _positive_int(section: dict[str, Any], name: str, default: int) -> int:
    value = section.get(name, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigLoadError(f"'{name}'은 양의 정수여야 합니다: {value!r}", field=name)
    return value


def _text(section: dict[str, Any], name: str, default: str) -> str:
    value = section.get(name, default)
    if not isinstance(value, str) or not value.strip():
        raise ConfigLoadError(f"'{name}'은 비어 있지 않은 문자열이어야 합니다: {value!r}", field=name)
    return value


def _level(section: dict[str, Any], name: str) -> str:
    value = _text(section, name, Defaults.LOG_LEVEL).upper()
    if not isinstance(logging.getLevelName(value), int):
        raise ConfigLoadError(f"유효하지 않은 로그 레벨입니다: '{value}'", field=name)
    return value


def _resolve_path(value: Any, name: str, default: Path) -> Path:
    """상대 경로는 프로젝트 루트 기준으로 해석"""
    if value is None:
        return default
    if not isinstance(value, str) or not value:
        raise ConfigLoadError(f"'{name}'은 경로 문자열이어야 합니다: {value!r}", field=name)
    if value == MEMORY_DB:
        return Path(MEMORY_DB)
    path = Path(value)
    return path if path.is_absolute() else PROJECT_ROOT / path


def parse_config(data: dict[str, Any]) -> LedgerConfig:
    """dict → LedgerConfig

    Raises:
        ConfigLoadError: 값의 형식이 잘못된 경우
    """
    database = _section(data, "database")
    ledger = _section(data, "ledger")
    opening = _section(data, "opening_balance").get("account") or {}
    log = _section(data, "logging")

    if not isinstance(opening, dict):
        raise ConfigLoadError("'opening_balance.account'는 매핑이어야 합니다", section="opening_balance")

    defaults = OpeningBalanceConfig()
    opening_config = OpeningBalanceConfig(
        key=_text(opening, "key", defaults.key),
        code=_text(opening, "code", defaults.code),
        name=_text(opening, "name", defaults.name),
        group=_text(opening, "group", defaults.group),
    )
    if not opening_config.code.isdigit():
        raise ConfigLoadError(
            f"상대 계정 코드는 숫자 문자열이어야 합니다: '{opening_config.code}'",
            field="code",
        )

    return LedgerConfig(
        database=DatabaseConfig(
            path=_resolve_path(database.get("path"), "path", Paths.DEFAULT_DB),
            busy_timeout_ms=_positive_int(database, "busy_timeout_ms", Defaults.BUSY_TIMEOUT_MS),
        ),
        ledger=LedgerSettings(
            currency=_text(ledger, "currency", Defaults.CURRENCY),
            default_page_size=_positive_int(ledger, "default_page_size", Defaults.PAGE_SIZE),
            max_parent_depth=_positive_int(ledger, "max_parent_depth", Defaults.MAX_PARENT_DEPTH),
        ),
        opening_balance=opening_config,
        logging=LoggingConfig(
            console_level=_level(log, "console_level"),
            file_level=_level(log, "file_level"),
            dir=_resolve_path(log.get("dir"), "dir", Paths.LOGS_DIR),
        ),
    )


def load_config(path: Path | None = None) -> LedgerConfig:
    """ledger.yaml 파일 로드

    Args:
        path: ledger.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        LedgerConfig 인스턴스 (파일이 없으면 기본값)

    Raises:
        ConfigLoadError: 파싱 실패 또는 값 형식 오류
    """
    if path is None:
        path = Paths.CONFIG_FILE

    if not path.exists():
        return LedgerConfig()

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"ledger.yaml 파싱 실패: {e}", path=str(path)) from e

    if data is None:
        return LedgerConfig()
    if not isinstance(data, dict):
        raise ConfigLoadError("ledger.yaml 최상위는 매핑이어야 합니다", path=str(path))

    return parse_config(data)


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    ledger.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _config: LedgerConfig | None = None

    def __new__(cls, config_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config_path: Path | None = None) -> None:
        if self._config is None:
            self._config = load_config(config_path)

    @property
    def config(self) -> LedgerConfig:
        """전체 설정"""
        assert self._config is not None
        return self._config

    @property
    def db_path(self) -> Path:
        """DB 경로"""
        return self.config.database.path

    @property
    def currency(self) -> str:
        """보고서 통화"""
        return self.config.ledger.currency

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._config = None


def get_settings(config_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        config_path: ledger.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(config_path)
