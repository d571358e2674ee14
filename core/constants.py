"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → 프로젝트 루트)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Tables:
    """Ledger 테이블 이름"""

    ACCOUNTS: str = "acct_accounts"
    JOURNALS: str = "acct_journals"
    ENTRIES: str = "acct_entries"


class Defaults:
    """기본값 상수"""

    CURRENCY: str = "USD"
    PAGE_SIZE: int = 50
    LIST_LIMIT: int = 100
    MAX_PARENT_DEPTH: int = 100  # 상위 계정 체인 탐색 상한
    BUSY_TIMEOUT_MS: int = 30000

    LOG_LEVEL: str = "INFO"
    GROUP_LABEL: str = "General"  # group이 비어 있을 때 보고서 라벨
    RETAINED_EARNINGS_LABEL: str = "Retained Earnings (Calc)"


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    CONFIG_FILE: Path = CONFIG_DIR / "ledger.yaml"

    # DB 파일
    DEFAULT_DB: Path = DATA_DIR / "ledger.db"


class OpeningBalanceAccount:
    """기초 잔액 상대 계정 기본 식별 정보 (ledger.yaml로 변경 가능)"""

    KEY: str = "OPENING_BALANCE_EQUITY"
    CODE: str = "3999"
    NAME: str = "Opening Balance Equity"
    GROUP: str = "Opening Balance"
