"""
pytest 공통 fixture 정의
"""

import tempfile
from pathlib import Path

import pytest

from core.config.loader import Settings


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_config_file(temp_dir: Path) -> Path:
    """테스트용 ledger.yaml 파일 생성"""
    config_content = f"""# 테스트용 ledger.yaml
database:
  path: "{(temp_dir / 'ledger.db').as_posix()}"
  busy_timeout_ms: 5000

ledger:
  currency: "KRW"
  default_page_size: 20
  max_parent_depth: 10

opening_balance:
  account:
    key: "OBE"
    code: "3900"
    name: "Opening Equity"

logging:
  console_level: "warning"
  file_level: "DEBUG"
  dir: "{(temp_dir / 'logs').as_posix()}"
"""
    config_path = temp_dir / "ledger.yaml"
    config_path.write_text(config_content, encoding="utf-8")
    return config_path


@pytest.fixture(autouse=True)
def reset_settings() -> None:
    """테스트 간 Settings 싱글턴 격리"""
    Settings.reset()
    yield
    Settings.reset()
