"""
복식부기 스키마 마이그레이션

테이블/인덱스 생성 후 계정과목표 YAML을 시드.
이미 존재하는 계정(key 기준)은 건너뜀.

사용법:
    python -m scripts.migrate_ledger
    python -m scripts.migrate_ledger --config config/ledger.yaml --chart config/accounts.example.yaml
"""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Any

import yaml

from core.config.loader import load_config
from core.errors import ConfigLoadError
from core.ledger import LedgerEngine
from core.logging import setup_logging_from_config

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ["acct_accounts", "acct_journals", "acct_entries"]


def load_chart(path: Path) -> list[dict[str, Any]]:
    """계정과목표 YAML 로드

    형식:
        accounts:
          - {key: CASH, code: "1000", name: Cash, type: asset, parent_group: asset, group: Current Assets}

    Raises:
        ConfigLoadError: 파싱 실패 또는 형식 오류
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"계정과목표 파싱 실패: {e}", path=str(path)) from e

    accounts = (data or {}).get("accounts") if isinstance(data, dict) else None
    if not isinstance(accounts, list) or not all(isinstance(item, dict) for item in accounts):
        raise ConfigLoadError("계정과목표의 'accounts'는 매핑 목록이어야 합니다", path=str(path))

    # YAML에서 숫자로 읽힌 코드도 문자열로 저장
    return [{**item, "code": str(item["code"])} if "code" in item else item for item in accounts]


async def verify_schema(ledger: LedgerEngine) -> bool:
    """필수 테이블 존재 및 계층 무결성 확인"""
    for table in REQUIRED_TABLES:
        if not await ledger.db.table_exists(table):
            logger.error(f"테이블 누락: {table}")
            return False
        logger.info(f"테이블 확인: {table}")

    report = await ledger.accounts.validate_hierarchy()
    logger.info(f"등록된 계정 수: {report.account_count}")
    return report.is_valid


async def main(config_path: Path | None, chart_path: Path | None) -> None:
    """마이그레이션 실행

    Args:
        config_path: ledger.yaml 경로 (None이면 기본 경로)
        chart_path: 계정과목표 YAML 경로 (None이면 시드 생략)
    """
    config = load_config(config_path)
    setup_logging_from_config(config.logging, process_name="migrate_ledger")

    logger.info(f"마이그레이션 시작: {config.database.path}")

    async with LedgerEngine.open(config) as ledger:
        if chart_path is not None:
            chart = load_chart(chart_path)
            seeded = await ledger.accounts.seed_accounts(chart)
            logger.info(f"계정과목표 {len(chart)}개 처리 완료 (현재 {len(seeded)}개)")

        if await verify_schema(ledger):
            logger.info("마이그레이션 완료")
        else:
            logger.error("마이그레이션 검증 실패")
            raise RuntimeError("스키마 검증 실패")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="복식부기 스키마 마이그레이션")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="ledger.yaml 경로 (기본: config/ledger.yaml)",
    )
    parser.add_argument(
        "--chart",
        type=Path,
        default=None,
        help="계정과목표 YAML 경로",
    )
    args = parser.parse_args()

    asyncio.run(main(args.config, args.chart))
