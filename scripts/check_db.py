"""Ledger DB 상태 확인 스크립트

시산표와 재무상태표를 출력하고 계정 계층 이상을 보고.

사용법:
    python -m scripts.check_db
    python -m scripts.check_db --config config/ledger.yaml
"""

import argparse
import asyncio
from pathlib import Path

from core.config.loader import load_config
from core.ledger import LedgerEngine


async def main(config_path: Path | None) -> int:
    config = load_config(config_path)

    async with LedgerEngine.open(config) as ledger:
        trial = await ledger.reports.get_trial_balance()
        sheet = await ledger.reports.get_balance_sheet()
        report = await ledger.accounts.validate_hierarchy()

    print(f"DB Path: {config.database.path}")
    print(f"Accounts: {report.account_count}")

    print(f"\nTrial balance ({len(trial.lines)} accounts):")
    for line in trial.lines:
        print(f"  {line.account_code:>6}  {line.account_name:<30} {line.debit:>14} {line.credit:>14}")
    print(f"  {'':>6}  {'TOTAL':<30} {trial.total_debit:>14} {trial.total_credit:>14}")

    print("\nBalance sheet:")
    print(f"  Assets:      {sheet.assets}")
    print(f"  Liabilities: {sheet.liabilities}")
    print(f"  Equity:      {sheet.equity}")

    if report.cycles:
        print(f"\nCycles: {report.cycles}")
    if report.dangling_parents:
        print(f"\nDangling parents: {report.dangling_parents}")

    ok = trial.is_balanced and sheet.is_balanced and report.is_valid
    print("\nOK" if ok else "\nINCONSISTENT")
    return 0 if ok else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ledger DB 상태 확인")
    parser.add_argument("--config", type=Path, default=None, help="ledger.yaml 경로")
    args = parser.parse_args()

    raise SystemExit(asyncio.run(main(args.config)))
