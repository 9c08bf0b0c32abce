# backend/booka/commands/reconcile_ledger.py
"""
Print the daily ledger reconciliation report.

Usage:
    reconcile-ledger [tenant-id] [YYYY-MM-DD] [--json]

Without a tenant id all tenants are included; the date defaults to
today (UTC). The report is read-only.
"""

import argparse
from datetime import date, datetime
import json
import logging
import sys
from typing import List, Optional

from booka.core.exceptions import InfrastructureException
from booka.database import SessionLocal
from booka.services.reconciliation_service import ReconciliationService, render_report

logger = logging.getLogger(__name__)


def _parse_day(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reconcile transactions against the ledger")
    parser.add_argument("tenant_id", nargs="?", default=None, help="Tenant to reconcile (default: all)")
    parser.add_argument("day", nargs="?", type=_parse_day, default=None, help="UTC date, YYYY-MM-DD")
    parser.add_argument("--json", action="store_true", help="Print a machine-readable report")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    db = SessionLocal()
    try:
        report = ReconciliationService(db).reconcile(tenant_id=args.tenant_id, day=args.day)
    except InfrastructureException as exc:
        logger.error(f"Reconciliation failed: {exc.message}")
        return 1
    finally:
        db.close()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(render_report(report))
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
