# backend/booka/services/reconciliation_service.py
"""
Reconciliation Service for the Booka booking core.

Compares one UTC day of payment transactions against the ledger and
reports what does not line up: unreconciled transactions, orphaned
ledger entries, duplicate provider references and the balance
difference. The pass is read-only.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..core.enums import ReconciliationStatus
from ..core.exceptions import InfrastructureException, RepositoryException
from ..core.time_utils import now_utc, utc_day_window
from ..repositories import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

REPORT_RULE = "=" * 45


@dataclass
class UnreconciledTransaction:
    id: str
    status: str
    reconciliation_status: str
    amount: Decimal
    currency: str


@dataclass
class OrphanedLedgerEntry:
    id: str
    entry_type: str
    amount: Decimal
    currency: str
    transaction_id: Optional[str]


@dataclass
class ReconciliationReport:
    """Result of one reconciliation pass over a UTC day."""

    day: date
    tenant_id: Optional[str]
    generated_at: datetime
    transaction_count: int = 0
    transaction_total: Decimal = Decimal("0")
    by_status: Dict[str, int] = field(default_factory=dict)
    by_type: Dict[str, int] = field(default_factory=dict)
    by_reconciliation: Dict[str, int] = field(default_factory=dict)
    ledger_count: int = 0
    ledger_total: Decimal = Decimal("0")
    ledger_by_type: Dict[str, int] = field(default_factory=dict)
    unreconciled: List[UnreconciledTransaction] = field(default_factory=list)
    orphaned_entries: List[OrphanedLedgerEntry] = field(default_factory=list)
    duplicate_references: Dict[str, int] = field(default_factory=dict)
    balance_diff: Decimal = Decimal("0")
    balanced: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "tenant_id": self.tenant_id,
            "generated_at": self.generated_at.isoformat(),
            "transactions": {
                "count": self.transaction_count,
                "total_amount": str(self.transaction_total),
                "by_status": self.by_status,
                "by_type": self.by_type,
                "by_reconciliation": self.by_reconciliation,
            },
            "ledger": {
                "count": self.ledger_count,
                "total_amount": str(self.ledger_total),
                "by_type": self.ledger_by_type,
            },
            "unreconciled": [
                {
                    "id": t.id,
                    "status": t.status,
                    "reconciliation_status": t.reconciliation_status,
                    "amount": str(t.amount),
                    "currency": t.currency,
                }
                for t in self.unreconciled
            ],
            "orphaned_entries": [
                {
                    "id": e.id,
                    "entry_type": e.entry_type,
                    "amount": str(e.amount),
                    "currency": e.currency,
                    "transaction_id": e.transaction_id,
                }
                for e in self.orphaned_entries
            ],
            "duplicate_references": self.duplicate_references,
            "balance_diff": str(self.balance_diff),
            "balanced": self.balanced,
        }


class ReconciliationService(BaseService):
    """Read-only ledger reconciliation."""

    def __init__(self, db: Session, config: Optional[Settings] = None):
        super().__init__(db)
        self.config = config or default_settings
        self.transaction_repository = RepositoryFactory.create_transaction_repository(db)
        self.ledger_repository = RepositoryFactory.create_ledger_repository(db)

    @BaseService.measure_operation("reconcile")
    def reconcile(self, tenant_id: Optional[str] = None, day: Optional[date] = None) -> ReconciliationReport:
        """
        Build the reconciliation report for ``day`` (UTC; defaults to today).

        Raises:
            InfrastructureException: transactions or ledger entries could not be read
        """
        generated_at = now_utc()
        target_day = day or generated_at.date()
        start, end = utc_day_window(target_day)

        try:
            transactions = self.transaction_repository.list_created_between(start, end, tenant_id)
            entries = self.ledger_repository.list_posted_between(start, end, tenant_id)
        except RepositoryException as exc:
            raise InfrastructureException("Unable to load reconciliation data") from exc

        report = ReconciliationReport(day=target_day, tenant_id=tenant_id, generated_at=generated_at)

        report.transaction_count = len(transactions)
        report.transaction_total = sum((Decimal(t.amount or 0) for t in transactions), Decimal("0"))
        report.by_status = dict(Counter(t.status for t in transactions))
        report.by_type = dict(Counter(t.type for t in transactions))
        report.by_reconciliation = dict(Counter(t.reconciliation_status for t in transactions))

        report.ledger_count = len(entries)
        report.ledger_total = sum((Decimal(e.amount or 0) for e in entries), Decimal("0"))
        report.ledger_by_type = dict(Counter(e.entry_type for e in entries))

        report.unreconciled = [
            UnreconciledTransaction(
                id=t.id,
                status=t.status,
                reconciliation_status=t.reconciliation_status,
                amount=Decimal(t.amount or 0),
                currency=t.currency,
            )
            for t in transactions
            if t.reconciliation_status != ReconciliationStatus.MATCHED.value
        ]

        known_ids = {t.id for t in transactions}
        report.orphaned_entries = [
            OrphanedLedgerEntry(
                id=e.id,
                entry_type=e.entry_type,
                amount=Decimal(e.amount or 0),
                currency=e.currency,
                transaction_id=e.transaction_id,
            )
            for e in entries
            if not e.transaction_id or e.transaction_id not in known_ids
        ]

        reference_counts = Counter(t.provider_reference for t in transactions if t.provider_reference)
        report.duplicate_references = {
            ref: count for ref, count in sorted(reference_counts.items()) if count > 1
        }

        report.balance_diff = abs(report.transaction_total - report.ledger_total)
        report.balanced = report.balance_diff < Decimal(str(self.config.reconciliation_epsilon))

        self.logger.info(
            f"Reconciliation for {target_day.isoformat()} "
            f"({'balanced' if report.balanced else 'discrepancy'})",
            extra={
                "tenant_id": tenant_id,
                "transactions": report.transaction_count,
                "ledger_entries": report.ledger_count,
                "unreconciled": len(report.unreconciled),
                "orphaned": len(report.orphaned_entries),
            },
        )
        return report


def _format_counts(counts: Dict[str, int]) -> str:
    return json.dumps(counts, indent=2, sort_keys=True)


def render_report(report: ReconciliationReport) -> str:
    """Render the human-readable reconciliation report."""
    lines: List[str] = [
        "",
        "=== Ledger Reconciliation Report ===",
        f"Date: {report.day.isoformat()}",
        f"Tenant: {report.tenant_id or 'ALL'}",
        f"Generated: {report.generated_at.isoformat()}",
        REPORT_RULE,
        "",
        "Transactions Summary:",
        f"  Total Count: {report.transaction_count}",
        f"  Total Amount: {report.transaction_total:.2f}",
        f"  By Status: {_format_counts(report.by_status)}",
        f"  By Type: {_format_counts(report.by_type)}",
        f"  By Reconciliation: {_format_counts(report.by_reconciliation)}",
        "",
        "Ledger Entries Summary:",
        f"  Total Count: {report.ledger_count}",
        f"  Total Amount: {report.ledger_total:.2f}",
        f"  By Type: {_format_counts(report.ledger_by_type)}",
        "",
        "Discrepancies:",
    ]

    if report.unreconciled:
        lines.append(f"  Unreconciled Transactions: {len(report.unreconciled)}")
        for txn in report.unreconciled:
            lines.append(
                f"    - {txn.id}: {txn.status} | {txn.reconciliation_status} | "
                f"{txn.amount} {txn.currency}"
            )
    else:
        lines.append("  ✓ All transactions reconciled")

    if report.orphaned_entries:
        lines.append(f"  Orphaned Ledger Entries: {len(report.orphaned_entries)}")
        for entry in report.orphaned_entries:
            missing = entry.transaction_id or "none"
            lines.append(
                f"    - {entry.id}: {entry.entry_type} | {entry.amount} {entry.currency} | "
                f"Missing txn: {missing}"
            )

    if report.duplicate_references:
        lines.append(f"  Duplicate Provider References: {len(report.duplicate_references)}")
        for ref, count in report.duplicate_references.items():
            lines.append(f"    - {ref}: {count} rows")

    lines.extend(
        [
            "",
            "Balance Check:",
            f"  Net Transaction Amount: {report.transaction_total:.2f}",
            f"  Net Ledger Amount: {report.ledger_total:.2f}",
            f"  Difference: {report.balance_diff:.2f}",
            "  ✓ Balances match" if report.balanced else "  ⚠ Balance discrepancy detected",
            "",
            "=== End Report ===",
            "",
        ]
    )
    return "\n".join(lines)
