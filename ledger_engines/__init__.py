"""
Module: ledger_engines
Responsibility:
    Re-exports the pure calculation engines: receivable/payable aging and
    statutory tax aggregation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  May import kernel enums,
    money helpers and logging; MUST NOT import ledger_services or
    ledger_modules.

Invariants enforced:
    - Engines never read the clock; dates are parameters.
    - Decimal-only arithmetic; floats are rejected.
    - Identical inputs give identical outputs.
"""

from ledger_engines.aging import (
    AGING_BUCKETS,
    AgeBucket,
    AgedItem,
    AgingBucketKey,
    AgingCalculator,
    AgingReport,
    AgingSeverity,
    aging_label,
    aging_report,
    aging_severity,
    bucket_label,
    calculate_days_overdue,
    categorize_into_bucket,
    empty_aging_buckets,
)
from ledger_engines.tax import TaxAggregator, TaxCodeTotal, TaxSummary
from ledger_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Aging
    "AGING_BUCKETS",
    "AgeBucket",
    "AgedItem",
    "AgingBucketKey",
    "AgingCalculator",
    "AgingReport",
    "AgingSeverity",
    "aging_label",
    "aging_report",
    "aging_severity",
    "bucket_label",
    "calculate_days_overdue",
    "categorize_into_bucket",
    "empty_aging_buckets",
    # Tax
    "TaxAggregator",
    "TaxCodeTotal",
    "TaxSummary",
    # Tracing
    "compute_input_fingerprint",
    "traced_engine",
]
