"""
Ledger configuration schema.

Typed, frozen views of the YAML configuration: tenant ledger settings and
chart-of-accounts definitions.  YAML files are parsed into these types by
``ledger_config.loader``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerSettings:
    """
    Per-deployment ledger settings.

    ``chart_path`` None means the bundled default chart.  ``reporting`` is
    passed to ``ReportingConfig.from_dict``.
    """

    default_currency: str = "MYR"
    entry_number_prefix: str = "JE"
    entry_number_digits: int = 5
    enforce_period_locks: bool = True
    chart_path: str | None = None
    reporting: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.default_currency) != 3 or not self.default_currency.isalpha():
            raise ValueError(
                f"default_currency must be a 3-letter ISO 4217 code, got {self.default_currency!r}"
            )
        if not self.entry_number_prefix:
            raise ValueError("entry_number_prefix must not be empty")
        if not 1 <= self.entry_number_digits <= 12:
            raise ValueError("entry_number_digits must be between 1 and 12")


# ---------------------------------------------------------------------------
# Chart of accounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChartAccountDef:
    """One account in a chart-of-accounts template."""

    code: str
    name: str
    account_type: str  # asset, liability, equity, revenue, expense
    parent_code: str | None = None
    is_header: bool = False
    description: str | None = None
    tax_code: str | None = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class ChartOfAccounts:
    """A named chart template; accounts are ordered parents first."""

    name: str
    version: int
    accounts: tuple[ChartAccountDef, ...]
    checksum: str = ""

    def __iter__(self):
        return iter(self.accounts)

    def __len__(self) -> int:
        return len(self.accounts)

    def get(self, code: str) -> ChartAccountDef | None:
        for account in self.accounts:
            if account.code == code:
                return account
        return None
