"""
Reporting Configuration Schema.

Classification rules and report options.  Accounts are placed in
statement sections by tag first (``cogs``, ``other_expense``,
``non_current``, ``current``) and by code prefix otherwise, matching the
bundled chart (1xxx assets, 2xxx liabilities, 3xxx equity, 4xxx revenue,
5xxx cost of sales, 6xxx operating expenses, 7xxx other expenses).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Self

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import AccountTag

logger = get_logger("modules.reporting.config")


@dataclass
class AccountClassification:
    """
    Rules for placing accounts into statement sections.

    An account matches a section if its code starts with any of the
    configured prefixes.  A matching tag on the account wins over prefixes.
    """

    # Balance sheet
    non_current_asset_prefixes: tuple[str, ...] = ("15", "16", "17", "18", "19")
    non_current_liability_prefixes: tuple[str, ...] = ("25", "26", "27", "28", "29")

    # Profit and loss
    cogs_prefixes: tuple[str, ...] = ("5",)
    other_expense_prefixes: tuple[str, ...] = ("7", "8", "9")

    def matches_prefix(self, code: str, prefixes: tuple[str, ...]) -> bool:
        return any(code.startswith(p) for p in prefixes)

    def is_cogs(self, account) -> bool:
        if account.has_tag(AccountTag.COGS):
            return True
        if account.has_tag(AccountTag.OTHER_EXPENSE):
            return False
        return self.matches_prefix(account.code, self.cogs_prefixes)

    def is_other_expense(self, account) -> bool:
        if account.has_tag(AccountTag.OTHER_EXPENSE):
            return True
        if account.has_tag(AccountTag.COGS):
            return False
        return self.matches_prefix(account.code, self.other_expense_prefixes)

    def is_non_current(self, account, prefixes: tuple[str, ...]) -> bool:
        if account.has_tag(AccountTag.NON_CURRENT):
            return True
        if account.has_tag(AccountTag.CURRENT):
            return False
        return self.matches_prefix(account.code, prefixes)


@dataclass
class ReportingConfig:
    """
    Configuration for the reporting module.

    ``enforce_integrity`` makes an out-of-balance trial balance or balance
    sheet raise; with it off the report comes back with
    ``is_balanced=False`` and the imbalance is logged.
    """

    classification: AccountClassification = field(
        default_factory=AccountClassification,
    )

    default_currency: str = "MYR"

    entity_name: str = "Company"

    # First month of the financial year (1 = calendar year)
    fiscal_year_start_month: int = 1

    include_zero_balances: bool = False

    enforce_integrity: bool = True

    def __post_init__(self):
        if len(self.default_currency) != 3:
            raise ValueError("default_currency must be a 3-letter ISO 4217 code")
        if not 1 <= self.fiscal_year_start_month <= 12:
            raise ValueError("fiscal_year_start_month must be between 1 and 12")

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        data = dict(data)
        if "classification" in data and isinstance(data["classification"], dict):
            data["classification"] = AccountClassification(
                **{k: tuple(v) for k, v in data["classification"].items()}
            )
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
