"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads the YAML settings file and chart-of-accounts templates and parses
them into the typed ``ledger_config.schema`` dataclasses.

Architecture position
---------------------
**Config layer** -- sits above ``ledger_kernel``.  The kernel never
imports this package; ``TenantLedger`` hands parsed chart definitions to
``AccountRegistry.initialize_default_chart``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required fields have no silent defaults.
* Chart templates list parents before children and have unique codes.
* ``compute_checksum`` is deterministic for identical data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``code`` / ``name`` / ``type`` on an account  -> ``KeyError``.
* Unknown account type, duplicate code, parent after child, non-header
  parent  -> ``ValueError``.

Audit relevance
---------------
The chart checksum is logged when a template is loaded so a seeded chart
can be traced back to the exact template version.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import ChartAccountDef, ChartOfAccounts, LedgerSettings
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import AccountType

logger = get_logger("config.loader")

DEFAULTS_DIR = Path(__file__).parent / "defaults"
DEFAULT_SETTINGS_PATH = DEFAULTS_DIR / "settings.yaml"
DEFAULT_CHART_PATH = DEFAULTS_DIR / "chart_of_accounts.yaml"

_SETTINGS_KEYS = frozenset(
    {
        "default_currency",
        "entry_number_prefix",
        "entry_number_digits",
        "enforce_period_locks",
        "chart_path",
        "reporting",
    }
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level, got {type(data).__name__}")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """Build LedgerSettings from a dict; unknown keys are rejected."""
    section = data.get("ledger", data)
    unknown = set(section) - _SETTINGS_KEYS
    if unknown:
        raise ValueError(f"Unknown ledger settings: {sorted(unknown)}")
    return LedgerSettings(**section)


def load_settings(path: Path | str | None = None) -> LedgerSettings:
    """Load settings from ``path`` or the bundled defaults."""
    path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    settings = parse_settings(load_yaml_file(path))
    logger.info(
        "settings_loaded",
        extra={
            "path": str(path),
            "default_currency": settings.default_currency,
            "enforce_period_locks": settings.enforce_period_locks,
        },
    )
    return settings


# ---------------------------------------------------------------------------
# Chart of accounts
# ---------------------------------------------------------------------------


def parse_account_def(data: dict[str, Any]) -> ChartAccountDef:
    """
    Parse one chart account.

    Raises:
        KeyError: ``code``, ``name`` or ``type`` missing.
        ValueError: unknown account type.
    """
    account_type = str(data["type"]).lower()
    valid = {t.value for t in AccountType}
    if account_type not in valid:
        raise ValueError(
            f"Account {data['code']}: unknown type {data['type']!r}, expected one of {sorted(valid)}"
        )
    return ChartAccountDef(
        code=str(data["code"]),
        name=data["name"],
        account_type=account_type,
        parent_code=str(data["parent"]) if data.get("parent") is not None else None,
        is_header=bool(data.get("header", False)),
        description=data.get("description"),
        tax_code=data.get("tax_code"),
        tags=tuple(data.get("tags", ())),
    )


def parse_chart(data: dict[str, Any]) -> ChartOfAccounts:
    """
    Parse a chart template and check its ordering.

    Raises:
        ValueError: duplicate code, a parent listed after its child, or a
            parent that is not a header.
    """
    accounts: list[ChartAccountDef] = []
    headers: set[str] = set()
    seen: set[str] = set()
    for raw in data.get("accounts", []):
        account = parse_account_def(raw)
        if account.code in seen:
            raise ValueError(f"Duplicate account code {account.code!r} in chart")
        if account.parent_code is not None and account.parent_code not in seen:
            raise ValueError(
                f"Account {account.code}: parent {account.parent_code!r} must be listed before it"
            )
        if account.parent_code is not None and account.parent_code not in headers:
            raise ValueError(
                f"Account {account.code}: parent {account.parent_code!r} is not a header"
            )
        seen.add(account.code)
        if account.is_header:
            headers.add(account.code)
        accounts.append(account)

    return ChartOfAccounts(
        name=data.get("name", "default"),
        version=int(data.get("version", 1)),
        accounts=tuple(accounts),
        checksum=compute_checksum(data),
    )


def load_chart_of_accounts(path: Path | str | None = None) -> ChartOfAccounts:
    """Load a chart template from ``path`` or the bundled default chart."""
    path = Path(path) if path is not None else DEFAULT_CHART_PATH
    chart = parse_chart(load_yaml_file(path))
    logger.info(
        "chart_template_loaded",
        extra={
            "path": str(path),
            "chart_name": chart.name,
            "version": chart.version,
            "account_count": len(chart),
            "checksum": chart.checksum,
        },
    )
    return chart
