"""
ledger_config -- YAML settings and chart-of-accounts templates.

Responsibility:
    Parses ``settings.yaml`` into ``LedgerSettings`` and chart templates
    into ``ChartOfAccounts``.  Bundled defaults live in ``defaults/``.

Architecture position:
    Configuration -- above ``ledger_kernel`` and below
    ``ledger_services``.  The kernel MUST NEVER import from
    ``ledger_config``.

Failure modes:
    - ``FileNotFoundError`` for a missing file.
    - ``yaml.YAMLError`` for malformed YAML.
    - ``KeyError`` / ``ValueError`` for structurally invalid content.
"""

from ledger_config.loader import (
    DEFAULT_CHART_PATH,
    DEFAULT_SETTINGS_PATH,
    compute_checksum,
    load_chart_of_accounts,
    load_settings,
    load_yaml_file,
    parse_chart,
    parse_settings,
)
from ledger_config.schema import ChartAccountDef, ChartOfAccounts, LedgerSettings

__all__ = [
    "DEFAULT_CHART_PATH",
    "DEFAULT_SETTINGS_PATH",
    "ChartAccountDef",
    "ChartOfAccounts",
    "LedgerSettings",
    "compute_checksum",
    "load_chart_of_accounts",
    "load_settings",
    "load_yaml_file",
    "parse_chart",
    "parse_settings",
]
