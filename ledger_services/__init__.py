"""
ledger_services -- Package init and public API.

Responsibility:
    Per-tenant orchestration over the kernel, engines, reporting module and
    configuration.  External collaborators (invoicing, billing, payroll,
    bank feeds) use this package and nothing below it.

Architecture position:
    Services -- the top layer.

    Dependency direction:
        ledger_services/ -> ledger_modules/, ledger_engines/, ledger_kernel/,
                            ledger_config/                          (allowed)
        ledger_kernel/   -> ledger_services/                        (FORBIDDEN)
"""

from ledger_services.tenant_ledger import TenantLedger

__all__ = [
    "TenantLedger",
]
