"""
ORM-level immutability enforcement for posted ledger history.

===============================================================================
WHY THIS EXISTS
===============================================================================

Posted entries are never edited or deleted.  A mistake is corrected by a
reversing entry that leaves a visible trail.  The services already refuse
illegal transitions; these listeners catch anything that slips past them
(a bug, a script poking at ORM objects) before the SQL reaches the database.

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_flush]   --> account deletions with journal lines
    [before_update]  --> _check_*_immutability()  --> ImmutabilityViolationError
    [before_delete]  --> _check_*_delete()        --> ImmutabilityViolationError
         |
         v
    SQL sent to the database (only if every check passes)

Status checks look at the value the row had BEFORE this flush, using
SQLAlchemy attribute history.  That is what lets the posting workflow move
an entry from draft to posted while still blocking any later edit.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity            | Rule
------------------|------------------------------------------------------------
JournalEntry      | draft: free.  posted: only -> reversed, touching status
                  | and reversed_by_id.  reversed: frozen.  Delete: draft only.
JournalLine       | Frozen (update and delete) unless the entry is a draft.
Account           | code / account_type / normal_balance frozen once the
                  | account or a descendant has posted or reversed lines.
                  | Delete blocked while any journal line references it.
AccountingPeriod  | Locked rows frozen.  Closed or locked rows not deletable.

updated_at / updated_by_id are audit metadata and may always change.

===============================================================================
USAGE
===============================================================================

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()      # once at startup

    unregister_immutability_listeners()    # tests only
"""

from sqlalchemy import event, inspect, text
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.exceptions import AccountReferencedError, ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})

# Fields the posted -> reversed transition may set
REVERSAL_FIELDS = frozenset({"status", "reversed_by_id"}) | AUDIT_FIELDS

ACCOUNT_STRUCTURAL_FIELDS = frozenset({"account_type", "normal_balance", "code"})


def _status_value(status) -> str | None:
    if status is None:
        return None
    return getattr(status, "value", status)


def _status_before_flush(target) -> str | None:
    """Status the row carried before pending changes."""
    history = get_history(target, "status")
    if history.deleted:
        return _status_value(history.deleted[0])
    return _status_value(target.status)


def _changed_fields(target) -> set[str]:
    insp = inspect(target)
    return {attr.key for attr in insp.attrs if attr.history.has_changes()}


def _block(entity_type: str, entity_id, operation: str, reason: str, **extra):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "reason": reason,
            **extra,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


# =============================================================================
# Journal entries and lines
# =============================================================================


def _check_journal_entry_immutability(mapper, connection, target):
    """
    Draft entries change freely.  A posted entry may only become reversed;
    a reversed entry may not change at all.
    """
    old_status = _status_before_flush(target)
    if old_status == "draft":
        return

    changed = _changed_fields(target) - AUDIT_FIELDS
    if not changed:
        return

    if old_status == "posted":
        new_status = _status_value(target.status)
        if new_status == "reversed" and changed <= REVERSAL_FIELDS:
            return
        _block(
            "JournalEntry",
            target.id,
            "UPDATE",
            f"Posted journal entries are immutable (fields: {sorted(changed)})",
            fields=sorted(changed),
        )

    _block(
        "JournalEntry",
        target.id,
        "UPDATE",
        f"Journal entry in status '{old_status}' is immutable",
        fields=sorted(changed),
    )


def _check_journal_entry_delete(mapper, connection, target):
    """Only drafts may be deleted."""
    old_status = _status_before_flush(target)
    if old_status != "draft":
        _block(
            "JournalEntry",
            target.id,
            "DELETE",
            f"Journal entry in status '{old_status}' cannot be deleted",
        )


def _entry_status_in_db(connection, entry_id) -> str | None:
    return connection.execute(
        text("SELECT status FROM journal_entries WHERE id = :entry_id"),
        {"entry_id": str(entry_id)},
    ).scalar()


def _check_journal_line_immutability(mapper, connection, target):
    """Lines follow their entry: editable only while it is a draft."""
    status = _entry_status_in_db(connection, target.journal_entry_id)
    if status is not None and status != "draft":
        _block(
            "JournalLine",
            target.id,
            "UPDATE",
            f"Lines of a {status} journal entry cannot be modified",
        )


def _check_journal_line_delete(mapper, connection, target):
    status = _entry_status_in_db(connection, target.journal_entry_id)
    if status is not None and status != "draft":
        _block(
            "JournalLine",
            target.id,
            "DELETE",
            f"Lines of a {status} journal entry cannot be deleted",
        )


# =============================================================================
# Accounts
# =============================================================================


def _account_has_posted_references(connection, account_id) -> bool:
    """True if the account or any descendant has posted or reversed lines."""
    return bool(
        connection.execute(
            text("""
                WITH RECURSIVE account_tree AS (
                    SELECT id FROM accounts WHERE id = :account_id
                    UNION ALL
                    SELECT a.id
                    FROM accounts a
                    JOIN account_tree t ON a.parent_id = t.id
                )
                SELECT EXISTS (
                    SELECT 1 FROM journal_lines jl
                    JOIN journal_entries je ON jl.journal_entry_id = je.id
                    WHERE jl.account_id IN (SELECT id FROM account_tree)
                    AND je.status IN ('posted', 'reversed')
                )
            """),
            {"account_id": str(account_id)},
        ).scalar()
    )


def _check_account_structural_immutability(mapper, connection, target):
    """Structural fields freeze once posted history points at the account."""
    changed = _changed_fields(target) & ACCOUNT_STRUCTURAL_FIELDS
    if not changed:
        return
    if _account_has_posted_references(connection, target.id):
        _block(
            "Account",
            target.id,
            "UPDATE",
            f"Structural fields {sorted(changed)} are frozen once posted lines "
            f"reference the account",
            fields=sorted(changed),
        )


def _check_account_deletion_before_flush(session, flush_context, instances):
    """
    Refuse to delete an account that any journal line references.

    Runs in before_flush so the flush plan is never built for the delete.
    """
    from ledger_kernel.models.account import Account

    for obj in list(session.deleted):
        if not isinstance(obj, Account):
            continue

        with session.no_autoflush:
            referenced = session.execute(
                text(
                    "SELECT EXISTS (SELECT 1 FROM journal_lines "
                    "WHERE account_id = :account_id)"
                ),
                {"account_id": str(obj.id)},
            ).scalar()

        if referenced:
            logger.error(
                "immutability_violation_blocked",
                extra={
                    "entity_type": "Account",
                    "entity_id": str(obj.id),
                    "operation": "DELETE",
                    "reason": "account_has_journal_lines",
                },
            )
            raise AccountReferencedError(
                account_id=str(obj.id),
                reason="referenced by journal lines",
            )


# =============================================================================
# Accounting periods
# =============================================================================


def _check_accounting_period_immutability(mapper, connection, target):
    old_status = _status_before_flush(target)
    if old_status != "locked":
        return
    changed = _changed_fields(target) - AUDIT_FIELDS
    if changed:
        _block(
            "AccountingPeriod",
            target.id,
            "UPDATE",
            f"Locked period {target.period_code} is immutable",
            fields=sorted(changed),
        )


def _check_accounting_period_delete(mapper, connection, target):
    old_status = _status_before_flush(target)
    if old_status in ("closed", "locked"):
        _block(
            "AccountingPeriod",
            target.id,
            "DELETE",
            f"Period {target.period_code} is {old_status} and cannot be deleted",
        )


# =============================================================================
# Registration
# =============================================================================


def _listeners():
    from ledger_kernel.models.account import Account
    from ledger_kernel.models.accounting_period import AccountingPeriod
    from ledger_kernel.models.journal import JournalEntry, JournalLine

    return [
        (Session, "before_flush", _check_account_deletion_before_flush),
        (JournalEntry, "before_update", _check_journal_entry_immutability),
        (JournalEntry, "before_delete", _check_journal_entry_delete),
        (JournalLine, "before_update", _check_journal_line_immutability),
        (JournalLine, "before_delete", _check_journal_line_delete),
        (Account, "before_update", _check_account_structural_immutability),
        (AccountingPeriod, "before_update", _check_accounting_period_immutability),
        (AccountingPeriod, "before_delete", _check_accounting_period_delete),
    ]


def register_immutability_listeners() -> None:
    """Register every immutability listener.  Safe to call repeatedly."""
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)
    logger.debug("immutability_listeners_registered")


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """Remove every immutability listener.  TESTS ONLY."""
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)
