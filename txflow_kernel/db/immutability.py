"""
ORM-level immutability enforcement for append-only records.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                    | When Immutable          | Why
--------------------------|-------------------------|-----------------------------------
TransactionVersionModel   | ALWAYS (from creation)  | Archived versions are history
ActivityLogModel          | ALWAYS (from creation)  | Audit trail is append-only
TransactionDocumentModel  | ALWAYS (from creation)  | Uploads are superseded, not edited

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database:

    session.flush()
         |
         v
    [before_update / before_delete] --> _reject_*() --> ImmutabilityViolationError

If a listener raises, the flush is aborted and nothing is written.

Bulk ``update()``/``delete()`` statements bypass mapper events.  The kernel
never issues them against these tables; conditional bulk UPDATEs are only
used on ``transactions``.

===============================================================================
USAGE
===============================================================================

    from txflow_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests may call ``unregister_immutability_listeners()`` to seed forbidden
states, and must re-register afterwards.
"""

from sqlalchemy import event

from txflow_kernel.exceptions import ImmutabilityViolationError
from txflow_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _reject_version_update(mapper, connection, target):
    raise ImmutabilityViolationError(
        "TransactionVersion", str(target.id), "archived versions cannot be modified",
    )


def _reject_version_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        "TransactionVersion", str(target.id), "archived versions cannot be deleted",
    )


def _reject_activity_update(mapper, connection, target):
    raise ImmutabilityViolationError(
        "ActivityLog", str(target.id), "activity records cannot be modified",
    )


def _reject_activity_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        "ActivityLog", str(target.id), "activity records cannot be deleted",
    )


def _reject_document_update(mapper, connection, target):
    raise ImmutabilityViolationError(
        "TransactionDocument", str(target.id), "uploaded documents cannot be modified",
    )


def _reject_document_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        "TransactionDocument", str(target.id), "uploaded documents cannot be deleted",
    )


def _listener_table():
    from txflow_kernel.models.activity import ActivityLogModel
    from txflow_kernel.models.document import TransactionDocumentModel
    from txflow_kernel.models.version import TransactionVersionModel

    return (
        (TransactionVersionModel, "before_update", _reject_version_update),
        (TransactionVersionModel, "before_delete", _reject_version_delete),
        (ActivityLogModel, "before_update", _reject_activity_update),
        (ActivityLogModel, "before_delete", _reject_activity_delete),
        (TransactionDocumentModel, "before_update", _reject_document_update),
        (TransactionDocumentModel, "before_delete", _reject_document_delete),
    )


def register_immutability_listeners() -> None:
    """Install all immutability listeners (idempotent)."""
    for model, identifier, fn in _listener_table():
        if not event.contains(model, identifier, fn):
            event.listen(model, identifier, fn)
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners() -> None:
    """Remove all immutability listeners. FOR TESTING ONLY."""
    for model, identifier, fn in _listener_table():
        if event.contains(model, identifier, fn):
            event.remove(model, identifier, fn)
    logger.debug("immutability_listeners_unregistered")
