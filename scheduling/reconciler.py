"""
Reconciliation of generated class sessions against persisted ones.
"""

from typing import Iterable

from .types import ClassSession, ReconciliationPlan


def reconcile(
    ideal_sessions: Iterable[ClassSession],
    persisted_sessions: Iterable[ClassSession]
) -> ReconciliationPlan:
    """
    Compute which sessions to delete and which to add.

    Sessions present on both sides (same id) are left out of the plan, so
    edits made to a persisted session survive.

    Args:
        ideal_sessions: Sessions the course configuration currently implies
        persisted_sessions: Sessions stored for the same course

    Returns:
        ReconciliationPlan with ``to_delete`` in persisted order and
        ``to_add`` in ideal order
    """
    ideal = list(ideal_sessions)
    persisted = list(persisted_sessions)

    ideal_ids = {session.id for session in ideal}
    persisted_ids = {session.id for session in persisted}

    return ReconciliationPlan(
        to_delete=[session for session in persisted if session.id not in ideal_ids],
        to_add=[session for session in ideal if session.id not in persisted_ids],
    )
