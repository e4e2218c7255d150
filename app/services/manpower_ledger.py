"""
Manpower ledger.

assignedCount is never stored: it is recomputed from live assignment rows on
every read so that cancellations and deletions are reflected without any
bookkeeping.
"""

from typing import Any, Iterable, List, Optional

from app.core.email_domain import normalize_email
from app.core.entities import ASSIGNMENTS, MANPOWER_REQUESTS, AssignmentStatus
from app.core.permissions import raise_if_cannot_read, scope_rows
from app.models.base_model import coerce_int
from app.repositories.entity_store import EntityStore, Record


def is_active_assignment(assignment: Record) -> bool:
    """
    Active means status 'active' or no status at all.

    Rows written before the status field existed have no status and still
    count as active.
    """
    return (assignment.get("status") or AssignmentStatus.ACTIVE) == AssignmentStatus.ACTIVE


def count_active_assignments(assignments: Iterable[Record], tl_email: str, position: str) -> int:
    """Active assignments of one team lead for one position, across all requests."""
    tl_email = normalize_email(tl_email)
    return sum(
        1
        for assignment in assignments
        if is_active_assignment(assignment)
        and normalize_email(assignment.get("tlEmail")) == tl_email
        and str(assignment.get("positionAppliedFor") or "") == position
    )


def _counts_toward(assignment: Record, request_id: Optional[int], tl_email: str, position: str) -> bool:
    if not is_active_assignment(assignment):
        return False
    if request_id is not None and coerce_int(assignment.get("requestId")) == request_id:
        return True
    # Legacy rows predate requestId: attribute by (team lead, position)
    return (
        not assignment.get("requestId")
        and normalize_email(assignment.get("tlEmail")) == tl_email
        and str(assignment.get("positionAppliedFor") or "") == position
    )


def assigned_count(request: Record, assignments: Iterable[Record]) -> int:
    request_id = coerce_int(request.get("id"))
    tl_email = normalize_email(request.get("teamLeadEmail"))
    position = str(request.get("position") or "")
    return sum(1 for a in assignments if _counts_toward(a, request_id, tl_email, position))


def with_manpower_counts(requests: Iterable[Record], assignments: Iterable[Record]) -> List[Record]:
    """Annotated copies of ``requests``; the inputs are left untouched."""
    assignments = list(assignments)
    return [{**request, "assignedCount": assigned_count(request, assignments)} for request in requests]


class ManpowerLedger:
    """Read-only listing of manpower requests annotated with live usage."""

    def __init__(self, store: EntityStore):
        self.store = store

    async def list_with_usage(self, user: Optional[Any] = None) -> List[Record]:
        """
        All manpower requests with their current assignedCount.

        When ``user`` is given the Authorization Gate applies: the role must
        be allowed to read manpower requests, and team leads only see their own.
        """
        if user is not None:
            raise_if_cannot_read(MANPOWER_REQUESTS, user)

        async with self.store.transaction() as tx:
            requests = await tx.list(MANPOWER_REQUESTS)
            assignments = await tx.list(ASSIGNMENTS)

        annotated = with_manpower_counts(requests, assignments)
        if user is not None:
            annotated = scope_rows(MANPOWER_REQUESTS, user, annotated)
        return annotated
