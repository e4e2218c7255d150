"""
Claim engine.

Assigns one approved applicant to a team lead against the team lead's
approved manpower requests for the applicant's position. Everything happens
inside a single store transaction: the applicant and the matching requests
are locked before counting, the applicant is re-checked right before the
writes, and the applicant update, the new assignment and both audit records
commit together.
"""

import logging
from typing import Any, List, Optional

from app.core.email_domain import email_local_part, normalize_email
from app.core.entities import (
    APPLICANTS,
    ASSIGNMENTS,
    MANPOWER_REQUESTS,
    USERS,
    ApplicantStatus,
    AssignmentStatus,
    ManpowerRequestStatus,
)
from app.core.permissions import Roles, raise_if_not_roles
from app.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.models.base_model import coerce_int
from app.repositories.entity_store import (
    EntityStore,
    Record,
    StoreTransaction,
    parse_record_id,
)
from app.schemas.claim import AssignmentStatusResponse, ClaimResponse
from app.schemas.user import SessionUser
from app.services.audit_service import AuditRecorder
from app.services.manpower_ledger import count_active_assignments, is_active_assignment
from app.utils.time import utc_now_iso

logger = logging.getLogger(__name__)


class ClaimRule:
    """Names of the rules a claim can violate (ConflictError.rule)."""
    NO_POSITION = "no_position"
    ALREADY_ASSIGNED = "already_assigned"
    NOT_APPROVED = "not_approved"
    NO_MANPOWER_REQUEST = "no_manpower_request"
    LIMIT_REACHED = "limit_reached"
    ASSIGNMENT_NOT_ACTIVE = "assignment_not_active"


# Roles allowed to claim an applicant
CLAIM_ROLES = [Roles.ADMIN, Roles.HR, Roles.TEAM_LEAD]

# Applicant fields copied onto the assignment at claim time
SNAPSHOT_FIELDS = (
    "age",
    "education",
    "course",
    "collectionExperience",
    "referral",
    "pictureData",
    "resumeData",
)


def _has_active_assignment(assignments: List[Record], applicant_id: int) -> bool:
    return any(
        coerce_int(a.get("applicantId")) == applicant_id and is_active_assignment(a)
        for a in assignments
    )


def _is_taken(applicant: Record, assignments: List[Record], applicant_id: int) -> bool:
    return (
        _has_active_assignment(assignments, applicant_id)
        or applicant.get("status") == ApplicantStatus.ASSIGNED
        or bool(applicant.get("assignedUserId"))
    )


def _matching_requests(requests: List[Record], tl_email: str, position: str) -> List[Record]:
    """Approved requests with a decided limit, newest (highest id) first."""
    matching = [
        r for r in requests
        if normalize_email(r.get("teamLeadEmail")) == tl_email
        and r.get("position") == position
        and r.get("status") == ManpowerRequestStatus.APPROVED
        and r.get("limit") is not None
    ]
    return sorted(matching, key=lambda r: coerce_int(r.get("id")) or 0, reverse=True)


def _limit_value(request: Record) -> int:
    return coerce_int(request.get("limit")) or 0


class ClaimService:
    """The only code path that creates assignments from approved applicants."""

    def __init__(self, store: EntityStore, audit: Optional[AuditRecorder] = None):
        self.store = store
        self.audit = audit

    async def claim(
        self,
        applicant_id: Any,
        team_lead_email: str,
        actor_email: str,
        actor: Optional[Any] = None,
    ) -> ClaimResponse:
        """
        Claim ``applicant_id`` for ``team_lead_email``.

        Preconditions are checked in a fixed order and each failure is
        distinct: missing applicant or team lead (NotFoundError), then
        position, already assigned, not approved, no matching request,
        limit reached (ConflictError with the matching ``rule``).

        Args:
            applicant_id: Applicant to claim
            team_lead_email: Team lead receiving the applicant
            actor_email: Recorded as assignedBy
            actor: Session user for the audit trail; without one the
                audit records carry only actor_email

        Returns:
            ClaimResponse with the new assignment and the updated applicant
        """
        applicant_id = parse_record_id(applicant_id, "applicantId")
        tl_email = normalize_email(team_lead_email)
        assigned_by = str(actor_email or "").strip()
        if not tl_email or not assigned_by:
            raise ValidationError("applicantId, tlEmail and assignedBy are required")

        try:
            async with self.store.transaction() as tx:
                result = await self._claim_in_transaction(tx, applicant_id, tl_email, assigned_by, actor)
        except ConflictError as exc:
            if exc.rule == "unique_violation":
                # The active-assignment index caught a concurrent winner at commit
                raise ConflictError(
                    ClaimRule.ALREADY_ASSIGNED,
                    "Applicant is already assigned",
                    {"applicantId": applicant_id},
                ) from exc
            logger.info("Claim of applicant %s by %s rejected: %s", applicant_id, tl_email, exc.message)
            raise

        logger.info(
            "Applicant %s claimed by %s (assignment %s, request %s)",
            applicant_id,
            tl_email,
            result.assignment["id"],
            result.assignment.get("requestId"),
        )
        return result

    async def claim_for_user(self, actor: Any, applicant_id: Any, tl_email: Optional[str] = None) -> ClaimResponse:
        """
        Claim on behalf of a session user.

        Team leads claim for themselves only (``tl_email`` defaults to their
        own address); hr and admin may claim for any team lead; boss may not
        claim at all.
        """
        role = getattr(actor, "role", None)
        actor_email = normalize_email(getattr(actor, "email", ""))
        raise_if_not_roles(role, CLAIM_ROLES, "claim applicants")

        target = normalize_email(tl_email) if tl_email else ""
        if role == Roles.TEAM_LEAD:
            if target and target != actor_email:
                raise ForbiddenError("Team leads can only claim applicants for themselves")
            target = actor_email

        return await self.claim(applicant_id, target, actor_email, actor=actor)

    async def _claim_in_transaction(
        self,
        tx: StoreTransaction,
        applicant_id: int,
        tl_email: str,
        assigned_by: str,
        actor: Optional[Any],
    ) -> ClaimResponse:
        applicant = await tx.lock(APPLICANTS, applicant_id)
        if not applicant:
            raise NotFoundError("Applicant not found", {"applicantId": applicant_id})

        users = await tx.list(USERS)
        tl_user = next(
            (u for u in users if normalize_email(u.get("email")) == tl_email and u.get("role") == Roles.TEAM_LEAD),
            None,
        )
        if not tl_user:
            raise NotFoundError("Team Leader not found", {"tlEmail": tl_email})

        position = str(applicant.get("positionAppliedFor") or "").strip()
        if not position:
            raise ConflictError(ClaimRule.NO_POSITION, "Applicant has no position applied field")

        assignments = await tx.list(ASSIGNMENTS)
        if _is_taken(applicant, assignments, applicant_id):
            raise ConflictError(ClaimRule.ALREADY_ASSIGNED, "Applicant is already assigned")

        if applicant.get("status") != ApplicantStatus.APPROVED:
            raise ConflictError(ClaimRule.NOT_APPROVED, "Only approved applicants can be assigned")

        matching = _matching_requests(await tx.list(MANPOWER_REQUESTS), tl_email, position)
        if not matching:
            raise ConflictError(
                ClaimRule.NO_MANPOWER_REQUEST,
                f"No approved manpower request found for {position}",
                {"position": position},
            )

        # Serialize claims drawing on the same pooled quota
        for request in matching:
            await tx.lock(MANPOWER_REQUESTS, request["id"])

        # Anything read before the locks may be stale: re-read applicant and assignments
        assignments = await tx.list(ASSIGNMENTS)
        applicant = await tx.lock(APPLICANTS, applicant_id)
        if not applicant or _is_taken(applicant, assignments, applicant_id):
            raise ConflictError(ClaimRule.ALREADY_ASSIGNED, "Applicant is already assigned")

        # The pooled cap spans every matching request; the newest one gets the credit
        total_limit = sum(_limit_value(r) for r in matching)
        current_assigned = count_active_assignments(assignments, tl_email, position)
        if current_assigned >= total_limit:
            raise ConflictError(
                ClaimRule.LIMIT_REACHED,
                f"Manpower limit reached for {position}",
                {"position": position, "limit": total_limit, "assigned": current_assigned},
            )
        credited_request = matching[0]

        now = utc_now_iso()
        tl_name = email_local_part(tl_email)
        updated_applicant = await tx.update(
            APPLICANTS,
            applicant_id,
            {
                "status": ApplicantStatus.ASSIGNED,
                "assignedUserId": tl_user["id"],
                "assignedTL": tl_email,
                "assignedTLName": tl_name,
                "assignedDate": now,
            },
        )

        assignment_payload: Record = {
            "applicantId": applicant["id"],
            "applicantName": applicant.get("name"),
            "positionAppliedFor": position,
        }
        for field in SNAPSHOT_FIELDS:
            assignment_payload[field] = applicant.get(field)
        assignment_payload.update({
            "tlEmail": tl_email,
            "tlName": tl_name,
            "requestId": credited_request["id"],
            "assignedBy": assigned_by,
            "assignedDate": now,
            "status": AssignmentStatus.ACTIVE,
        })
        assignment = await tx.create(ASSIGNMENTS, assignment_payload)

        if self.audit:
            if actor is None:
                actor = SessionUser(email=assigned_by, role="")
            await self.audit.record(actor, "update", APPLICANTS, applicant_id, applicant, updated_applicant, tx=tx)
            await self.audit.record(actor, "create", ASSIGNMENTS, assignment["id"], None, assignment, tx=tx)

        return ClaimResponse(assignment=assignment, applicant=updated_applicant)

    async def cancel(self, assignment_id: Any, actor: Any) -> AssignmentStatusResponse:
        """
        Cancel an active assignment and release its applicant.

        The assignment stops counting toward manpower usage immediately. The
        applicant goes back to 'approved' with its back-references cleared,
        so it can be claimed again.
        """
        return await self._close_assignment(assignment_id, AssignmentStatus.CANCELLED, actor)

    async def complete(self, assignment_id: Any, actor: Any) -> AssignmentStatusResponse:
        """Mark an active assignment completed; the applicant stays assigned."""
        return await self._close_assignment(assignment_id, AssignmentStatus.COMPLETED, actor)

    async def _close_assignment(self, assignment_id: Any, new_status: str, actor: Any) -> AssignmentStatusResponse:
        assignment_id = parse_record_id(assignment_id, "assignmentId")
        actor_email = getattr(actor, "email", "")
        now = utc_now_iso()

        async with self.store.transaction() as tx:
            assignment = await tx.lock(ASSIGNMENTS, assignment_id)
            if not assignment:
                raise NotFoundError("Assignment not found", {"assignmentId": assignment_id})
            if not is_active_assignment(assignment):
                raise ConflictError(
                    ClaimRule.ASSIGNMENT_NOT_ACTIVE,
                    f"Assignment is already {assignment.get('status')}",
                )

            if new_status == AssignmentStatus.CANCELLED:
                changes = {"status": new_status, "cancelledBy": actor_email, "cancelledDate": now}
            else:
                changes = {"status": new_status, "completionDate": now}
            updated_assignment = await tx.update(ASSIGNMENTS, assignment_id, changes)
            if self.audit:
                await self.audit.record(actor, "update", ASSIGNMENTS, assignment_id, assignment, updated_assignment, tx=tx)

            applicant_after = None
            applicant_id = coerce_int(assignment.get("applicantId"))
            applicant = await tx.lock(APPLICANTS, applicant_id) if applicant_id is not None else None
            if applicant and new_status == AssignmentStatus.CANCELLED:
                if normalize_email(applicant.get("assignedTL")) == normalize_email(assignment.get("tlEmail")):
                    applicant_after = await tx.update(
                        APPLICANTS,
                        applicant_id,
                        {
                            "status": ApplicantStatus.APPROVED,
                            "assignedUserId": None,
                            "assignedTL": None,
                            "assignedTLName": None,
                            "assignedDate": None,
                        },
                    )
                    if self.audit:
                        await self.audit.record(actor, "update", APPLICANTS, applicant_id, applicant, applicant_after, tx=tx)
            elif applicant:
                applicant_after = applicant

        logger.info("Assignment %s %s by %s", assignment_id, new_status, actor_email)
        return AssignmentStatusResponse(assignment=updated_assignment, applicant=applicant_after)
