"""
Assignments router: claim an applicant and close assignments.
"""

from fastapi import APIRouter, Depends, status

from app.core.dependencies import get_claim_service, get_current_user, require_role
from app.core.permissions import Roles
from app.schemas.claim import AssignmentStatusResponse, ClaimRequest, ClaimResponse
from app.schemas.user import SessionUser
from app.services.claim_service import ClaimService

router = APIRouter(prefix="/api/assignments", tags=["Assignments"])


@router.post("/claim", response_model=ClaimResponse, status_code=status.HTTP_201_CREATED)
async def claim_applicant(
    request: ClaimRequest,
    user: SessionUser = Depends(get_current_user),
    service: ClaimService = Depends(get_claim_service),
):
    """
    Claim an approved applicant for a team lead.

    Team leads may omit ``tlEmail``; the claim is made for themselves.
    Rule violations come back as 409 with ``error.details.rule`` set.
    """
    return await service.claim_for_user(user, request.applicant_id, request.tl_email)


@router.post("/{assignment_id}/cancel", response_model=AssignmentStatusResponse)
async def cancel_assignment(
    assignment_id: int,
    user: SessionUser = Depends(require_role(Roles.ADMIN)),
    service: ClaimService = Depends(get_claim_service),
):
    return await service.cancel(assignment_id, user)


@router.post("/{assignment_id}/complete", response_model=AssignmentStatusResponse)
async def complete_assignment(
    assignment_id: int,
    user: SessionUser = Depends(require_role(Roles.ADMIN)),
    service: ClaimService = Depends(get_claim_service),
):
    return await service.complete(assignment_id, user)
