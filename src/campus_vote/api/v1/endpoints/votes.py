# src/campus_vote/api/v1/endpoints/votes.py
"""Vote endpoints for the Campus Vote API."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from campus_vote.api.v1.dependencies import BallotRecorderDep
from campus_vote.schemas.common import ErrorResponse
from campus_vote.schemas.vote import (
    BallotResponse,
    CandidateResponse,
    ReceiptResponse,
    VoteCastRequest,
    VoteCastResponse,
)

router = APIRouter(prefix="/vote", tags=["votes"])
bearer_scheme = HTTPBearer()

BearerDep = Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)]


@router.post(
    "/cast",
    response_model=VoteCastResponse,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
        status.HTTP_410_GONE: {"model": ErrorResponse},
    },
)
def cast_vote(payload: VoteCastRequest, recorder: BallotRecorderDep) -> VoteCastResponse:
    """Cast an anonymous ballot using a voting session token."""
    receipt = recorder.cast_vote(payload.session_token, payload.choice)
    return VoteCastResponse(receipt=receipt)


@router.get("/ballot", response_model=BallotResponse)
def get_ballot(credentials: BearerDep, recorder: BallotRecorderDep) -> BallotResponse:
    """Return the election and candidates for the session in the bearer token."""
    view = recorder.ballot_for(credentials.credentials)
    return BallotResponse(
        election_id=view.election.id,
        election_name=view.election.name,
        candidates=[
            CandidateResponse(
                id=candidate.id,
                name=candidate.name,
                party=candidate.party,
                constituency=candidate.constituency,
            )
            for candidate in view.candidates
        ],
    )


@router.get(
    "/receipt/{receipt}",
    response_model=ReceiptResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
def verify_receipt(receipt: str, recorder: BallotRecorderDep) -> ReceiptResponse:
    """Confirm a receipt was recorded, without revealing the choice."""
    election_id, cast_at = recorder.verify_receipt(receipt)
    return ReceiptResponse(verified=True, election_id=election_id, cast_at=cast_at)
