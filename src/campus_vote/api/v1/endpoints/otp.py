# src/campus_vote/api/v1/endpoints/otp.py
"""OTP endpoints: request a code and redeem it for a voting session.

These endpoints are open (the voter has not authenticated yet). They are
protected by per-mobile rate limits, failed-attempt lockout and the optional
API key.
"""

from fastapi import APIRouter, Depends, status

from campus_vote.api.v1.dependencies import OtpIssuerDep, OtpVerifierDep, require_api_key
from campus_vote.schemas.common import ErrorResponse
from campus_vote.schemas.otp import (
    OtpSendRequest,
    OtpSendResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
)

router = APIRouter(prefix="/otp", tags=["otp"], dependencies=[Depends(require_api_key)])


@router.post(
    "/send",
    response_model=OtpSendResponse,
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse},
        status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
    },
)
def send_otp(payload: OtpSendRequest, issuer: OtpIssuerDep) -> OtpSendResponse:
    """Issue a one-time code to a registered mobile number."""
    result = issuer.request_otp(payload.mobile, payload.election_id)
    return OtpSendResponse(voter_name=result.voter_name, election_id=result.election_id)


@router.post(
    "/verify",
    response_model=OtpVerifyResponse,
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
        status.HTTP_410_GONE: {"model": ErrorResponse},
        status.HTTP_423_LOCKED: {"model": ErrorResponse},
    },
)
def verify_otp(payload: OtpVerifyRequest, verifier: OtpVerifierDep) -> OtpVerifyResponse:
    """Redeem a one-time code for a voting session token."""
    token = verifier.verify_otp(payload.mobile, payload.code)
    return OtpVerifyResponse(session_token=token)
