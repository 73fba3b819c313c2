# src/campus_vote/api/v1/dependencies.py
"""Shared API dependencies for services and request guards."""

import hmac
from collections.abc import Callable
from datetime import datetime
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from campus_vote.core.errors import ForbiddenError
from campus_vote.core.settings import Settings, settings
from campus_vote.db.session import get_db
from campus_vote.db.time import utcnow
from campus_vote.services.ballot import BallotRecorder
from campus_vote.services.otp import OtpIssuer, OtpVerifier
from campus_vote.services.sms import SmsGateway
from campus_vote.services.throttle import ThrottleStore
from campus_vote.services.voting_session import VotingSessionManager

Clock = Callable[[], datetime]


def get_settings() -> Settings:
    """Return the active application settings."""
    return settings


def get_clock() -> Clock:
    """Return the wall clock used for expiry decisions."""
    return utcnow


def get_throttle_store(request: Request) -> ThrottleStore:
    """Return the process-wide throttle store created at startup."""
    return request.app.state.throttle_store


def get_sms_gateway(request: Request) -> SmsGateway:
    """Return the SMS gateway created at startup."""
    return request.app.state.sms_gateway


# Type aliases for dependency injection
SessionDep = Annotated[Session, Depends(get_db)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
ClockDep = Annotated[Clock, Depends(get_clock)]
ThrottleDep = Annotated[ThrottleStore, Depends(get_throttle_store)]
SmsDep = Annotated[SmsGateway, Depends(get_sms_gateway)]


def get_session_manager(
    db: SessionDep, config: SettingsDep, clock: ClockDep
) -> VotingSessionManager:
    return VotingSessionManager(db, ttl_seconds=config.session_ttl_seconds, clock=clock)


SessionManagerDep = Annotated[VotingSessionManager, Depends(get_session_manager)]


def get_otp_issuer(
    db: SessionDep,
    config: SettingsDep,
    clock: ClockDep,
    throttle: ThrottleDep,
    sms: SmsDep,
) -> OtpIssuer:
    return OtpIssuer(db, throttle=throttle, sms=sms, config=config, clock=clock)


def get_otp_verifier(
    db: SessionDep,
    config: SettingsDep,
    clock: ClockDep,
    throttle: ThrottleDep,
    sessions: SessionManagerDep,
) -> OtpVerifier:
    return OtpVerifier(db, throttle=throttle, sessions=sessions, config=config, clock=clock)


def get_ballot_recorder(
    db: SessionDep,
    config: SettingsDep,
    clock: ClockDep,
    sessions: SessionManagerDep,
) -> BallotRecorder:
    return BallotRecorder(db, sessions=sessions, config=config, clock=clock)


OtpIssuerDep = Annotated[OtpIssuer, Depends(get_otp_issuer)]
OtpVerifierDep = Annotated[OtpVerifier, Depends(get_otp_verifier)]
BallotRecorderDep = Annotated[BallotRecorder, Depends(get_ballot_recorder)]


def require_api_key(
    config: SettingsDep,
    x_api_key: Annotated[str | None, Header()] = None,
) -> None:
    """Reject OTP calls without the configured ``X-API-Key``.

    A no-op when ``OTP_API_KEY`` is unset.
    """
    expected = config.otp_api_key
    if not expected:
        return
    if x_api_key is None or not hmac.compare_digest(x_api_key.encode(), expected.encode()):
        raise ForbiddenError()
