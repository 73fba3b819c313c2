"""Voting session issuance, validation and redemption."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from campus_vote.core.errors import (
    SessionAlreadyRedeemedError,
    SessionExpiredError,
    SessionNotFoundError,
)
from campus_vote.core.security import generate_session_token
from campus_vote.db.time import ensure_utc, utcnow
from campus_vote.models.voting_session import VotingSession
from campus_vote.repositories import SessionRepository


@dataclass(frozen=True)
class SessionClaims:
    """What a valid session token grants: one ballot in one election."""

    election_id: str
    voter_id: str


class VotingSessionManager:
    """Service managing single-redemption voting sessions.

    A session moves ISSUED -> REDEEMED exactly once. Expiry is checked when the
    token is presented and is never written back as a state.
    """

    def __init__(
        self,
        db: Session,
        *,
        ttl_seconds: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repo = SessionRepository(db)
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def issue(self, *, election_id: str, voter_id: str) -> VotingSession:
        """Persist a fresh session; the caller commits it with its own transition."""
        issued_at = self._clock()
        return self._repo.create(
            token=generate_session_token(),
            election_id=election_id,
            voter_id=voter_id,
            issued_at=issued_at,
            expiry=issued_at + self._ttl,
        )

    def validate(self, token: str) -> SessionClaims:
        """Return the claims behind ``token`` without changing anything."""
        if not token:
            raise SessionNotFoundError()
        record = self._repo.get(token)
        if record is None:
            raise SessionNotFoundError()
        if record.redeemed:
            raise SessionAlreadyRedeemedError()
        if self._clock() > ensure_utc(record.expiry):
            raise SessionExpiredError()
        return SessionClaims(election_id=record.election_id, voter_id=record.voter_id)

    def redeem(self, token: str) -> None:
        """Flip ``redeemed`` inside the caller's transaction.

        Raises SessionAlreadyRedeemedError when a concurrent caller won the flip.
        """
        if not self._repo.mark_redeemed(token):
            raise SessionAlreadyRedeemedError()
