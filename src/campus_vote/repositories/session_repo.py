"""Data access helpers for voting sessions."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from campus_vote.models.voting_session import VotingSession

__all__ = ["SessionRepository"]


class SessionRepository:
    """Inserts, lookups and the guarded redemption flag for ``voting_sessions``."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        *,
        token: str,
        election_id: str,
        voter_id: str,
        issued_at: datetime,
        expiry: datetime,
    ) -> VotingSession:
        voting_session = VotingSession(
            token=token,
            election_id=election_id,
            voter_id=voter_id,
            issued_at=issued_at,
            expiry=expiry,
            redeemed=False,
        )
        self.session.add(voting_session)
        self.session.flush()
        return voting_session

    def get(self, token: str) -> VotingSession | None:
        result = self.session.execute(
            select(VotingSession)
            .where(VotingSession.token == token)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    def mark_redeemed(self, token: str) -> bool:
        """Set ``redeemed`` only if it is still false; return whether this call won."""
        result = self.session.execute(
            update(VotingSession)
            .where(VotingSession.token == token, VotingSession.redeemed.is_(False))
            .values(redeemed=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def purge_expired(self, before: datetime) -> int:
        """Delete sessions, redeemed or not, whose expiry is older than ``before``."""
        result = self.session.execute(
            delete(VotingSession)
            .where(VotingSession.expiry < before)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
