"""Data access helpers for anonymous ballots."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from campus_vote.models.ballot import Ballot

__all__ = ["BallotRepository"]


class BallotRepository:
    """Insert-only access to ``ballots`` plus receipt lookup."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def insert(self, ballot: Ballot) -> Ballot:
        self.session.add(ballot)
        self.session.flush()
        return ballot

    def get_by_receipt(self, receipt: str) -> Ballot | None:
        result = self.session.execute(select(Ballot).where(Ballot.receipt == receipt))
        return result.scalars().first()
