"""Data access helpers for the voter ledger."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from campus_vote.models.ledger import VoterLedgerEntry

__all__ = ["LedgerRepository"]


class LedgerRepository:
    """Append-only access to ``voter_ledger``."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def has_voted(self, election_id: str, voter_id: str) -> bool:
        result = self.session.execute(
            select(VoterLedgerEntry.voter_id).where(
                VoterLedgerEntry.election_id == election_id,
                VoterLedgerEntry.voter_id == voter_id,
            )
        )
        return result.first() is not None

    def insert(self, *, election_id: str, voter_id: str, voted_at: datetime) -> None:
        """Insert an entry; a duplicate raises IntegrityError from the primary key.

        Issued as a plain INSERT so the database, not the identity map, decides
        whether the voter already voted.
        """
        self.session.execute(
            insert(VoterLedgerEntry).values(
                election_id=election_id, voter_id=voter_id, voted_at=voted_at
            )
        )
