"""Read-only access to the election, voter and candidate registry."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from campus_vote.models.registry import Candidate, Election, Voter

__all__ = ["RegistryRepository"]


class RegistryRepository:
    """Thin wrapper around registry lookups used by the voting pipeline."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_election(self, election_id: str) -> Election | None:
        return self.session.get(Election, election_id)

    def get_voter(
        self, mobile: str, election_id: str, *, for_update: bool = False
    ) -> Voter | None:
        """Return the voter registered with ``mobile`` for ``election_id``.

        ``for_update`` row-locks the voter until the transaction ends, which
        serializes code issuance for that voter on databases that honour it.
        """
        stmt = select(Voter).where(Voter.mobile == mobile, Voter.election_id == election_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalars().first()

    def get_voter_by_id(self, voter_id: str) -> Voter | None:
        return self.session.get(Voter, voter_id)

    def list_candidates(self, election_id: str) -> list[Candidate]:
        result = self.session.execute(
            select(Candidate)
            .where(Candidate.election_id == election_id)
            .order_by(Candidate.name)
        )
        return list(result.scalars())
