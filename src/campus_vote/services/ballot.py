"""Ballot anonymization and recording.

This is the unlinkability boundary. Casting a vote writes two disjoint rows in
one transaction: a voter ledger entry (who voted, never what) and a ballot
(what was chosen, never who). The session that connected the two is redeemed
in the same transaction, so no partial state is ever committed.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from campus_vote.core.errors import (
    AlreadyVotedError,
    ElectionClosedError,
    InvalidChoiceError,
    ReceiptNotFoundError,
    ServiceUnavailableError,
    VotingError,
)
from campus_vote.core.security import generate_nonce, receipt_digest
from campus_vote.core.settings import Settings, settings
from campus_vote.db.time import ensure_utc, floor_to_granularity, utcnow
from campus_vote.models import Ballot, Candidate, Election
from campus_vote.repositories import BallotRepository, LedgerRepository, RegistryRepository
from campus_vote.services.voting_session import VotingSessionManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BallotView:
    """The election and the candidates a session holder may choose from."""

    election: Election
    candidates: list[Candidate]


class BallotRecorder:
    """Service casting anonymous ballots against a voting session."""

    def __init__(
        self,
        db: Session,
        *,
        sessions: VotingSessionManager,
        config: Settings = settings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._db = db
        self._sessions = sessions
        self._registry = RegistryRepository(db)
        self._ledger = LedgerRepository(db)
        self._ballots = BallotRepository(db)
        self._config = config
        self._clock = clock

    def cast_vote(self, token: str, choice: str) -> str:
        """Record ``choice`` for the session holder and return an opaque receipt.

        Never retried internally: a failed cast requires a fresh session.
        """
        claims = self._sessions.validate(token)
        now = self._clock()

        election = self._registry.get_election(claims.election_id)
        if election is None or not election.accepts_votes(now):
            raise ElectionClosedError()
        election_id = election.id
        self._check_choice(election_id, claims.voter_id, choice)

        # Ledger and ballot share one coarse timestamp so neither orders the other.
        recorded_at = floor_to_granularity(now, self._config.ballot_time_granularity_seconds)
        ballot_id = str(uuid.uuid4())
        nonce = generate_nonce()
        receipt = receipt_digest(
            self._config.secret_key,
            ballot_id=ballot_id,
            election_id=election_id,
            choice=choice,
            cast_at=recorded_at,
            nonce=nonce,
        )

        try:
            self._ledger.insert(
                election_id=claims.election_id,
                voter_id=claims.voter_id,
                voted_at=recorded_at,
            )
            self._ballots.insert(
                Ballot(
                    id=ballot_id,
                    election_id=election_id,
                    choice=choice,
                    cast_at=recorded_at,
                    nonce=nonce,
                    receipt=receipt,
                )
            )
            self._sessions.redeem(token)
            self._db.commit()
        except IntegrityError as err:
            self._db.rollback()
            logger.info("Duplicate ballot rejected for election %s", election_id)
            raise AlreadyVotedError() from err
        except VotingError:
            self._db.rollback()
            raise
        except SQLAlchemyError as err:
            self._db.rollback()
            logger.exception("Ballot transaction failed for election %s", election_id)
            raise ServiceUnavailableError() from err

        logger.info("Ballot recorded for election %s", election_id)
        return receipt

    def ballot_for(self, token: str) -> BallotView:
        """Return the ballot a session holder may fill in."""
        claims = self._sessions.validate(token)
        election = self._registry.get_election(claims.election_id)
        if election is None or not election.accepts_votes(self._clock()):
            raise ElectionClosedError()
        voter = self._registry.get_voter_by_id(claims.voter_id)
        constituency = voter.constituency if voter is not None else None
        candidates = [
            candidate
            for candidate in self._registry.list_candidates(election.id)
            if _same_constituency(candidate.constituency, constituency)
        ]
        return BallotView(election=election, candidates=candidates)

    def verify_receipt(self, receipt: str) -> tuple[str, datetime]:
        """Return ``(election_id, cast_at)`` for a receipt; never the choice."""
        ballot = self._ballots.get_by_receipt(receipt)
        if ballot is None:
            raise ReceiptNotFoundError()
        return ballot.election_id, ensure_utc(ballot.cast_at)

    def _check_choice(self, election_id: str, voter_id: str, choice: str) -> None:
        if not choice or not choice.strip():
            raise InvalidChoiceError()
        candidates = self._registry.list_candidates(election_id)
        if not candidates:
            return
        candidate = next((c for c in candidates if c.id == choice), None)
        if candidate is None:
            raise InvalidChoiceError()
        voter = self._registry.get_voter_by_id(voter_id)
        if voter is not None and not _same_constituency(
            candidate.constituency, voter.constituency
        ):
            raise InvalidChoiceError("Candidate is not from your constituency")


def _same_constituency(candidate_constituency: str | None, voter_constituency: str | None) -> bool:
    if candidate_constituency is None or voter_constituency is None:
        return True
    return candidate_constituency == voter_constituency
