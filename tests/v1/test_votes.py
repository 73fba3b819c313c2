# tests/v1/test_votes.py
"""Tests for casting ballots, listing the ballot and verifying receipts."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from campus_vote.models import Ballot, Voter, VoterLedgerEntry, VotingSession
from campus_vote.models.registry import ELECTION_STATUS_COMPLETED
from campus_vote.repositories.session_repo import SessionRepository

CAST_URL = "/api/v1/vote/cast"


def _cast(client, token: str, choice: str):
    return client.post(CAST_URL, json={"session_token": token, "choice": choice})


def _count(db_session, model) -> int:
    return db_session.execute(select(func.count()).select_from(model)).scalar_one()


def test_cast_vote_records_ballot_and_ledger(
    client, election, voter, candidates, session_token, db_session
) -> None:
    """A cast writes one ledger row and one unlinked ballot, and redeems the session."""
    response = _cast(client, session_token, candidates[0].id)

    assert response.status_code == status.HTTP_200_OK
    receipt = response.json()["receipt"]
    assert len(receipt) == 64

    ledger = db_session.execute(select(VoterLedgerEntry)).scalars().all()
    assert [(row.election_id, row.voter_id) for row in ledger] == [(election.id, voter.id)]

    ballot = db_session.execute(select(Ballot)).scalars().one()
    assert ballot.election_id == election.id
    assert ballot.choice == candidates[0].id
    assert ballot.receipt == receipt
    assert ballot.nonce

    session = db_session.get(VotingSession, session_token)
    assert session is not None and session.redeemed is True


def test_cast_vote_coarsens_timestamps(
    client, election, voter, candidates, session_token, db_session, clock
) -> None:
    clock.advance(47)

    response = _cast(client, session_token, candidates[1].id)

    assert response.status_code == status.HTTP_200_OK
    ballot = db_session.execute(select(Ballot)).scalars().one()
    entry = db_session.execute(select(VoterLedgerEntry)).scalars().one()
    expected = datetime(2026, 3, 1, 9, 0, 0)
    assert ballot.cast_at.replace(tzinfo=None) == expected
    assert entry.voted_at.replace(tzinfo=None) == expected


def test_cast_vote_twice_with_same_session(
    client, election, voter, candidates, session_token, db_session
) -> None:
    first = _cast(client, session_token, candidates[0].id)
    second = _cast(client, session_token, candidates[1].id)

    assert first.status_code == status.HTTP_200_OK
    assert second.status_code == status.HTTP_409_CONFLICT
    assert second.json()["error"] == "SESSION_ALREADY_REDEEMED"
    assert _count(db_session, Ballot) == 1


def test_second_session_cannot_vote_again(
    client, election, voter, candidates, issue_token, clock, db_session
) -> None:
    """Two sessions for one voter still yield a single ballot."""
    first_token = issue_token(election)
    clock.advance(20)
    second_token = issue_token(election)

    assert _cast(client, first_token, candidates[0].id).status_code == status.HTTP_200_OK
    response = _cast(client, second_token, candidates[1].id)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "ALREADY_VOTED"
    assert _count(db_session, Ballot) == 1
    assert _count(db_session, VoterLedgerEntry) == 1


def test_cast_vote_storage_failure_rolls_back_everything(
    client, election, voter, candidates, session_token, db_session, monkeypatch
) -> None:
    """A failure after the ledger and ballot inserts leaves no trace of either."""

    def _fail(self, token: str) -> bool:
        raise OperationalError("UPDATE voting_sessions", {}, Exception("disk I/O error"))

    monkeypatch.setattr(SessionRepository, "mark_redeemed", _fail)

    response = _cast(client, session_token, candidates[0].id)

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["error"] == "SERVICE_UNAVAILABLE"
    assert _count(db_session, VoterLedgerEntry) == 0
    assert _count(db_session, Ballot) == 0
    session = db_session.get(VotingSession, session_token, populate_existing=True)
    assert session is not None and session.redeemed is False


def test_cast_vote_unknown_session(client, election, candidates) -> None:
    response = _cast(client, "not-a-real-token", candidates[0].id)

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "SESSION_NOT_FOUND"


def test_cast_vote_expired_session(
    client, election, voter, candidates, session_token, clock, db_session
) -> None:
    clock.advance(601)

    response = _cast(client, session_token, candidates[0].id)

    assert response.status_code == status.HTTP_410_GONE
    assert response.json()["error"] == "SESSION_EXPIRED"
    assert _count(db_session, VoterLedgerEntry) == 0


def test_cast_vote_election_closed(
    client, election, voter, candidates, session_token, db_session
) -> None:
    election.status = ELECTION_STATUS_COMPLETED
    db_session.commit()

    response = _cast(client, session_token, candidates[0].id)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "ELECTION_CLOSED"
    assert _count(db_session, Ballot) == 0


def test_cast_vote_unknown_choice_leaves_session_usable(
    client, election, voter, candidates, session_token, db_session
) -> None:
    rejected = _cast(client, session_token, "write-in")

    assert rejected.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert rejected.json()["error"] == "INVALID_CHOICE"
    assert _count(db_session, VoterLedgerEntry) == 0

    assert _cast(client, session_token, candidates[0].id).status_code == status.HTTP_200_OK


def test_cast_vote_other_constituency(
    client, election, voter, candidates, session_token
) -> None:
    response = _cast(client, session_token, candidates[2].id)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["error"] == "INVALID_CHOICE"


def test_cast_vote_free_choice_without_candidates(
    client, election, voter, session_token, db_session
) -> None:
    """Elections without a candidate list accept any non-empty choice."""
    response = _cast(client, session_token, "yes")

    assert response.status_code == status.HTTP_200_OK
    assert db_session.execute(select(Ballot.choice)).scalar_one() == "yes"


def test_get_ballot_lists_constituency_candidates(
    client, election, voter, candidates, session_token
) -> None:
    response = client.get(
        "/api/v1/vote/ballot", headers={"Authorization": f"Bearer {session_token}"}
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["election_id"] == election.id
    assert body["election_name"] == "Student Council 2026"
    assert {c["id"] for c in body["candidates"]} == {candidates[0].id, candidates[1].id}


def test_get_ballot_requires_bearer(client, election) -> None:
    response = client.get("/api/v1/vote/ballot")

    assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}


def test_get_ballot_after_voting(client, election, voter, candidates, session_token) -> None:
    _cast(client, session_token, candidates[0].id)

    response = client.get(
        "/api/v1/vote/ballot", headers={"Authorization": f"Bearer {session_token}"}
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "SESSION_ALREADY_REDEEMED"


def test_verify_receipt(client, election, voter, candidates, session_token, clock) -> None:
    clock.advance(75)
    receipt = _cast(client, session_token, candidates[0].id).json()["receipt"]

    response = client.get(f"/api/v1/vote/receipt/{receipt}")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["verified"] is True
    assert body["election_id"] == election.id
    assert datetime.fromisoformat(body["cast_at"]) == datetime(2026, 3, 1, 9, 1, tzinfo=UTC)
    assert "choice" not in body


def test_verify_unknown_receipt(client) -> None:
    response = client.get("/api/v1/vote/receipt/" + "0" * 64)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "RECEIPT_NOT_FOUND"


def test_end_to_end_scenario(client, election, db_session, sms_gateway) -> None:
    """Bare national mobile, free-text choice, then a re-cast with the same token."""
    db_session.add(
        Voter(mobile="+919999999999", display_name="Nikhil", election_id=election.id)
    )
    db_session.flush()

    sent = client.post(
        "/api/v1/otp/send", json={"mobile": "9999999999", "election_id": election.id}
    )
    assert sent.status_code == status.HTTP_200_OK
    verified = client.post(
        "/api/v1/otp/verify",
        json={"mobile": "9999999999", "code": sms_gateway.last_code("+919999999999")},
    )
    assert verified.status_code == status.HTTP_200_OK
    token = verified.json()["session_token"]

    cast = _cast(client, token, "CANDIDATE_A")
    recast = _cast(client, token, "CANDIDATE_A")

    assert cast.status_code == status.HTTP_200_OK
    assert "receipt" in cast.json()
    assert recast.status_code == status.HTTP_409_CONFLICT
    assert recast.json()["error"] == "SESSION_ALREADY_REDEEMED"
