"""Statement-level checks for repository queries that rely on locking."""

from __future__ import annotations

from sqlalchemy.dialects import postgresql

from campus_vote.repositories import RegistryRepository
from campus_vote.services.otp import OtpIssuer


def _compiled(session) -> str:
    stmt = session.execute.call_args.args[0]
    return str(stmt.compile(dialect=postgresql.dialect()))


def test_get_voter_locks_row_when_asked(mocker) -> None:
    session = mocker.MagicMock()

    RegistryRepository(session).get_voter("+919876543210", "e1", for_update=True)

    assert "FOR UPDATE" in _compiled(session)


def test_get_voter_plain_read_by_default(mocker) -> None:
    session = mocker.MagicMock()

    RegistryRepository(session).get_voter("+919876543210", "e1")

    assert "FOR UPDATE" not in _compiled(session)


def test_request_otp_locks_voter_before_superseding(
    db_session, election, voter, throttle_store, sms_gateway, test_settings, clock, mocker
) -> None:
    spy = mocker.spy(RegistryRepository, "get_voter")

    OtpIssuer(
        db_session,
        throttle=throttle_store,
        sms=sms_gateway,
        config=test_settings,
        clock=clock,
    ).request_otp(voter.mobile, election.id)

    assert spy.call_args.kwargs == {"for_update": True}
