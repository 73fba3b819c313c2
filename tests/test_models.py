"""Mapping checks for the voting tables.

The ballot and ledger tables are deliberately disjoint: nothing stored with a
ballot can be joined back to a voter, a mobile or a session token.
"""

from datetime import UTC, datetime

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.schema import CreateTable

from campus_vote.models import Ballot, OtpRecord, VoterLedgerEntry, VotingSession
from campus_vote.models.otp import OTP_STATUS_USED


def test_table_names() -> None:
    assert Ballot.__tablename__ == "ballots"
    assert VoterLedgerEntry.__tablename__ == "voter_ledger"
    assert OtpRecord.__tablename__ == "otps"
    assert VotingSession.__tablename__ == "voting_sessions"


def test_ballot_has_no_voter_linking_columns() -> None:
    columns = set(Ballot.__table__.c.keys())

    assert columns == {"id", "election_id", "choice", "cast_at", "nonce", "receipt"}
    foreign_tables = {fk.column.table.name for fk in Ballot.__table__.foreign_keys}
    assert foreign_tables == {"elections"}


def test_ledger_records_participation_only() -> None:
    table = VoterLedgerEntry.__table__

    assert {c.name for c in table.primary_key} == {"election_id", "voter_id"}
    assert "choice" not in table.c
    assert "token" not in table.c


def test_otp_code_column_name() -> None:
    assert "otp" in OtpRecord.__table__.c
    assert OtpRecord.__table__.c.status.nullable is False


def test_ballot_and_ledger_tables_have_no_insertion_rowid() -> None:
    for model in (Ballot, VoterLedgerEntry):
        ddl = str(CreateTable(model.__table__).compile(dialect=sqlite.dialect()))
        assert "WITHOUT ROWID" in ddl


def test_only_one_unused_code_per_mobile(db_session, election) -> None:
    expiry = datetime(2026, 3, 1, 9, 5, tzinfo=UTC)
    db_session.add_all(
        [
            OtpRecord(
                mobile="+919876543210", election_id=election.id, code="111111", expiry=expiry
            ),
            OtpRecord(
                mobile="+919876543210", election_id=election.id, code="222222", expiry=expiry
            ),
        ]
    )

    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()


def test_used_codes_do_not_count_towards_the_unused_limit(db_session, election) -> None:
    expiry = datetime(2026, 3, 1, 9, 5, tzinfo=UTC)
    db_session.add_all(
        [
            OtpRecord(mobile="+919876543210", election_id=election.id, code="111111",
                      expiry=expiry, status=OTP_STATUS_USED),
            OtpRecord(
                mobile="+919876543210", election_id=election.id, code="222222", expiry=expiry
            ),
        ]
    )
    db_session.flush()

    record = db_session.execute(
        select(OtpRecord).where(OtpRecord.code == "222222")
    ).scalars().one()
    assert record.failed_attempts == 0
