# tests/conftest.py
from __future__ import annotations

import os
import re
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["THROTTLE_BACKEND"] = "memory"
os.environ["SMS_PROVIDER"] = "console"
os.environ["REAPER_ENABLED"] = "false"

from campus_vote.api.v1.dependencies import (
    get_clock,
    get_settings,
    get_sms_gateway,
    get_throttle_store,
)
from campus_vote.core.settings import Settings
from campus_vote.db.session import Base, build_engine
from campus_vote.db.session import get_db as app_get_session
from campus_vote.main import app as fastapi_app
from campus_vote.models import Candidate, Election, Voter
from campus_vote.models.registry import ELECTION_STATUS_ACTIVE
from campus_vote.services.sms import SmsGateway, SmsGatewayError
from campus_vote.services.throttle import MemoryThrottleStore

TEST_DB_URL = "sqlite://"
START_TIME = datetime(2026, 3, 1, 9, 0, 0, tzinfo=UTC)
VOTER_MOBILE = "+919876543210"

_OTP_PATTERN = re.compile(r"OTP is (\d+)")


class FakeClock:
    """Manually advanced UTC clock shared by services and the throttle store."""

    def __init__(self, start: datetime = START_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now

    def timestamp(self) -> float:
        return self.now.timestamp()


class RecordingSmsGateway(SmsGateway):
    """Gateway that keeps messages in memory and can be told to fail."""

    provider = "recording"

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []
        self.fail = False

    def _deliver(self, mobile: str, message: str) -> None:
        if self.fail:
            raise SmsGatewayError("provider unavailable")
        self.messages.append((mobile, message))

    def last_code(self, mobile: str = VOTER_MOBILE) -> str:
        for to, message in reversed(self.messages):
            if to == mobile:
                match = _OTP_PATTERN.search(message)
                assert match is not None
                return match.group(1)
        raise AssertionError(f"No OTP sent to {mobile}")


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = build_engine(TEST_DB_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def throttle_store(clock: FakeClock) -> MemoryThrottleStore:
    return MemoryThrottleStore(clock=clock.timestamp)


@pytest.fixture()
def sms_gateway() -> RecordingSmsGateway:
    return RecordingSmsGateway()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return Settings()  # type: ignore[call-arg]


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    clock: FakeClock,
    throttle_store: MemoryThrottleStore,
    sms_gateway: RecordingSmsGateway,
    test_settings: Settings,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    overrides: dict[Callable[..., Any], Callable[..., Any]] = {
        app_get_session: _get_session_override,
        get_clock: lambda: clock,
        get_throttle_store: lambda: throttle_store,
        get_sms_gateway: lambda: sms_gateway,
        get_settings: lambda: test_settings,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def election(db_session: Session) -> Iterator[Election]:
    """Create an election that is open for the whole test day."""
    election = Election(
        name="Student Council 2026",
        status=ELECTION_STATUS_ACTIVE,
        starts_at=START_TIME - timedelta(hours=1),
        ends_at=START_TIME + timedelta(days=1),
    )
    db_session.add(election)
    db_session.flush()
    db_session.refresh(election)
    yield election


@pytest.fixture()
def voter(db_session: Session, election: Election) -> Iterator[Voter]:
    """Create an eligible voter registered in the North constituency."""
    voter = Voter(
        mobile=VOTER_MOBILE,
        display_name="Asha Rao",
        election_id=election.id,
        eligible=True,
        constituency="North",
    )
    db_session.add(voter)
    db_session.flush()
    db_session.refresh(voter)
    yield voter


@pytest.fixture()
def candidates(db_session: Session, election: Election) -> Iterator[list[Candidate]]:
    """Two North candidates followed by one South candidate."""
    rows = [
        Candidate(election_id=election.id, name="Meera Iyer", party="Unity", constituency="North"),
        Candidate(election_id=election.id, name="Kabir Shah", party="Forward", constituency="North"),
        Candidate(election_id=election.id, name="Ravi Menon", party="Unity", constituency="South"),
    ]
    db_session.add_all(rows)
    db_session.flush()
    yield rows


@pytest.fixture()
def issue_token(
    client: TestClient,
    sms_gateway: RecordingSmsGateway,
) -> Callable[..., str]:
    """Return a helper that walks the OTP flow and yields a session token."""

    def _issue(election: Election, mobile: str = VOTER_MOBILE) -> str:
        sent = client.post(
            "/api/v1/otp/send", json={"mobile": mobile, "election_id": election.id}
        )
        assert sent.status_code == 200, sent.json()
        verified = client.post(
            "/api/v1/otp/verify",
            json={"mobile": mobile, "code": sms_gateway.last_code(mobile)},
        )
        assert verified.status_code == 200, verified.json()
        return verified.json()["session_token"]

    return _issue


@pytest.fixture()
def session_token(
    issue_token: Callable[..., str],
    election: Election,
    voter: Voter,
) -> str:
    """A fresh voting session token for the default voter."""
    return issue_token(election)
