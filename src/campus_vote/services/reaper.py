"""Background cleanup of long-expired one-time codes and voting sessions.

Correctness never depends on this worker: expiry is always checked when a
code or token is presented. The sweep only keeps the tables small. It never
touches the voter ledger or ballots.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from campus_vote.db.time import utcnow
from campus_vote.repositories import OtpRepository, SessionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    otps_deleted: int
    sessions_deleted: int


def purge_expired(db: Session, *, before: datetime) -> SweepResult:
    """Delete codes and sessions whose expiry precedes ``before`` and commit."""
    try:
        otps_deleted = OtpRepository(db).purge_expired(before)
        sessions_deleted = SessionRepository(db).purge_expired(before)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return SweepResult(otps_deleted=otps_deleted, sessions_deleted=sessions_deleted)


class ExpiryReaper:
    """Periodically purges records that expired more than ``grace_seconds`` ago."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        interval_seconds: float,
        grace_seconds: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._interval = max(0.1, float(interval_seconds))
        self._grace = timedelta(seconds=grace_seconds)
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    def sweep_once(self) -> SweepResult:
        """Run a single sweep in the calling thread."""
        cutoff = self._clock() - self._grace
        with self._session_factory() as db:
            result = purge_expired(db, before=cutoff)
        if result.otps_deleted or result.sessions_deleted:
            logger.info(
                "Reaped %d expired OTPs and %d expired sessions",
                result.otps_deleted,
                result.sessions_deleted,
            )
        return result

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.to_thread(self.sweep_once)
            except SQLAlchemyError as e:
                logger.warning("ExpiryReaper sweep failed: %s", e)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval)
            except TimeoutError:
                continue
