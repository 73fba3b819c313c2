# src/campus_vote/models/registry.py
"""Election, voter and candidate registry models.

These tables are owned by the election administration screens; the voting
pipeline only reads them.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from campus_vote.db.session import Base
from campus_vote.db.time import ensure_utc, utcnow

ELECTION_STATUS_INACTIVE = "INACTIVE"
ELECTION_STATUS_ACTIVE = "ACTIVE"
ELECTION_STATUS_COMPLETED = "COMPLETED"


def _uuid() -> str:
    return str(uuid.uuid4())


class Election(Base):
    """An election and the window during which it accepts ballots."""

    __tablename__ = "elections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ELECTION_STATUS_INACTIVE
    )
    starts_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def accepts_votes(self, now: datetime) -> bool:
        """Return True when the election is active and ``now`` is inside its window."""
        if self.status != ELECTION_STATUS_ACTIVE:
            return False
        if self.starts_at is not None and now < ensure_utc(self.starts_at):
            return False
        if self.ends_at is not None and now >= ensure_utc(self.ends_at):
            return False
        return True


class Voter(Base):
    """A registered voter for one election, keyed by mobile number."""

    __tablename__ = "voters"
    __table_args__ = (
        UniqueConstraint("mobile", "election_id", name="uq_voters_mobile_election"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    mobile: Mapped[str] = mapped_column(String(16), nullable=False)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    election_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("elections.id", ondelete="CASCADE"), nullable=False
    )
    eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    constituency: Mapped[str | None] = mapped_column(Text, nullable=True)


class Candidate(Base):
    """A ballot option. Ballots record the candidate id as their choice."""

    __tablename__ = "candidates"
    __table_args__ = (Index("ix_candidates_election_id", "election_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    election_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("elections.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    party: Mapped[str | None] = mapped_column(Text, nullable=True)
    constituency: Mapped[str | None] = mapped_column(Text, nullable=True)
