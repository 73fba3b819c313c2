# src/campus_vote/models/ballot.py
"""Anonymous ballots."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from campus_vote.db.session import Base


class Ballot(Base):
    """A cast ballot.

    Holds no voter, session or mobile column; only election, choice, a
    coarsened timestamp, a random nonce and the receipt derived from them.
    """

    __tablename__ = "ballots"
    # No implicit rowid: insertion order must not survive in storage.
    __table_args__ = (
        Index("ix_ballots_election_id", "election_id"),
        {"sqlite_with_rowid": False},
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    election_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("elections.id", ondelete="CASCADE"), nullable=False
    )
    choice: Mapped[str] = mapped_column(String(64), nullable=False)
    cast_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    nonce: Mapped[str] = mapped_column(String(64), nullable=False)
    receipt: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
