# src/campus_vote/models/ledger.py
"""Voter ledger recording that a voter voted, never what they chose."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from campus_vote.db.session import Base


class VoterLedgerEntry(Base):
    """Existence of a row is the sole record that a voter has voted."""

    __tablename__ = "voter_ledger"
    __table_args__ = {"sqlite_with_rowid": False}

    # Composite primary key enforces one entry per (election, voter).
    election_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("elections.id", ondelete="CASCADE"),
        primary_key=True,
    )
    voter_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("voters.id", ondelete="CASCADE"),
        primary_key=True,
    )
    voted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
