# src/campus_vote/models/voting_session.py
"""Short-lived voting sessions produced by OTP verification."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from campus_vote.db.session import Base


class VotingSession(Base):
    """Single-redemption token binding a voter to one election.

    Never joined to ballots: the recorder reads it, then flips ``redeemed``.
    """

    __tablename__ = "voting_sessions"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    election_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("elections.id", ondelete="CASCADE"), nullable=False
    )
    voter_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("voters.id", ondelete="CASCADE"), nullable=False
    )
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expiry: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    redeemed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
