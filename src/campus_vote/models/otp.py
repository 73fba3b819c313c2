# src/campus_vote/models/otp.py
"""One-time code records."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from campus_vote.db.session import Base
from campus_vote.db.time import utcnow

OTP_STATUS_UNUSED = "UNUSED"
OTP_STATUS_USED = "USED"


class OtpRecord(Base):
    """An issued code for a mobile number.

    Status only ever moves UNUSED -> USED. Expiry is evaluated when the code is
    presented, never stored as a status.
    """

    __tablename__ = "otps"
    __table_args__ = (
        Index("ix_otps_mobile_created_at", "mobile", "created_at"),
        # At most one outstanding code per mobile.
        Index(
            "ux_otps_mobile_unused",
            "mobile",
            unique=True,
            postgresql_where=text("status = 'UNUSED'"),
            sqlite_where=text("status = 'UNUSED'"),
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    mobile: Mapped[str] = mapped_column(String(16), nullable=False)
    election_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("elections.id", ondelete="CASCADE"), nullable=False
    )
    code: Mapped[str] = mapped_column("otp", String(12), nullable=False)
    expiry: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(8), nullable=False, default=OTP_STATUS_UNUSED)
    failed_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
