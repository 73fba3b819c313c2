"""Data access helpers for one-time code records."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from campus_vote.models.otp import OTP_STATUS_UNUSED, OTP_STATUS_USED, OtpRecord

__all__ = ["OtpRepository"]


class OtpRepository:
    """Lookups, inserts and guarded status transitions for ``otps``."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def latest_for_mobile(self, mobile: str) -> OtpRecord | None:
        """Return the most recently issued record for a mobile, whatever its status."""
        result = self.session.execute(
            select(OtpRecord)
            .where(OtpRecord.mobile == mobile)
            .order_by(OtpRecord.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    def supersede_unused(self, mobile: str) -> int:
        """Mark every outstanding record for ``mobile`` as used; return how many."""
        result = self.session.execute(
            update(OtpRecord)
            .where(OtpRecord.mobile == mobile, OtpRecord.status == OTP_STATUS_UNUSED)
            .values(status=OTP_STATUS_USED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def create(
        self,
        *,
        mobile: str,
        election_id: str,
        code: str,
        expiry: datetime,
        created_at: datetime,
    ) -> OtpRecord:
        """Insert a new UNUSED record and return it."""
        record = OtpRecord(
            mobile=mobile,
            election_id=election_id,
            code=code,
            expiry=expiry,
            status=OTP_STATUS_UNUSED,
            created_at=created_at,
        )
        self.session.add(record)
        self.session.flush()
        return record

    def get(self, otp_id: str) -> OtpRecord | None:
        result = self.session.execute(
            select(OtpRecord)
            .where(OtpRecord.id == otp_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    def record_failure(self, otp_id: str, max_failures: int) -> int | None:
        """Count a wrong guess against the record while it is under ``max_failures``.

        Returns the new count, or None when the record had already reached the
        limit and the guess must not be answered.
        """
        result = self.session.execute(
            update(OtpRecord)
            .where(OtpRecord.id == otp_id, OtpRecord.failed_attempts < max_failures)
            .values(failed_attempts=OtpRecord.failed_attempts + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return self.session.execute(
            select(OtpRecord.failed_attempts).where(OtpRecord.id == otp_id)
        ).scalar_one()

    def mark_used(self, otp_id: str, max_failures: int) -> bool:
        """Flip UNUSED -> USED only if the row is still UNUSED and not locked out.

        Returns False when another writer already consumed the record or the
        failure limit was reached first.
        """
        result = self.session.execute(
            update(OtpRecord)
            .where(
                OtpRecord.id == otp_id,
                OtpRecord.status == OTP_STATUS_UNUSED,
                OtpRecord.failed_attempts < max_failures,
            )
            .values(status=OTP_STATUS_USED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def purge_expired(self, before: datetime) -> int:
        """Delete records whose expiry is older than ``before``."""
        result = self.session.execute(
            delete(OtpRecord)
            .where(OtpRecord.expiry < before)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
