"""One-time code issuance and verification."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from campus_vote.core.errors import (
    AlreadyVotedError,
    DeliveryFailedError,
    ElectionNotActiveError,
    LockedError,
    NotEligibleError,
    OtpAlreadyUsedError,
    OtpExpiredError,
    OtpInvalidError,
    OtpNotFoundError,
    ServiceUnavailableError,
    ThrottledError,
    ValidationError,
    VoterNotFoundError,
)
from campus_vote.core.security import (
    codes_match,
    generate_otp_code,
    mask_mobile,
    normalize_mobile,
)
from campus_vote.core.settings import Settings, settings
from campus_vote.db.time import ensure_utc, utcnow
from campus_vote.models.otp import OTP_STATUS_UNUSED
from campus_vote.repositories import LedgerRepository, OtpRepository, RegistryRepository
from campus_vote.services.sms import SmsGateway
from campus_vote.services.throttle import ThrottleStore
from campus_vote.services.voting_session import VotingSessionManager

logger = logging.getLogger(__name__)

OTP_MESSAGE = (
    "Your campus election OTP is {code}. Valid for {minutes} minutes. "
    "Do not share this code with anyone."
)


def _send_key(mobile: str) -> str:
    return f"otp:send:{mobile}"


def _failure_key(mobile: str) -> str:
    return f"otp:fail:{mobile}"


def _lock_key(mobile: str) -> str:
    return f"otp:lock:{mobile}"


@dataclass(frozen=True)
class OtpIssueResult:
    """What the caller learns from a successful request: never the code."""

    voter_name: str
    election_id: str


class OtpIssuer:
    """Creates and delivers one-time codes for registered voters."""

    def __init__(
        self,
        db: Session,
        *,
        throttle: ThrottleStore,
        sms: SmsGateway,
        config: Settings = settings,
        clock: Callable[[], datetime] = utcnow,
        code_factory: Callable[[int], str] = generate_otp_code,
    ) -> None:
        self._db = db
        self._otps = OtpRepository(db)
        self._registry = RegistryRepository(db)
        self._ledger = LedgerRepository(db)
        self._throttle = throttle
        self._sms = sms
        self._config = config
        self._clock = clock
        self._code_factory = code_factory

    def request_otp(self, mobile: str, election_id: str) -> OtpIssueResult:
        """Issue a code for ``mobile`` in ``election_id`` and hand it to the gateway.

        Any earlier outstanding code for the mobile is consumed first, so only
        the newest code can ever be redeemed. Delivery failure leaves the new
        code stored and raises DeliveryFailedError.
        """
        mobile = normalize_mobile(mobile, self._config.default_country_code)

        hits = self._throttle.record_hit(
            _send_key(mobile), self._config.otp_request_window_seconds
        )
        if hits > self._config.otp_request_limit:
            logger.warning("OTP request throttled for %s", mask_mobile(mobile))
            raise ThrottledError()

        now = self._clock()
        election = self._registry.get_election(election_id)
        if election is None or not election.accepts_votes(now):
            raise ElectionNotActiveError()

        voter = self._registry.get_voter(mobile, election_id, for_update=True)
        if voter is None:
            logger.warning("OTP request for unregistered mobile %s", mask_mobile(mobile))
            raise VoterNotFoundError()
        if not voter.eligible:
            raise NotEligibleError()
        if self._ledger.has_voted(election_id, voter.id):
            raise AlreadyVotedError()

        code = self._code_factory(self._config.otp_length)
        try:
            superseded = self._otps.supersede_unused(mobile)
            self._otps.create(
                mobile=mobile,
                election_id=election_id,
                code=code,
                expiry=now + timedelta(seconds=self._config.otp_ttl_seconds),
                created_at=now,
            )
            self._db.commit()
        except IntegrityError as err:
            self._db.rollback()
            logger.warning("Concurrent OTP request for %s rejected", mask_mobile(mobile))
            raise ServiceUnavailableError(
                "Another code request is in progress. Please retry"
            ) from err
        except SQLAlchemyError as err:
            self._db.rollback()
            logger.exception("Failed to store OTP for %s", mask_mobile(mobile))
            raise ServiceUnavailableError() from err

        message = OTP_MESSAGE.format(
            code=code, minutes=max(1, self._config.otp_ttl_seconds // 60)
        )
        delivered = self._sms.send(mobile, message)
        logger.info(
            "OTP issued for %s (superseded %d) - delivery: %s",
            mask_mobile(mobile),
            superseded,
            "OK" if delivered else "FAILED",
        )
        if not delivered:
            raise DeliveryFailedError()

        return OtpIssueResult(voter_name=voter.display_name, election_id=election_id)


class OtpVerifier:
    """Redeems a one-time code exactly once and converts it into a voting session."""

    def __init__(
        self,
        db: Session,
        *,
        throttle: ThrottleStore,
        sessions: VotingSessionManager,
        config: Settings = settings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._db = db
        self._otps = OtpRepository(db)
        self._registry = RegistryRepository(db)
        self._throttle = throttle
        self._sessions = sessions
        self._config = config
        self._clock = clock

    def verify_otp(self, mobile: str, code: str) -> str:
        """Return a new session token if ``code`` redeems the outstanding OTP.

        A wrong guess is only answered once it has been counted against the
        record by a conditional update, so parallel guesses cannot exceed the
        failure limit. Only one concurrent caller can flip the record to USED;
        the rest fail with OtpAlreadyUsedError.
        """
        mobile = normalize_mobile(mobile, self._config.default_country_code)
        if not (code.isdigit() and len(code) == self._config.otp_length):
            raise ValidationError(f"OTP must be exactly {self._config.otp_length} digits")

        if self._throttle.is_locked(_lock_key(mobile)):
            raise LockedError()

        record = self._otps.latest_for_mobile(mobile)
        if record is None:
            raise OtpNotFoundError()

        max_failures = self._config.otp_max_failed_attempts
        if record.failed_attempts >= max_failures:
            raise LockedError()

        if not codes_match(code, record.code):
            self._record_failure(mobile, record.id)
            raise OtpInvalidError()

        if self._clock() > ensure_utc(record.expiry):
            raise OtpExpiredError()
        if record.status != OTP_STATUS_UNUSED:
            raise OtpAlreadyUsedError()

        try:
            if not self._otps.mark_used(record.id, max_failures):
                self._db.rollback()
                current = self._otps.get(record.id)
                exhausted = current is not None and current.status == OTP_STATUS_UNUSED
                self._db.rollback()
                if exhausted:
                    raise LockedError()
                raise OtpAlreadyUsedError()
            voter = self._registry.get_voter(mobile, record.election_id)
            if voter is None:
                self._db.rollback()
                raise VoterNotFoundError()
            voting_session = self._sessions.issue(
                election_id=record.election_id, voter_id=voter.id
            )
            token = voting_session.token
            self._db.commit()
        except SQLAlchemyError as err:
            self._db.rollback()
            logger.exception("Failed to redeem OTP for %s", mask_mobile(mobile))
            raise ServiceUnavailableError() from err

        self._throttle.reset(_failure_key(mobile))
        logger.info("OTP verified for %s", mask_mobile(mobile))
        return token

    def _record_failure(self, mobile: str, otp_id: str) -> None:
        """Count a wrong guess on the record and the mobile, locking at the limit.

        Raises LockedError when the record reached the limit before this guess
        could be counted.
        """
        max_failures = self._config.otp_max_failed_attempts
        try:
            record_failures = self._otps.record_failure(otp_id, max_failures)
            self._db.commit()
        except SQLAlchemyError as err:
            self._db.rollback()
            logger.exception("Failed to count OTP failure for %s", mask_mobile(mobile))
            raise ServiceUnavailableError() from err
        if record_failures is None:
            self._lock(mobile)
            raise LockedError()

        failures = self._throttle.increment(
            _failure_key(mobile), self._config.otp_lockout_seconds
        )
        logger.warning(
            "Failed OTP for %s (attempt %d/%d)",
            mask_mobile(mobile),
            failures,
            max_failures,
        )
        if failures >= max_failures or record_failures >= max_failures:
            self._lock(mobile)

    def _lock(self, mobile: str) -> None:
        lockout = self._config.otp_lockout_seconds
        self._throttle.lock(_lock_key(mobile), lockout)
        self._throttle.reset(_failure_key(mobile))
        logger.warning("Mobile %s locked for %d seconds", mask_mobile(mobile), lockout)
