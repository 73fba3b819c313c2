"""Domain error taxonomy for the voting pipeline.

Services raise these exceptions; the API layer renders them as
``{"error": code, "detail": message}`` with the status carried by the class.
Messages are written for voters and never reveal more than the code does.
"""

from __future__ import annotations

from fastapi import status


class VotingError(Exception):
    """Base exception for every domain failure in the voting pipeline."""

    code: str = "VOTING_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "The request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        """Return the structured body sent to clients."""
        return {"error": self.code, "detail": self.message}


class ValidationError(VotingError):
    """Raised for malformed input that passed schema parsing."""

    code = "VALIDATION_ERROR"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "The request contains invalid data"


class OtpInvalidError(ValidationError):
    """Raised when a submitted code does not match the outstanding one."""

    code = "OTP_INVALID"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid OTP"


class InvalidChoiceError(ValidationError):
    """Raised when a ballot choice is not a candidate the voter may pick."""

    code = "INVALID_CHOICE"
    default_message = "Invalid choice for this election"


class NotFoundError(VotingError):
    """Raised when a voter, election or stored record does not exist."""

    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class VoterNotFoundError(NotFoundError):
    code = "VOTER_NOT_FOUND"
    default_message = "Mobile number is not registered for this election"


class OtpNotFoundError(NotFoundError):
    code = "OTP_NOT_FOUND"
    default_message = "No OTP has been requested for this mobile number"


class SessionNotFoundError(NotFoundError):
    code = "SESSION_NOT_FOUND"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Voting session is not valid"


class ReceiptNotFoundError(NotFoundError):
    code = "RECEIPT_NOT_FOUND"
    default_message = "Receipt not found"


class NotEligibleError(VotingError):
    code = "NOT_ELIGIBLE"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Voter is not eligible for this election"


class ElectionNotActiveError(VotingError):
    code = "ELECTION_NOT_ACTIVE"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Election is not accepting votes"


class ThrottledError(VotingError):
    code = "THROTTLED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many OTP requests. Please wait before trying again"


class LockedError(VotingError):
    code = "LOCKED"
    status_code = status.HTTP_423_LOCKED
    default_message = "Too many failed attempts. Please try again later"


class OtpExpiredError(VotingError):
    code = "OTP_EXPIRED"
    status_code = status.HTTP_410_GONE
    default_message = "OTP has expired. Please request a new one"


class OtpAlreadyUsedError(VotingError):
    code = "OTP_ALREADY_USED"
    status_code = status.HTTP_409_CONFLICT
    default_message = "OTP has already been used"


class SessionExpiredError(VotingError):
    code = "SESSION_EXPIRED"
    status_code = status.HTTP_410_GONE
    default_message = "Voting session has expired"


class SessionAlreadyRedeemedError(VotingError):
    code = "SESSION_ALREADY_REDEEMED"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Voting session has already been used"


class AlreadyVotedError(VotingError):
    code = "ALREADY_VOTED"
    status_code = status.HTTP_409_CONFLICT
    default_message = "You have already voted in this election"


class ElectionClosedError(VotingError):
    code = "ELECTION_CLOSED"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Election is closed"


class DeliveryFailedError(VotingError):
    """Raised when the SMS gateway rejects a message.

    Non-fatal: the stored code stays valid and the client may request a new one.
    """

    code = "DELIVERY_FAILED"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "OTP could not be delivered. Please request a new one"


class ServiceUnavailableError(VotingError):
    """Raised for storage or infrastructure failures."""

    code = "SERVICE_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service temporarily unavailable"


class ForbiddenError(VotingError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Invalid API key"
