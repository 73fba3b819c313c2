# src/campus_vote/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .common import ErrorResponse
from .otp import OtpSendRequest, OtpSendResponse, OtpVerifyRequest, OtpVerifyResponse
from .vote import (
    BallotResponse,
    CandidateResponse,
    ReceiptResponse,
    VoteCastRequest,
    VoteCastResponse,
)

__all__ = [
    "ErrorResponse",
    "OtpSendRequest", "OtpSendResponse", "OtpVerifyRequest", "OtpVerifyResponse",
    "BallotResponse", "CandidateResponse", "ReceiptResponse",
    "VoteCastRequest", "VoteCastResponse",
]
