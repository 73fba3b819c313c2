# src/campus_vote/services/__init__.py
"""Business logic services for the Campus Vote service."""

from .ballot import BallotRecorder
from .otp import OtpIssuer, OtpVerifier
from .reaper import ExpiryReaper
from .sms import SmsGateway
from .throttle import ThrottleStore
from .voting_session import VotingSessionManager

__all__ = [
    "BallotRecorder",
    "OtpIssuer",
    "OtpVerifier",
    "ExpiryReaper",
    "SmsGateway",
    "ThrottleStore",
    "VotingSessionManager",
]
