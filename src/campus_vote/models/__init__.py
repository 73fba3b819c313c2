# src/campus_vote/models/__init__.py
"""SQLAlchemy models for the Campus Vote service."""

from .ballot import Ballot
from .ledger import VoterLedgerEntry
from .otp import OtpRecord
from .registry import Candidate, Election, Voter
from .voting_session import VotingSession

__all__ = [
    "Ballot",
    "VoterLedgerEntry",
    "OtpRecord",
    "Candidate", "Election", "Voter",
    "VotingSession",
]
