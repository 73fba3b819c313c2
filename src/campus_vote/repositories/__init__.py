"""Data access helpers for the voting pipeline stores."""

from .ballot_repo import BallotRepository
from .ledger_repo import LedgerRepository
from .otp_repo import OtpRepository
from .registry_repo import RegistryRepository
from .session_repo import SessionRepository

__all__ = [
    "BallotRepository",
    "LedgerRepository",
    "OtpRepository",
    "RegistryRepository",
    "SessionRepository",
]
