# src/campus_vote/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .otp import router as otp_router
from .system import router as system_router
from .votes import router as votes_router

__all__ = [
    "otp_router",
    "system_router",
    "votes_router",
]
