# src/campus_vote/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import otp_router, system_router, votes_router

__all__ = [
    "otp_router",
    "system_router",
    "votes_router",
]
