# src/campus_vote/api/v1/endpoints/system.py
"""System endpoints exposing public, non-secret configuration."""

from typing import Any

from fastapi import APIRouter

from campus_vote.api.v1.dependencies import SettingsDep

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config(config: SettingsDep) -> dict[str, Any]:
    """Return the parameters a voter client needs to drive the OTP flow."""
    return {
        "app": {"name": config.app_name, "version": config.app_version},
        "otp": {
            "length": config.otp_length,
            "ttl_seconds": config.otp_ttl_seconds,
            "request_limit": config.otp_request_limit,
            "request_window_seconds": config.otp_request_window_seconds,
            "max_failed_attempts": config.otp_max_failed_attempts,
            "lockout_seconds": config.otp_lockout_seconds,
            "api_key_required": bool(config.otp_api_key),
        },
        "session": {"ttl_seconds": config.session_ttl_seconds},
    }
