"""OTP-related Pydantic schemas."""

from pydantic import BaseModel, Field


class OtpSendRequest(BaseModel):
    """Schema for requesting a one-time code."""

    mobile: str = Field(..., min_length=8, max_length=20, description="Registered mobile number")
    election_id: str = Field(..., min_length=1, max_length=36)


class OtpSendResponse(BaseModel):
    voter_name: str
    election_id: str


class OtpVerifyRequest(BaseModel):
    """Schema for redeeming a one-time code."""

    mobile: str = Field(..., min_length=8, max_length=20)
    code: str = Field(..., min_length=4, max_length=12, pattern=r"^[0-9]+$")


class OtpVerifyResponse(BaseModel):
    session_token: str
