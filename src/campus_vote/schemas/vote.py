"""Vote-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class VoteCastRequest(BaseModel):
    """Schema for casting a ballot with a voting session token."""

    session_token: str = Field(..., min_length=1, max_length=64)
    choice: str = Field(..., min_length=1, max_length=64, description="Candidate id")


class VoteCastResponse(BaseModel):
    receipt: str


class CandidateResponse(BaseModel):
    id: str
    name: str
    party: str | None = None
    constituency: str | None = None


class BallotResponse(BaseModel):
    """The ballot shown to a session holder."""

    election_id: str
    election_name: str
    candidates: list[CandidateResponse]


class ReceiptResponse(BaseModel):
    verified: bool
    election_id: str
    cast_at: datetime
