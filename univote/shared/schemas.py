"""
Shared Pydantic schemas — request validation and response serialisation.

Organised by bounded context:
    1. Auth        — admin registration/login, voter login, token verify
    2. Voter       — registration, profile, wallet binding, admin toggles
    3. Election    — election and candidate CRUD
    4. Voting      — cast vote, vote status, receipts
    5. Results     — per-candidate results, stats, timeline, dashboard
    6. Common      — health, errors
"""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, EmailStr, Field, model_validator


# ══════════════════════════════════════════════════════════════════════════════
# 1. AUTH SERVICE
# ══════════════════════════════════════════════════════════════════════════════

class AdminRegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenVerifyRequest(BaseModel):
    token: str


class AuthResponse(BaseModel):
    message: str | None = None
    user_id: UUID | None = None
    role: str | None = None
    token: str | None = None


class TokenVerifyResponse(BaseModel):
    valid: bool
    user_id: UUID | None = None
    role: str | None = None
    email: str | None = None


# ══════════════════════════════════════════════════════════════════════════════
# 2. VOTER SERVICE
# ══════════════════════════════════════════════════════════════════════════════

class VoterRegisterRequest(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(min_length=7, max_length=32)
    student_id: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=8)
    wallet_address: str | None = None


class VoterUpdateRequest(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = Field(default=None, min_length=7, max_length=32)


class WalletBindRequest(BaseModel):
    wallet_address: str = Field(min_length=1, max_length=128)


class VotingEnabledRequest(BaseModel):
    enabled: bool


class VoterOut(BaseModel):
    id: UUID
    full_name: str
    email: str
    phone: str
    student_id: str
    wallet_address: str | None
    verified: bool
    voting_enabled: bool
    created_at: datetime
    last_login: datetime | None = None


# ══════════════════════════════════════════════════════════════════════════════
# 3. ELECTION SERVICE
# ══════════════════════════════════════════════════════════════════════════════

class CandidateCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    email: EmailStr | None = None
    department: str = Field(min_length=1)
    course: str = Field(min_length=1)
    year_of_study: int | None = Field(default=None, ge=1, le=10)
    manifesto: str | None = None
    image_url: str | None = None
    video_url: str | None = None


class CandidateUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    department: str | None = None
    course: str | None = None
    year_of_study: int | None = Field(default=None, ge=1, le=10)
    manifesto: str | None = None
    image_url: str | None = None
    video_url: str | None = None


class ElectionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    start_date: AwareDatetime
    end_date: AwareDatetime
    is_active: bool = True
    candidates: list[CandidateCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def _dates_ordered(self):
        if self.start_date >= self.end_date:
            raise ValueError("start_date must be before end_date")
        return self


class ElectionUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    start_date: AwareDatetime | None = None
    end_date: AwareDatetime | None = None
    is_active: bool | None = None


class CandidateOut(BaseModel):
    id: UUID
    election_id: UUID
    full_name: str
    email: str | None = None
    department: str
    course: str
    year_of_study: int | None = None
    manifesto: str | None = None
    image_url: str | None = None
    video_url: str | None = None


class ElectionOut(BaseModel):
    id: UUID
    title: str
    description: str | None = None
    start_date: datetime
    end_date: datetime
    is_active: bool
    status: str
    candidate_count: int = 0
    total_votes: int = 0


# ══════════════════════════════════════════════════════════════════════════════
# 4. VOTING SERVICE
# ══════════════════════════════════════════════════════════════════════════════

class CastVoteRequest(BaseModel):
    candidate_id: UUID
    wallet_address: str | None = Field(default=None, max_length=128)


class VoteResponse(BaseModel):
    message: str
    vote_id: UUID
    vote_hash: str
    voted_at: datetime


class VoteStatusResponse(BaseModel):
    has_voted: bool
    voted_at: datetime | None = None
    candidate_name: str | None = None


class ReceiptResponse(BaseModel):
    verified: bool
    vote_hash: str
    election_id: UUID
    election_title: str
    candidate_name: str
    voted_at: datetime


# ══════════════════════════════════════════════════════════════════════════════
# 5. RESULTS SERVICE
# ══════════════════════════════════════════════════════════════════════════════

class CandidateResultOut(BaseModel):
    candidate_id: UUID
    name: str
    department: str
    course: str
    year_of_study: int | None = None
    image_url: str | None = None
    vote_count: int
    vote_percentage: float


class ElectionResultsOut(BaseModel):
    election_id: UUID
    title: str
    status: str
    total_votes: int
    results: list[CandidateResultOut]


class ElectionStatsOut(BaseModel):
    election_id: UUID
    status: str
    total_votes: int
    total_candidates: int
    leading_candidate_name: str
    leading_votes: int
    leading_percentage: float
    voter_turnout_percentage: float
    leader_label: str | None = None


class TimelinePoint(BaseModel):
    hour: datetime
    vote_count: int
    cumulative_votes: int


class TimelineOut(BaseModel):
    election_id: UUID
    timeline: list[TimelinePoint]


class DashboardStatsOut(BaseModel):
    total_voters: int
    verified_voters: int
    voting_enabled_voters: int
    voters_with_wallets: int
    total_elections: int
    active_elections: int
    total_candidates: int
    total_votes: int
    unique_voters: int


# ══════════════════════════════════════════════════════════════════════════════
# 6. COMMON
# ══════════════════════════════════════════════════════════════════════════════

class HealthResponse(BaseModel):
    status: str
    service: str


class ErrorResponse(BaseModel):
    detail: str
    error: str | None = None
    retryable: bool = False
