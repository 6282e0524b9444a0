"""
Typed records for rows crossing the data-access boundary.

Every store method returns one of these (never a raw asyncpg.Record), so the
services work against a fixed shape per table.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ElectionStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDED = "ended"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_row(cls, row):
        """Build the record from an asyncpg row (or any mapping)."""
        return cls.model_validate(dict(row))


class Voter(Record):
    id: UUID
    full_name: str
    email: str
    phone: str
    student_id: str
    wallet_address: str | None
    verified: bool
    voting_enabled: bool
    created_at: datetime
    updated_at: datetime
    last_login: datetime | None


class Election(Record):
    id: UUID
    title: str
    description: str | None
    start_date: datetime
    end_date: datetime
    is_active: bool
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime

    def status(self, now: datetime | None = None) -> ElectionStatus:
        return derive_status(self.start_date, self.end_date, now)


class Candidate(Record):
    id: UUID
    election_id: UUID
    full_name: str
    email: str | None
    department: str
    course: str
    year_of_study: int | None
    manifesto: str | None
    image_url: str | None
    video_url: str | None
    created_at: datetime


class Vote(Record):
    id: UUID
    voter_id: UUID
    candidate_id: UUID
    election_id: UUID
    wallet_address: str
    vote_hash: str
    voted_at: datetime


def derive_status(start: datetime, end: datetime, now: datetime | None = None) -> ElectionStatus:
    """upcoming before start, ended after end, active on both boundaries."""
    now = now or utcnow()
    if now < start:
        return ElectionStatus.UPCOMING
    if now > end:
        return ElectionStatus.ENDED
    return ElectionStatus.ACTIVE


# Column lists used by every SELECT that feeds a record.
VOTER_COLUMNS = (
    "id, full_name, email, phone, student_id, wallet_address, verified, "
    "voting_enabled, created_at, updated_at, last_login"
)
ELECTION_COLUMNS = (
    "id, title, description, start_date, end_date, is_active, created_by, "
    "created_at, updated_at"
)
CANDIDATE_COLUMNS = (
    "id, election_id, full_name, email, department, course, year_of_study, "
    "manifesto, image_url, video_url, created_at"
)
VOTE_COLUMNS = "id, voter_id, candidate_id, election_id, wallet_address, vote_hash, voted_at"
