"""
In-memory stand-ins for the service stores.

The fakes yield to the event loop on every call so concurrent coroutines
interleave the way concurrent requests do, and the vote insert enforces the
(voter_id, election_id) constraint by raising asyncpg.UniqueViolationError,
exactly as PostgreSQL reports it.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import asyncpg
import pytest

from univote.shared.records import Candidate, Election, Vote, Voter
from univote.shared.security import ROLE_ADMIN, ROLE_VOTER, create_access_token

NOW = datetime(2025, 6, 10, 12, 0, tzinfo=timezone.utc)


def make_voter(**overrides) -> Voter:
    fields = {
        "id": uuid4(),
        "full_name": "Ada Obi",
        "email": f"ada.{uuid4().hex[:8]}@university.edu",
        "phone": "+2348012345678",
        "student_id": f"STU{uuid4().hex[:6]}",
        "wallet_address": "0xabc0000000000000000000000000000000000001",
        "verified": True,
        "voting_enabled": True,
        "created_at": NOW - timedelta(days=30),
        "updated_at": NOW - timedelta(days=30),
        "last_login": None,
    }
    fields.update(overrides)
    return Voter(**fields)


def make_election(start=None, end=None, **overrides) -> Election:
    start = start or NOW - timedelta(hours=1)
    end = end or NOW + timedelta(hours=1)
    fields = {
        "id": uuid4(),
        "title": "Student Union President 2025",
        "description": "Annual presidential election",
        "start_date": start,
        "end_date": end,
        "is_active": True,
        "created_by": None,
        "created_at": NOW - timedelta(days=2),
        "updated_at": NOW - timedelta(days=2),
    }
    fields.update(overrides)
    return Election(**fields)


def make_candidate(election: Election, full_name: str, **overrides) -> Candidate:
    fields = {
        "id": uuid4(),
        "election_id": election.id,
        "full_name": full_name,
        "email": None,
        "department": "Engineering",
        "course": "BSc Computer Engineering",
        "year_of_study": 3,
        "manifesto": "Better study spaces.",
        "image_url": None,
        "video_url": None,
        "created_at": NOW - timedelta(days=2),
    }
    fields.update(overrides)
    return Candidate(**fields)


def voter_token(voter_id) -> str:
    return create_access_token(voter_id, ROLE_VOTER, "voter@university.edu")


def admin_token(admin_id=None) -> str:
    return create_access_token(admin_id or uuid4(), ROLE_ADMIN, "admin@university.edu")


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class FakeVotingStore:

    def __init__(self):
        self.voters: dict[UUID, Voter] = {}
        self.elections: dict[UUID, Election] = {}
        self.candidates: dict[UUID, Candidate] = {}
        self.votes: list[Vote] = []
        self.insert_error: Exception | None = None
        self.read_error: Exception | None = None
        self.bind_calls = 0

    def add(self, *records):
        for r in records:
            if isinstance(r, Voter):
                self.voters[r.id] = r
            elif isinstance(r, Election):
                self.elections[r.id] = r
            elif isinstance(r, Candidate):
                self.candidates[r.id] = r
        return self

    async def _tick(self):
        await asyncio.sleep(0)
        if self.read_error is not None:
            raise self.read_error

    async def get_voter(self, voter_id):
        await self._tick()
        return self.voters.get(voter_id)

    async def get_election(self, election_id):
        await self._tick()
        return self.elections.get(election_id)

    async def get_candidate(self, candidate_id):
        await self._tick()
        return self.candidates.get(candidate_id)

    async def has_voted(self, voter_id, election_id):
        await self._tick()
        return any(v.voter_id == voter_id and v.election_id == election_id for v in self.votes)

    async def get_vote_status(self, voter_id, election_id):
        await self._tick()
        for v in self.votes:
            if v.voter_id == voter_id and v.election_id == election_id:
                return {"voted_at": v.voted_at,
                        "candidate_name": self.candidates[v.candidate_id].full_name}
        return None

    async def bind_wallet(self, voter_id, wallet_address):
        await self._tick()
        self.bind_calls += 1
        voter = self.voters.get(voter_id)
        if voter is None or voter.wallet_address is not None:
            return False
        self.voters[voter_id] = voter.model_copy(update={"wallet_address": wallet_address})
        return True

    async def insert_vote(self, voter_id, candidate_id, election_id, wallet_address,
                          vote_hash, voted_at):
        await asyncio.sleep(0)
        if self.insert_error is not None:
            raise self.insert_error
        if any(v.voter_id == voter_id and v.election_id == election_id for v in self.votes):
            raise asyncpg.UniqueViolationError(
                'duplicate key value violates unique constraint "votes_one_per_voter"'
            )
        vote = Vote(
            id=uuid4(), voter_id=voter_id, candidate_id=candidate_id,
            election_id=election_id, wallet_address=wallet_address,
            vote_hash=vote_hash, voted_at=voted_at,
        )
        self.votes.append(vote)
        return vote

    async def get_receipt(self, vote_hash):
        await self._tick()
        for v in self.votes:
            if v.vote_hash == vote_hash:
                return {
                    "vote_hash": v.vote_hash,
                    "voted_at": v.voted_at,
                    "election_id": v.election_id,
                    "election_title": self.elections[v.election_id].title,
                    "candidate_name": self.candidates[v.candidate_id].full_name,
                }
        return None


class FakeResultsStore:
    """Derives every aggregate from a FakeVotingStore's rows."""

    def __init__(self, source: FakeVotingStore | None = None):
        self.source = source or FakeVotingStore()
        self.election_reads = 0
        self.tally_reads = 0
        self.tally_error: Exception | None = None

    async def get_election(self, election_id):
        await asyncio.sleep(0)
        self.election_reads += 1
        return self.source.elections.get(election_id)

    async def candidate_tallies(self, election_id):
        await asyncio.sleep(0)
        if self.tally_error is not None:
            raise self.tally_error
        self.tally_reads += 1
        rows = []
        for c in self.source.candidates.values():
            if c.election_id != election_id:
                continue
            count = sum(1 for v in self.source.votes
                        if v.candidate_id == c.id and v.election_id == election_id)
            rows.append({
                "candidate_id": c.id, "full_name": c.full_name,
                "department": c.department, "course": c.course,
                "year_of_study": c.year_of_study, "image_url": c.image_url,
                "vote_count": count,
            })
        return rows

    async def eligible_voter_count(self):
        await asyncio.sleep(0)
        return sum(1 for v in self.source.voters.values() if v.verified)

    async def hourly_vote_counts(self, election_id):
        await asyncio.sleep(0)
        return [(v.voted_at, 1) for v in self.source.votes if v.election_id == election_id]

    async def dashboard_stats(self):
        voters = list(self.source.voters.values())
        return {
            "total_voters": len(voters),
            "verified_voters": sum(1 for v in voters if v.verified),
            "voting_enabled_voters": sum(1 for v in voters if v.voting_enabled),
            "voters_with_wallets": sum(1 for v in voters if v.wallet_address),
            "total_elections": len(self.source.elections),
            "active_elections": sum(
                1 for e in self.source.elections.values() if e.status().value == "active"
            ),
            "total_candidates": len(self.source.candidates),
            "total_votes": len(self.source.votes),
            "unique_voters": len({v.voter_id for v in self.source.votes}),
        }


def seed_vote(store: FakeVotingStore, voter: Voter, candidate: Candidate,
              voted_at: datetime | None = None) -> Vote:
    vote = Vote(
        id=uuid4(), voter_id=voter.id, candidate_id=candidate.id,
        election_id=candidate.election_id, wallet_address=voter.wallet_address or "0x0",
        vote_hash=uuid4().hex, voted_at=voted_at or NOW,
    )
    store.votes.append(vote)
    return vote


@pytest.fixture
def voting_store():
    return FakeVotingStore()


@pytest.fixture
def active_election():
    """An election open right now (relative to the wall clock)."""
    now = datetime.now(timezone.utc)
    return make_election(start=now - timedelta(hours=1), end=now + timedelta(hours=1))
