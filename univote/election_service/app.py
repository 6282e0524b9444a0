"""
Election Service — election and candidate management.

This service owns the election bounded context end-to-end:
    - Public listing and detail endpoints (with derived status)
    - Admin endpoints: create (with candidates), edit, delete (cascades)
    - Admin candidate management, including while an election is active

Election status is never stored: it is derived from start_date/end_date at
read time (upcoming / active / ended).

Runs on port 5005.
"""
import logging
from contextlib import asynccontextmanager
from uuid import UUID

import asyncpg
from fastapi import Depends, FastAPI, HTTPException

from univote.shared.auth import require_admin
from univote.shared.database import Database
from univote.shared.records import Candidate, Election
from univote.shared.schemas import (
    CandidateCreate, CandidateOut, CandidateUpdate, ElectionCreate,
    ElectionOut, ElectionUpdate, HealthResponse,
)
from univote.election_service.store import CandidateHasVotes, ElectionStore

logger = logging.getLogger("election-service")

_REQUIRED_CANDIDATE_FIELDS = {"full_name", "department", "course"}


@asynccontextmanager
async def lifespan(application: FastAPI):
    await Database.get_pool()
    yield
    await Database.close()


app = FastAPI(
    title="Election Service",
    description="Election and candidate management",
    lifespan=lifespan,
)


def get_store() -> ElectionStore:
    return ElectionStore()


# ── Helpers ──────────────────────────────────────────────────────────────────

def _election_out(election: Election, candidate_count: int = 0, total_votes: int = 0) -> dict:
    return {
        "id": election.id,
        "title": election.title,
        "description": election.description,
        "start_date": election.start_date,
        "end_date": election.end_date,
        "is_active": election.is_active,
        "status": election.status().value,
        "candidate_count": candidate_count,
        "total_votes": total_votes,
    }


def _candidate_out(candidate: Candidate) -> dict:
    return candidate.model_dump(exclude={"created_at"})


async def _require_election(store: ElectionStore, election_id: UUID) -> Election:
    election = await store.get_election(election_id)
    if not election:
        raise HTTPException(status_code=404, detail="Election not found")
    return election


# ── Routes ───────────────────────────────────────────────────────────────────

@app.get("/health", response_model=HealthResponse)
async def health():
    return {"status": "healthy", "service": "election"}


@app.get("/elections", response_model=list[ElectionOut])
async def list_elections(active_only: bool = False, store: ElectionStore = Depends(get_store)):
    """All elections (or only those currently open) with candidate and vote counts."""
    rows = await store.list_elections(active_only=active_only)
    return [_election_out(r["election"], r["candidate_count"], r["total_votes"]) for r in rows]


@app.get("/elections/{election_id}")
async def get_election(election_id: UUID, store: ElectionStore = Depends(get_store)):
    """Election details and its candidates."""
    election = await _require_election(store, election_id)
    candidates = await store.list_candidates(election_id)
    total_votes = await store.count_votes(election_id)
    return {
        "election": _election_out(election, len(candidates), total_votes),
        "candidates": [_candidate_out(c) for c in candidates],
    }


@app.post("/elections", status_code=201)
async def create_election(data: ElectionCreate,
                          admin_id: UUID = Depends(require_admin),
                          store: ElectionStore = Depends(get_store)):
    """Create an election, optionally with its initial candidates."""
    election = await store.create_election(admin_id, data)
    logger.info(f"Election {election.id} created by admin {admin_id} "
                f"with {len(data.candidates)} candidates")
    return {"message": "Election created successfully", "election_id": election.id}


@app.patch("/elections/{election_id}", response_model=ElectionOut)
async def update_election(election_id: UUID, data: ElectionUpdate,
                          admin_id: UUID = Depends(require_admin),
                          store: ElectionStore = Depends(get_store)):
    """Edit title, description, dates or the active flag."""
    current = await _require_election(store, election_id)
    changes = {
        k: v for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k == "description"
    }

    start = changes.get("start_date", current.start_date)
    end = changes.get("end_date", current.end_date)
    if start >= end:
        raise HTTPException(status_code=400, detail="start_date must be before end_date")

    try:
        election = await store.update_election(election_id, changes)
    except asyncpg.CheckViolationError:
        raise HTTPException(status_code=400, detail="start_date must be before end_date")
    if not election:
        raise HTTPException(status_code=404, detail="Election not found")
    return _election_out(election)


@app.delete("/elections/{election_id}")
async def delete_election(election_id: UUID,
                          admin_id: UUID = Depends(require_admin),
                          store: ElectionStore = Depends(get_store)):
    """Delete an election together with its candidates and votes."""
    if not await store.delete_election(election_id):
        raise HTTPException(status_code=404, detail="Election not found")
    logger.info(f"Election {election_id} deleted by admin {admin_id}")
    return {"message": "Election deleted"}


# ── Candidates ───────────────────────────────────────────────────────────────

@app.post("/elections/{election_id}/candidates", response_model=CandidateOut, status_code=201)
async def add_candidate(election_id: UUID, data: CandidateCreate,
                        admin_id: UUID = Depends(require_admin),
                        store: ElectionStore = Depends(get_store)):
    """Add a candidate to an existing (possibly active) election."""
    await _require_election(store, election_id)
    candidate = await store.add_candidate(election_id, data)
    return _candidate_out(candidate)


@app.patch("/candidates/{candidate_id}", response_model=CandidateOut)
async def update_candidate(candidate_id: UUID, data: CandidateUpdate,
                           admin_id: UUID = Depends(require_admin),
                           store: ElectionStore = Depends(get_store)):
    changes = {
        k: v for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k not in _REQUIRED_CANDIDATE_FIELDS
    }
    candidate = await store.update_candidate(candidate_id, changes)
    if not candidate:
        raise HTTPException(status_code=404, detail="Candidate not found")
    return _candidate_out(candidate)


@app.delete("/candidates/{candidate_id}")
async def delete_candidate(candidate_id: UUID,
                           admin_id: UUID = Depends(require_admin),
                           store: ElectionStore = Depends(get_store)):
    """Delete a candidate. Refused once the candidate has votes, to keep tallies intact."""
    try:
        deleted = await store.delete_candidate(candidate_id)
    except (CandidateHasVotes, asyncpg.ForeignKeyViolationError):
        raise HTTPException(status_code=409, detail="Candidate already has votes and cannot be deleted")
    if not deleted:
        raise HTTPException(status_code=404, detail="Candidate not found")
    return {"message": "Candidate deleted"}
