"""
Voting Service — eligibility checks and ballot casting.

This service owns the vote-casting protocol end-to-end:
    1. Eligibility gate (election window, verification, duplicate, voting flag)
    2. Wallet binding on first vote when the voter has none
    3. Ballot insert guarded by the votes(voter_id, election_id) constraint
    4. Best-effort confirmation email
    5. Vote-status and receipt lookups

Clients that time out while casting must call the vote-status endpoint before
offering the ballot again: the insert may have succeeded.

Runs on port 5003.
"""
import logging
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException

from univote.shared.auth import require_voter
from univote.shared.database import Database
from univote.shared.email_util import send_vote_confirmation_email
from univote.shared.errors import VoteError, vote_error_handler
from univote.shared.schemas import (
    CastVoteRequest, HealthResponse, ReceiptResponse, VoteResponse, VoteStatusResponse,
)
from univote.voting_service.ballot import cast_vote
from univote.voting_service.eligibility import get_vote_status
from univote.voting_service.store import VotingStore

logger = logging.getLogger("voting-service")


@asynccontextmanager
async def lifespan(application: FastAPI):
    await Database.get_pool()
    yield
    await Database.close()


app = FastAPI(
    title="Voting Service",
    description="Eligibility checks, ballot casting and vote receipts",
    lifespan=lifespan,
)
app.add_exception_handler(VoteError, vote_error_handler)


# -- Dependencies -------------------------------------------------------------

def get_store() -> VotingStore:
    return VotingStore()


async def _email_confirmation(voter, candidate, election, vote):
    await send_vote_confirmation_email(
        voter.email, voter.full_name, candidate.full_name, election.title, vote.vote_hash,
    )


def get_notifier():
    return _email_confirmation


# -- Health -------------------------------------------------------------------

@app.get("/health", response_model=HealthResponse)
async def health():
    return {"status": "healthy", "service": "voting"}


# -- Casting ------------------------------------------------------------------

@app.post("/elections/{election_id}/votes", response_model=VoteResponse, status_code=201)
async def submit_vote(election_id: UUID, data: CastVoteRequest,
                      voter_id: UUID = Depends(require_voter),
                      store: VotingStore = Depends(get_store),
                      notify=Depends(get_notifier)):
    """Cast the authenticated voter's ballot for one candidate."""
    result = await cast_vote(
        store, voter_id, data.candidate_id, election_id, data.wallet_address,
        notify=notify,
    )
    return {
        "message": f"Vote recorded for {result.candidate_name}",
        "vote_id": result.vote_id,
        "vote_hash": result.vote_hash,
        "voted_at": result.voted_at,
    }


@app.get("/elections/{election_id}/vote-status", response_model=VoteStatusResponse)
async def vote_status(election_id: UUID,
                      voter_id: UUID = Depends(require_voter),
                      store: VotingStore = Depends(get_store)):
    """Whether the authenticated voter has already voted in this election."""
    return await get_vote_status(store, voter_id, election_id)


# -- Receipts (public) --------------------------------------------------------

@app.get("/receipts/{vote_hash}", response_model=ReceiptResponse)
async def verify_receipt(vote_hash: str, store: VotingStore = Depends(get_store)):
    """Look a ballot up by the reference shown to the voter."""
    row = await store.get_receipt(vote_hash)
    if not row:
        raise HTTPException(status_code=404, detail="Receipt not found")

    return {
        "verified": True,
        "vote_hash": row["vote_hash"],
        "election_id": row["election_id"],
        "election_title": row["election_title"],
        "candidate_name": row["candidate_name"],
        "voted_at": row["voted_at"],
    }
