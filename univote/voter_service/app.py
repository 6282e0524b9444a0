"""
Voter Service — student registration, profile, wallet binding and admin
verification.

This service owns the voter bounded context end-to-end:
    - Self-service: register, view/edit profile, bind a wallet address once
    - Admin: list voters, verify/unverify, enable/disable voting,
      reset a wallet (which also clears verification)

A voter can vote once verified with a wallet bound. The wallet address is
part of every vote reference, so re-binding goes through an admin reset and
a fresh verification.

Runs on port 5002.
"""
import logging
from contextlib import asynccontextmanager
from uuid import UUID

import asyncpg
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException

from univote.shared.auth import require_admin, require_voter
from univote.shared.database import Database
from univote.shared.email_util import send_welcome_email
from univote.shared.records import Voter
from univote.shared.schemas import (
    HealthResponse, VoterOut, VoterRegisterRequest, VoterUpdateRequest,
    VotingEnabledRequest, WalletBindRequest,
)
from univote.shared.security import hash_password
from univote.voter_service.store import VoterStore

logger = logging.getLogger("voter-service")


@asynccontextmanager
async def lifespan(application: FastAPI):
    await Database.get_pool()
    yield
    await Database.close()


app = FastAPI(
    title="Voter Service",
    description="Voter registration, wallet binding and verification",
    lifespan=lifespan,
)


def get_store() -> VoterStore:
    return VoterStore()


async def _welcome(voter: Voter):
    try:
        await send_welcome_email(voter.email, voter.full_name)
    except Exception as e:
        logger.error(f"Failed to send welcome email to {voter.email}: {e}")


def get_welcomer():
    return _welcome


# ── Helpers ──────────────────────────────────────────────────────────────────

def _voter_out(voter: Voter) -> dict:
    return voter.model_dump(exclude={"updated_at"})


def _or_404(voter: Voter | None) -> Voter:
    if voter is None:
        raise HTTPException(status_code=404, detail="Voter not found")
    return voter


# ── Routes ───────────────────────────────────────────────────────────────────

@app.get("/health", response_model=HealthResponse)
async def health():
    return {"status": "healthy", "service": "voter"}


@app.post("/voters", response_model=VoterOut, status_code=201)
async def register_voter(data: VoterRegisterRequest, background_tasks: BackgroundTasks,
                         store: VoterStore = Depends(get_store),
                         welcome=Depends(get_welcomer)):
    """Register a student. Accounts start unverified with voting enabled."""
    if data.wallet_address is not None:
        data.wallet_address = data.wallet_address.strip() or None
    try:
        voter = await store.create_voter(data, hash_password(data.password))
    except asyncpg.UniqueViolationError as e:
        field = "Student ID" if "student_id" in str(e) else "Email"
        raise HTTPException(status_code=409, detail=f"{field} already registered")

    logger.info(f"Voter {voter.id} registered")
    background_tasks.add_task(welcome, voter)
    return _voter_out(voter)


@app.get("/voters/me", response_model=VoterOut)
async def get_me(voter_id: UUID = Depends(require_voter),
                 store: VoterStore = Depends(get_store)):
    return _voter_out(_or_404(await store.get_voter(voter_id)))


@app.patch("/voters/me", response_model=VoterOut)
async def update_me(data: VoterUpdateRequest,
                    voter_id: UUID = Depends(require_voter),
                    store: VoterStore = Depends(get_store)):
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    return _voter_out(_or_404(await store.update_profile(voter_id, changes)))


@app.put("/voters/me/wallet", response_model=VoterOut)
async def bind_wallet(data: WalletBindRequest,
                      voter_id: UUID = Depends(require_voter),
                      store: VoterStore = Depends(get_store)):
    """Bind a wallet address. Only allowed while none is bound."""
    voter = await store.bind_wallet(voter_id, data.wallet_address.strip())
    if voter is None:
        _or_404(await store.get_voter(voter_id))
        raise HTTPException(status_code=409, detail="A wallet address is already bound to this account")
    logger.info(f"Wallet bound for voter {voter_id}")
    return _voter_out(voter)


# ── Admin ────────────────────────────────────────────────────────────────────

@app.get("/voters", response_model=list[VoterOut])
async def list_voters(verified: bool | None = None,
                      admin_id: UUID = Depends(require_admin),
                      store: VoterStore = Depends(get_store)):
    return [_voter_out(v) for v in await store.list_voters(verified)]


@app.post("/voters/{voter_id}/verify", response_model=VoterOut)
async def verify_voter(voter_id: UUID, verified: bool = True,
                       admin_id: UUID = Depends(require_admin),
                       store: VoterStore = Depends(get_store)):
    """Mark a voter verified (or unverified with ``verified=false``)."""
    voter = _or_404(await store.get_voter(voter_id))
    if verified and not voter.wallet_address:
        raise HTTPException(status_code=400, detail="Voter must bind a wallet address before verification")
    voter = _or_404(await store.set_verified(voter_id, verified))
    logger.info(f"Voter {voter_id} verified={verified} by admin {admin_id}")
    return _voter_out(voter)


@app.post("/voters/{voter_id}/voting-enabled", response_model=VoterOut)
async def set_voting_enabled(voter_id: UUID, data: VotingEnabledRequest,
                             admin_id: UUID = Depends(require_admin),
                             store: VoterStore = Depends(get_store)):
    voter = _or_404(await store.set_voting_enabled(voter_id, data.enabled))
    logger.info(f"Voter {voter_id} voting_enabled={data.enabled} by admin {admin_id}")
    return _voter_out(voter)


@app.delete("/voters/{voter_id}/wallet", response_model=VoterOut)
async def reset_wallet(voter_id: UUID,
                       admin_id: UUID = Depends(require_admin),
                       store: VoterStore = Depends(get_store)):
    """Unbind the wallet and clear verification so the voter re-verifies."""
    voter = _or_404(await store.reset_wallet(voter_id))
    logger.info(f"Wallet reset for voter {voter_id} by admin {admin_id}")
    return _voter_out(voter)
