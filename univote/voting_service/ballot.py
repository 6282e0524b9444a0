"""
Ballot writer — the only code path that creates a vote row.

Sequence:
    1. Load voter, election and candidate (candidate must belong to the election)
    2. Eligibility gate (status, verification, preflight duplicate, voting flag)
    3. Resolve the wallet: bound wallet wins, otherwise bind the supplied one
    4. Compute the display-only vote hash
    5. Insert; the (voter_id, election_id) unique constraint is authoritative
    6. Schedule the confirmation email (best effort, never fails the vote)

Nothing is written before step 3, and step 3 only ever fills an empty wallet
slot, so any failure up to the insert leaves the voter free to retry.
"""
import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable
from uuid import UUID

import asyncpg

from univote.shared.errors import (
    TRANSIENT_ERRORS, CandidateNotFound, DuplicateVote, ElectionNotFound,
    TransientError, VoteError, VoterNotFound, WalletRequired,
)
from univote.shared.records import Candidate, Election, Vote, Voter, utcnow
from univote.shared.security import generate_vote_hash
from univote.voting_service.eligibility import check_eligibility

logger = logging.getLogger("voting-service")

Notifier = Callable[[Voter, Candidate, Election, Vote], Awaitable[None]]

# Strong references to in-flight notification tasks.
_background_tasks: set[asyncio.Task] = set()


@dataclass(frozen=True)
class CastResult:
    vote_id: UUID
    vote_hash: str
    voted_at: datetime
    candidate_name: str


@contextmanager
def _transient_on_failure(action: str):
    """Map infrastructure failures to TransientError; typed outcomes pass through."""
    try:
        yield
    except VoteError:
        raise
    except TRANSIENT_ERRORS as e:
        logger.error(f"Persistence failure while {action}: {e!r}")
        raise TransientError() from e


async def cast_vote(store, voter_id: UUID, candidate_id: UUID, election_id: UUID,
                    wallet_address: str | None = None, *,
                    notify: Notifier | None = None,
                    now: datetime | None = None) -> CastResult:
    with _transient_on_failure("loading ballot context"):
        voter = await store.get_voter(voter_id)
        if voter is None:
            raise VoterNotFound()
        election = await store.get_election(election_id)
        if election is None:
            raise ElectionNotFound()
        candidate = await store.get_candidate(candidate_id)
        if candidate is None or candidate.election_id != election.id:
            raise CandidateNotFound()

        await check_eligibility(store, voter, election, now)

        wallet = await _resolve_wallet(store, voter, wallet_address)

    voted_at = now or utcnow()
    vote_hash = generate_vote_hash(voter.id, candidate.id, election.id, wallet, voted_at)

    with _transient_on_failure("inserting vote"):
        try:
            # A ballot already sent to the database must not be abandoned
            # because the caller went away; the voter re-queries vote status.
            vote = await asyncio.shield(store.insert_vote(
                voter.id, candidate.id, election.id, wallet, vote_hash, voted_at,
            ))
        except asyncpg.UniqueViolationError:
            logger.info(f"Duplicate vote rejected by constraint: voter={voter.id} election={election.id}")
            raise DuplicateVote()

    logger.info(f"Vote recorded: vote={vote.id} election={election.id}")

    if notify is not None:
        _schedule_notification(notify, voter, candidate, election, vote)

    return CastResult(
        vote_id=vote.id,
        vote_hash=vote.vote_hash,
        voted_at=vote.voted_at,
        candidate_name=candidate.full_name,
    )


async def _resolve_wallet(store, voter: Voter, supplied: str | None) -> str:
    supplied = (supplied or "").strip() or None

    if voter.wallet_address:
        if supplied and supplied.lower() != voter.wallet_address.lower():
            logger.warning(f"Ignoring supplied wallet for voter {voter.id}: a wallet is already bound")
        return voter.wallet_address

    if supplied is None:
        raise WalletRequired()

    if not await store.bind_wallet(voter.id, supplied):
        # Bound concurrently by another request; use whatever won.
        current = await store.get_voter(voter.id)
        if current is None or not current.wallet_address:
            raise VoterNotFound()
        return current.wallet_address

    logger.info(f"Wallet bound for voter {voter.id}")
    return supplied


def _schedule_notification(notify: Notifier, voter, candidate, election, vote) -> None:
    task = asyncio.create_task(_notify_safely(notify, voter, candidate, election, vote))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


async def _notify_safely(notify: Notifier, voter, candidate, election, vote) -> None:
    try:
        await notify(voter, candidate, election, vote)
    except Exception as e:
        logger.error(f"Failed to send vote confirmation to {voter.email}: {e}")
