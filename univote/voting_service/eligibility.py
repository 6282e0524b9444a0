"""
Eligibility gate: may this voter cast a ballot in this election right now?

This is a courtesy pre-check that gives fast, specific feedback. It races
with concurrent requests from the same voter; the unique constraint on
votes(voter_id, election_id) is what actually prevents a second ballot.
"""
from datetime import datetime
from uuid import UUID

from univote.shared.errors import (
    DuplicateVote, ElectionNotActive, VoterNotVerified, VotingDisabled,
)
from univote.shared.records import Election, ElectionStatus, Voter


async def check_eligibility(store, voter: Voter, election: Election,
                            now: datetime | None = None) -> None:
    """Raise the first failing eligibility error, in a fixed order. No side effects."""
    status = election.status(now)
    if status is not ElectionStatus.ACTIVE:
        raise ElectionNotActive(
            "Voting has not started for this election"
            if status is ElectionStatus.UPCOMING
            else "Voting has ended for this election"
        )

    if not voter.verified:
        raise VoterNotVerified()

    if await store.has_voted(voter.id, election.id):
        raise DuplicateVote()

    if voter.voting_enabled is False:
        raise VotingDisabled()


async def get_vote_status(store, voter_id: UUID, election_id: UUID) -> dict:
    """Has this voter already voted here? Read-only."""
    row = await store.get_vote_status(voter_id, election_id)
    if row is None:
        return {"has_voted": False, "voted_at": None, "candidate_name": None}
    return {
        "has_voted": True,
        "voted_at": row["voted_at"],
        "candidate_name": row["candidate_name"],
    }
