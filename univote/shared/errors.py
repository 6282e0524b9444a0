"""
Typed outcomes for the vote-casting protocol.

Eligibility errors are expected, user-facing and final. TransientError is the
only outcome a voter should simply retry. Services render every VoteError
through ``vote_error_handler`` so the message reaches the UI verbatim.
"""
import asyncio

import asyncpg
from fastapi import Request
from fastapi.responses import JSONResponse

# Database and network failures.
TRANSIENT_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


class VoteError(Exception):
    code = "vote_error"
    message = "Unable to process vote"
    status_code = 400
    retryable = False

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.code, "retryable": self.retryable}


# -- Eligibility --------------------------------------------------------------

class ElectionNotActive(VoteError):
    code = "election_not_active"
    message = "Voting is not currently active for this election"
    status_code = 409


class VoterNotVerified(VoteError):
    code = "voter_not_verified"
    message = "Please verify your account to vote"
    status_code = 403


class DuplicateVote(VoteError):
    code = "duplicate_vote"
    message = "You have already voted in this election"
    status_code = 409


class VotingDisabled(VoteError):
    code = "voting_disabled"
    message = "Your voting privileges have been disabled"
    status_code = 403


# -- Request problems -----------------------------------------------------------

class WalletRequired(VoteError):
    code = "wallet_required"
    message = "Please connect your wallet to vote"
    status_code = 400
    retryable = True


class VoterNotFound(VoteError):
    code = "voter_not_found"
    message = "Voter not found"
    status_code = 404


class ElectionNotFound(VoteError):
    code = "election_not_found"
    message = "Election not found"
    status_code = 404


class CandidateNotFound(VoteError):
    code = "candidate_not_found"
    message = "Candidate not found in this election"
    status_code = 404


# -- Infrastructure -------------------------------------------------------------

class TransientError(VoteError):
    code = "transient"
    message = "Failed to record your vote. Please try again."
    status_code = 503
    retryable = True


async def vote_error_handler(request: Request, exc: VoteError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
