"""
Data access for the voting service.

Every read here goes straight to PostgreSQL. Nothing in this module is
cached: the duplicate check and the vote insert must see the live table.
"""
from datetime import datetime
from uuid import UUID

from univote.shared.database import Database
from univote.shared.records import (
    CANDIDATE_COLUMNS, ELECTION_COLUMNS, VOTE_COLUMNS, VOTER_COLUMNS,
    Candidate, Election, Vote, Voter,
)


class VotingStore:

    async def get_voter(self, voter_id: UUID) -> Voter | None:
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                f"SELECT {VOTER_COLUMNS} FROM voters WHERE id = $1", voter_id,
            )
        return Voter.from_row(row) if row else None

    async def get_election(self, election_id: UUID) -> Election | None:
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                f"SELECT {ELECTION_COLUMNS} FROM elections WHERE id = $1", election_id,
            )
        return Election.from_row(row) if row else None

    async def get_candidate(self, candidate_id: UUID) -> Candidate | None:
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                f"SELECT {CANDIDATE_COLUMNS} FROM candidates WHERE id = $1", candidate_id,
            )
        return Candidate.from_row(row) if row else None

    async def has_voted(self, voter_id: UUID, election_id: UUID) -> bool:
        async with Database.connection() as conn:
            return await conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM votes WHERE voter_id = $1 AND election_id = $2)",
                voter_id, election_id,
            )

    async def get_vote_status(self, voter_id: UUID, election_id: UUID) -> dict | None:
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                """
                SELECT v.voted_at, c.full_name AS candidate_name
                FROM votes v
                JOIN candidates c ON c.id = v.candidate_id
                WHERE v.voter_id = $1 AND v.election_id = $2
                """,
                voter_id, election_id,
            )
        return dict(row) if row else None

    async def bind_wallet(self, voter_id: UUID, wallet_address: str) -> bool:
        """Bind a wallet to a voter that has none. Returns False if one was already bound."""
        async with Database.connection() as conn:
            result = await conn.execute(
                """
                UPDATE voters SET wallet_address = $2, updated_at = now()
                WHERE id = $1 AND wallet_address IS NULL
                """,
                voter_id, wallet_address,
            )
        return result == "UPDATE 1"

    async def insert_vote(self, voter_id: UUID, candidate_id: UUID, election_id: UUID,
                          wallet_address: str, vote_hash: str, voted_at: datetime) -> Vote:
        """Insert one ballot; raises asyncpg.UniqueViolationError on a second vote."""
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO votes
                    (voter_id, candidate_id, election_id, wallet_address, vote_hash, voted_at)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING {VOTE_COLUMNS}
                """,
                voter_id, candidate_id, election_id, wallet_address, vote_hash, voted_at,
            )
        return Vote.from_row(row)

    async def get_receipt(self, vote_hash: str) -> dict | None:
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                """
                SELECT v.vote_hash, v.voted_at, v.election_id,
                       e.title AS election_title, c.full_name AS candidate_name
                FROM votes v
                JOIN elections e ON e.id = v.election_id
                JOIN candidates c ON c.id = v.candidate_id
                WHERE v.vote_hash = $1
                """,
                vote_hash,
            )
        return dict(row) if row else None
