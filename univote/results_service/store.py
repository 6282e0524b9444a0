"""Read-only data access for the results service."""
from uuid import UUID

from univote.shared.database import Database
from univote.shared.records import ELECTION_COLUMNS, Election


class ResultsStore:

    async def get_election(self, election_id: UUID) -> Election | None:
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                f"SELECT {ELECTION_COLUMNS} FROM elections WHERE id = $1", election_id,
            )
        return Election.from_row(row) if row else None

    async def candidate_tallies(self, election_id: UUID) -> list[dict]:
        """One row per candidate in the election with its vote count (0 if none)."""
        async with Database.connection() as conn:
            rows = await conn.fetch(
                """
                SELECT c.id AS candidate_id, c.full_name, c.department, c.course,
                       c.year_of_study, c.image_url,
                       COUNT(v.id) AS vote_count
                FROM candidates c
                LEFT JOIN votes v ON v.candidate_id = c.id AND v.election_id = c.election_id
                WHERE c.election_id = $1
                GROUP BY c.id, c.full_name, c.department, c.course,
                         c.year_of_study, c.image_url
                """,
                election_id,
            )
        return [dict(r) for r in rows]

    async def eligible_voter_count(self) -> int:
        """Turnout denominator: every verified voter."""
        async with Database.connection() as conn:
            return await conn.fetchval("SELECT COUNT(*) FROM voters WHERE verified = TRUE")

    async def hourly_vote_counts(self, election_id: UUID) -> list[tuple]:
        async with Database.connection() as conn:
            rows = await conn.fetch(
                """
                SELECT DATE_TRUNC('hour', voted_at AT TIME ZONE 'UTC') AS hour,
                       COUNT(*) AS vote_count
                FROM votes
                WHERE election_id = $1
                GROUP BY hour
                ORDER BY hour
                """,
                election_id,
            )
        return [(r["hour"], r["vote_count"]) for r in rows]

    async def dashboard_stats(self) -> dict:
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                """
                SELECT
                    (SELECT COUNT(*) FROM voters) AS total_voters,
                    (SELECT COUNT(*) FROM voters WHERE verified) AS verified_voters,
                    (SELECT COUNT(*) FROM voters WHERE voting_enabled) AS voting_enabled_voters,
                    (SELECT COUNT(*) FROM voters
                      WHERE wallet_address IS NOT NULL AND wallet_address <> '') AS voters_with_wallets,
                    (SELECT COUNT(*) FROM elections) AS total_elections,
                    (SELECT COUNT(*) FROM elections
                      WHERE is_active AND start_date <= now() AND end_date >= now()) AS active_elections,
                    (SELECT COUNT(*) FROM candidates) AS total_candidates,
                    (SELECT COUNT(*) FROM votes) AS total_votes,
                    (SELECT COUNT(DISTINCT voter_id) FROM votes) AS unique_voters
                """
            )
        return dict(row)
