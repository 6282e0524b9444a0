"""Data access for elections and candidates."""
from uuid import UUID

from univote.shared.database import Database
from univote.shared.records import CANDIDATE_COLUMNS, ELECTION_COLUMNS, Candidate, Election

_CANDIDATE_FIELDS = (
    "full_name", "email", "department", "course", "year_of_study",
    "manifesto", "image_url", "video_url",
)
_ELECTION_FIELDS = ("title", "description", "start_date", "end_date", "is_active")


def _prefixed(columns: str, alias: str) -> str:
    return ", ".join(f"{alias}.{c.strip()}" for c in columns.split(","))


class CandidateHasVotes(Exception):
    """Raised when deleting a candidate that already received votes."""


class ElectionStore:

    async def list_elections(self, active_only: bool = False) -> list[dict]:
        """Elections with candidate and vote counts, newest start first."""
        where = (
            "WHERE e.is_active AND e.start_date <= now() AND e.end_date >= now()"
            if active_only else ""
        )
        async with Database.connection() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_prefixed(ELECTION_COLUMNS, 'e')},
                       COALESCE(c.candidate_count, 0) AS candidate_count,
                       COALESCE(v.total_votes, 0) AS total_votes
                FROM elections e
                LEFT JOIN (
                    SELECT election_id, COUNT(*) AS candidate_count
                    FROM candidates GROUP BY election_id
                ) c ON c.election_id = e.id
                LEFT JOIN (
                    SELECT election_id, COUNT(*) AS total_votes
                    FROM votes GROUP BY election_id
                ) v ON v.election_id = e.id
                {where}
                ORDER BY e.start_date DESC
                """
            )
        return [
            {
                "election": Election.from_row({k: r[k] for k in Election.model_fields}),
                "candidate_count": r["candidate_count"],
                "total_votes": r["total_votes"],
            }
            for r in rows
        ]

    async def get_election(self, election_id: UUID) -> Election | None:
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                f"SELECT {ELECTION_COLUMNS} FROM elections WHERE id = $1", election_id,
            )
        return Election.from_row(row) if row else None

    async def list_candidates(self, election_id: UUID) -> list[Candidate]:
        async with Database.connection() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {CANDIDATE_COLUMNS} FROM candidates
                WHERE election_id = $1 ORDER BY full_name, id
                """,
                election_id,
            )
        return [Candidate.from_row(r) for r in rows]

    async def count_votes(self, election_id: UUID) -> int:
        async with Database.connection() as conn:
            return await conn.fetchval(
                "SELECT COUNT(*) FROM votes WHERE election_id = $1", election_id,
            )

    async def create_election(self, admin_id: UUID, data) -> Election:
        """Insert the election and its initial candidates in one transaction."""
        async with Database.transaction() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO elections (title, description, start_date, end_date, is_active, created_by)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING {ELECTION_COLUMNS}
                """,
                data.title, data.description, data.start_date, data.end_date,
                data.is_active, admin_id,
            )
            election = Election.from_row(row)
            for candidate in data.candidates:
                await self._insert_candidate(conn, election.id, candidate)
        return election

    async def update_election(self, election_id: UUID, changes: dict) -> Election | None:
        fields = [f for f in _ELECTION_FIELDS if f in changes]
        if not fields:
            return await self.get_election(election_id)
        assignments = ", ".join(f"{f} = ${i}" for i, f in enumerate(fields, start=2))
        async with Database.transaction() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE elections SET {assignments}, updated_at = now()
                WHERE id = $1
                RETURNING {ELECTION_COLUMNS}
                """,
                election_id, *(changes[f] for f in fields),
            )
        return Election.from_row(row) if row else None

    async def delete_election(self, election_id: UUID) -> bool:
        """Delete an election; candidates and votes go with it."""
        async with Database.transaction() as conn:
            result = await conn.execute("DELETE FROM elections WHERE id = $1", election_id)
        return result == "DELETE 1"

    async def add_candidate(self, election_id: UUID, data) -> Candidate:
        async with Database.transaction() as conn:
            return await self._insert_candidate(conn, election_id, data)

    async def get_candidate(self, candidate_id: UUID) -> Candidate | None:
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                f"SELECT {CANDIDATE_COLUMNS} FROM candidates WHERE id = $1", candidate_id,
            )
        return Candidate.from_row(row) if row else None

    async def update_candidate(self, candidate_id: UUID, changes: dict) -> Candidate | None:
        fields = [f for f in _CANDIDATE_FIELDS if f in changes]
        if not fields:
            return await self.get_candidate(candidate_id)
        assignments = ", ".join(f"{f} = ${i}" for i, f in enumerate(fields, start=2))
        async with Database.transaction() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE candidates SET {assignments}, updated_at = now()
                WHERE id = $1
                RETURNING {CANDIDATE_COLUMNS}
                """,
                candidate_id, *(changes[f] for f in fields),
            )
        return Candidate.from_row(row) if row else None

    async def delete_candidate(self, candidate_id: UUID) -> bool:
        """Delete a candidate that has no votes; raises CandidateHasVotes otherwise."""
        async with Database.transaction() as conn:
            votes = await conn.fetchval(
                "SELECT COUNT(*) FROM votes WHERE candidate_id = $1", candidate_id,
            )
            if votes:
                raise CandidateHasVotes()
            result = await conn.execute("DELETE FROM candidates WHERE id = $1", candidate_id)
        return result == "DELETE 1"

    @staticmethod
    async def _insert_candidate(conn, election_id: UUID, data) -> Candidate:
        row = await conn.fetchrow(
            f"""
            INSERT INTO candidates
                (election_id, full_name, email, department, course,
                 year_of_study, manifesto, image_url, video_url)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            RETURNING {CANDIDATE_COLUMNS}
            """,
            election_id, data.full_name.strip(), data.email, data.department,
            data.course, data.year_of_study, data.manifesto, data.image_url, data.video_url,
        )
        return Candidate.from_row(row)
