"""Data access for voter records."""
from uuid import UUID

from univote.shared.database import Database
from univote.shared.records import VOTER_COLUMNS, Voter


class VoterStore:

    async def create_voter(self, data, password_hash: str) -> Voter:
        """Insert a voter; raises asyncpg.UniqueViolationError on a taken email or student id."""
        async with Database.transaction() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO voters (full_name, email, phone, student_id, password_hash, wallet_address)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING {VOTER_COLUMNS}
                """,
                data.full_name.strip(), data.email.lower(), data.phone.strip(),
                data.student_id.strip(), password_hash, data.wallet_address,
            )
        return Voter.from_row(row)

    async def get_voter(self, voter_id: UUID) -> Voter | None:
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                f"SELECT {VOTER_COLUMNS} FROM voters WHERE id = $1", voter_id,
            )
        return Voter.from_row(row) if row else None

    async def list_voters(self, verified: bool | None = None) -> list[Voter]:
        async with Database.connection() as conn:
            if verified is None:
                rows = await conn.fetch(
                    f"SELECT {VOTER_COLUMNS} FROM voters ORDER BY created_at DESC",
                )
            else:
                rows = await conn.fetch(
                    f"SELECT {VOTER_COLUMNS} FROM voters WHERE verified = $1 ORDER BY created_at DESC",
                    verified,
                )
        return [Voter.from_row(r) for r in rows]

    async def update_profile(self, voter_id: UUID, changes: dict) -> Voter | None:
        fields = [f for f in ("full_name", "phone") if f in changes]
        if not fields:
            return await self.get_voter(voter_id)
        assignments = ", ".join(f"{f} = ${i}" for i, f in enumerate(fields, start=2))
        async with Database.transaction() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE voters SET {assignments}, updated_at = now()
                WHERE id = $1
                RETURNING {VOTER_COLUMNS}
                """,
                voter_id, *(changes[f] for f in fields),
            )
        return Voter.from_row(row) if row else None

    async def bind_wallet(self, voter_id: UUID, wallet_address: str) -> Voter | None:
        """Set the wallet only when none is bound. Returns None if the slot was taken."""
        async with Database.transaction() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE voters SET wallet_address = $2, updated_at = now()
                WHERE id = $1 AND wallet_address IS NULL
                RETURNING {VOTER_COLUMNS}
                """,
                voter_id, wallet_address,
            )
        return Voter.from_row(row) if row else None

    async def reset_wallet(self, voter_id: UUID) -> Voter | None:
        """Clear the wallet; the voter must be verified again before voting."""
        async with Database.transaction() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE voters SET wallet_address = NULL, verified = FALSE, updated_at = now()
                WHERE id = $1
                RETURNING {VOTER_COLUMNS}
                """,
                voter_id,
            )
        return Voter.from_row(row) if row else None

    async def set_verified(self, voter_id: UUID, verified: bool) -> Voter | None:
        async with Database.transaction() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE voters SET verified = $2, updated_at = now()
                WHERE id = $1
                RETURNING {VOTER_COLUMNS}
                """,
                voter_id, verified,
            )
        return Voter.from_row(row) if row else None

    async def set_voting_enabled(self, voter_id: UUID, enabled: bool) -> Voter | None:
        async with Database.transaction() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE voters SET voting_enabled = $2, updated_at = now()
                WHERE id = $1
                RETURNING {VOTER_COLUMNS}
                """,
                voter_id, enabled,
            )
        return Voter.from_row(row) if row else None
