"""Credential lookups for admins and voters."""
from uuid import UUID

from univote.shared.database import Database


class AuthStore:

    async def create_admin(self, email: str, password_hash: str) -> UUID:
        """Raises asyncpg.UniqueViolationError when the email is taken."""
        async with Database.transaction() as conn:
            return await conn.fetchval(
                "INSERT INTO admins (email, password_hash) VALUES ($1, $2) RETURNING id",
                email, password_hash,
            )

    async def admin_credentials(self, email: str) -> dict | None:
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                "SELECT id, password_hash FROM admins WHERE email = $1", email,
            )
        return dict(row) if row else None

    async def voter_credentials(self, email: str) -> dict | None:
        async with Database.connection() as conn:
            row = await conn.fetchrow(
                "SELECT id, password_hash FROM voters WHERE email = $1", email,
            )
        return dict(row) if row else None

    async def touch_last_login(self, voter_id: UUID) -> None:
        async with Database.connection() as conn:
            await conn.execute(
                "UPDATE voters SET last_login = now() WHERE id = $1", voter_id,
            )
