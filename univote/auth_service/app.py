"""
Auth Service — credentials and access tokens for admins and voters.

Endpoint groups:
  1. Admin auth   — register, login
  2. Voter auth   — login (records last_login)
  3. Tokens       — verify a token and return its claims

On startup this service applies the idempotent schema script, so it should
be deployed first.

Runs on port 5001.
"""

import logging
from contextlib import asynccontextmanager

import asyncpg
from fastapi import Depends, FastAPI, HTTPException

from univote.shared.database import Database
from univote.shared.schemas import (
    AdminRegisterRequest, AuthResponse, HealthResponse, LoginRequest,
    TokenVerifyRequest, TokenVerifyResponse,
)
from univote.shared.security import (
    ROLE_ADMIN, ROLE_VOTER, TokenError, create_access_token,
    decode_access_token, hash_password, verify_password,
)
from univote.auth_service.store import AuthStore

logger = logging.getLogger("auth-service")


# -- Lifespan -----------------------------------------------------------------
@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    await Database.get_pool()
    try:
        await Database.apply_schema()
    except Exception as e:
        # Log and keep serving; DB errors will surface on the requests that hit them.
        logger.error(f"Schema bootstrap failed at startup: {e}")

    yield

    await Database.close()


app = FastAPI(
    title="Auth Service",
    description="Admin and voter authentication",
    lifespan=lifespan,
)


def get_store() -> AuthStore:
    return AuthStore()


@app.get("/health", response_model=HealthResponse)
async def health():
    return {"status": "healthy", "service": "auth"}


# ==========================================================================
# 1. ADMIN AUTH
# ==========================================================================

@app.post("/admins/register", response_model=AuthResponse, status_code=201)
async def register_admin(data: AdminRegisterRequest, store: AuthStore = Depends(get_store)):
    try:
        admin_id = await store.create_admin(data.email.lower(), hash_password(data.password))
    except asyncpg.UniqueViolationError:
        raise HTTPException(status_code=409, detail="Email already registered")
    logger.info(f"Admin {admin_id} registered")
    return {"message": "Admin registered successfully", "user_id": admin_id, "role": ROLE_ADMIN}


@app.post("/admins/login", response_model=AuthResponse)
async def login_admin(data: LoginRequest, store: AuthStore = Depends(get_store)):
    row = await store.admin_credentials(data.email.lower())
    if not row or not verify_password(data.password, row["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = create_access_token(row["id"], ROLE_ADMIN, data.email.lower())
    return {"token": token, "user_id": row["id"], "role": ROLE_ADMIN}


# ==========================================================================
# 2. VOTER AUTH
# ==========================================================================

@app.post("/login", response_model=AuthResponse)
async def login_voter(data: LoginRequest, store: AuthStore = Depends(get_store)):
    row = await store.voter_credentials(data.email.lower())
    if not row or not verify_password(data.password, row["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    await store.touch_last_login(row["id"])
    token = create_access_token(row["id"], ROLE_VOTER, data.email.lower())
    return {"token": token, "user_id": row["id"], "role": ROLE_VOTER}


# ==========================================================================
# 3. TOKENS
# ==========================================================================

@app.post("/verify", response_model=TokenVerifyResponse)
async def verify_token(data: TokenVerifyRequest):
    try:
        payload = decode_access_token(data.token)
    except TokenError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return {
        "valid": True,
        "user_id": payload["sub"],
        "role": payload["role"],
        "email": payload.get("email"),
    }
