"""FastAPI dependencies that turn a bearer token into a voter or admin id."""
from uuid import UUID

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from univote.shared.security import ROLE_ADMIN, ROLE_VOTER, TokenError, decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def current_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return decode_access_token(credentials.credentials)
    except TokenError as e:
        raise HTTPException(status_code=401, detail=str(e))


def require_voter(claims: dict = Depends(current_claims)) -> UUID:
    if claims["role"] != ROLE_VOTER:
        raise HTTPException(status_code=403, detail="Voter access required")
    return UUID(claims["sub"])


def require_admin(claims: dict = Depends(current_claims)) -> UUID:
    if claims["role"] != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return UUID(claims["sub"])
