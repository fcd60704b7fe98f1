from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from storefront.core.config import settings
from storefront.services.backend import BackendClient, BackendError, eq, get_backend

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AdminPrincipal:
    """Back-office user authenticated by the hosted auth service."""
    user_id: str
    email: Optional[str]
    access_token: str


def decode_access_token(token: str) -> dict:
    # Tokens from the hosted auth service carry the "authenticated" audience
    return jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=[settings.ALGORITHM],
        options={"verify_aud": False},
    )


def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    backend: BackendClient = Depends(get_backend),
) -> AdminPrincipal:
    """Signed-in user holding the admin role in user_roles"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError:
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception
    if payload.get("role") != "authenticated":
        raise HTTPException(status_code=403, detail="Admin access required")

    # Every signed-in shopper is "authenticated"; admins also have a user_roles row
    try:
        roles = backend.with_token(credentials.credentials).select(
            "user_roles", "role", {"user_id": eq(user_id), "role": eq("admin")}, limit=1
        )
    except BackendError:
        raise HTTPException(status_code=502, detail="Could not verify admin role")
    if not roles:
        raise HTTPException(status_code=403, detail="Admin access required")

    return AdminPrincipal(
        user_id=user_id,
        email=payload.get("email"),
        access_token=credentials.credentials,
    )
