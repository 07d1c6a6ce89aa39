from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .models import Identity
from .security import CredentialVerifier, TokenGate

_security = HTTPBearer(auto_error=False)


def get_token_gate(request: Request) -> TokenGate:
    return request.app.state.token_gate


def get_credential_verifier(request: Request) -> CredentialVerifier:
    return request.app.state.credential_verifier


# PUBLIC_INTERFACE
async def require_identity(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_security),
    gate: TokenGate = Depends(get_token_gate),
) -> Identity:
    """
    Enforce bearer authentication and return the caller's Identity.

    Runs before the route reads the request body, so unauthenticated callers
    never reach RPC dispatch.

    Raises:
        HTTPException(401) if the token is missing, malformed, forged or
        expired. The response does not say which.
    """
    identity = gate.authenticate(creds.credentials if creds else None)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
