from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..auth import get_credential_verifier
from ..result import Err
from ..schemas import LoginRequest, LoginResponse, UserOut
from ..security import CredentialVerifier

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in",
    description="Exchange a username and password for a signed, time-limited bearer token.",
    responses={
        200: {"description": "Login successful"},
        401: {"description": "Incorrect username or password"},
    },
)
def login(payload: LoginRequest, verifier: CredentialVerifier = Depends(get_credential_verifier)):
    """
    Authenticate and issue a token. Unknown usernames and wrong passwords get
    the same 401 body.
    """
    outcome = verifier.authenticate(payload.username, payload.password)
    if isinstance(outcome, Err):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"message": outcome.error.message},
        )
    issued = outcome.value
    return LoginResponse(user=UserOut(**issued.identity), token=issued.token)
