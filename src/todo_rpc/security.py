"""
Password verification and stateless bearer tokens.

Responsibilities:
- Hash and verify passwords with Argon2id (argon2-cffi)
- Issue HS256-signed JWTs (PyJWT) carrying the user id and name
- Verify token signature and expiry without any session table
"""
from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from .models import Identity
from .repositories import UserRepository
from .result import Err, Ok, Result

logger = logging.getLogger(__name__)

AUTH_FAILURE_MESSAGE = "Incorrect username or password"

TOKEN_ALGORITHM = "HS256"

# exp is compared against the injected clock instead of the wall clock
_DECODE_OPTIONS = {"verify_exp": False, "verify_iat": False, "require": ["exp", "iat"]}


@dataclass(frozen=True)
class IssuedToken:
    token: str
    identity: Identity
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class AuthFailure:
    message: str = AUTH_FAILURE_MESSAGE


# PUBLIC_INTERFACE
class TokenSigner:
    """
    Sign and verify bearer tokens with a shared secret.

    The clock is injectable so expiry can be tested without waiting.
    """

    def __init__(
        self,
        secret: str,
        expires_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        self._key = secret
        self._expires_seconds = expires_seconds
        self._clock = clock

    def issue(self, identity: Identity) -> IssuedToken:
        issued_at = int(self._clock())
        expires_at = issued_at + self._expires_seconds
        payload: Dict[str, Any] = {
            "id": identity["id"],
            "username": identity["username"],
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._key, algorithm=TOKEN_ALGORITHM)
        return IssuedToken(token=token, identity=identity, issued_at=issued_at, expires_at=expires_at)

    def verify(self, token: str) -> Optional[Identity]:
        """
        Return the Identity encoded in ``token``, or None when the token is
        malformed, carries a bad signature, or has expired. The reason is
        not reported.
        """
        try:
            payload = jwt.decode(token, self._key, algorithms=[TOKEN_ALGORITHM], options=_DECODE_OPTIONS)
        except jwt.InvalidTokenError:
            return None

        exp = payload["exp"]
        user_id = payload.get("id")
        username = payload.get("username")
        if not isinstance(exp, int) or isinstance(exp, bool) or exp <= self._clock():
            return None
        if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(username, str):
            return None
        return {"id": user_id, "username": username}


# PUBLIC_INTERFACE
class TokenGate:
    """Resolve a presented bearer credential to an Identity, or None."""

    def __init__(self, signer: TokenSigner) -> None:
        self._signer = signer

    def authenticate(self, credentials: Optional[str]) -> Optional[Identity]:
        if not credentials or not credentials.strip():
            return None
        identity = self._signer.verify(credentials.strip())
        if identity is None:
            logger.info("Rejected bearer token")
        return identity


# PUBLIC_INTERFACE
class CredentialVerifier:
    """
    Check a username/password pair against stored Argon2 hashes and issue a
    token on success.

    Unknown usernames are verified against a throwaway hash so both failure
    paths cost one hash verification and return the same AuthFailure.
    """

    def __init__(
        self,
        users: UserRepository,
        signer: TokenSigner,
        hasher: Optional[PasswordHasher] = None,
    ) -> None:
        self._users = users
        self._signer = signer
        self._hasher = hasher or PasswordHasher()
        self._dummy_hash = self._hasher.hash(secrets.token_urlsafe(16))

    def hash_password(self, password: str) -> str:
        return self._hasher.hash(password)

    def _matches(self, encoded_hash: str, password: str) -> bool:
        try:
            return self._hasher.verify(encoded_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def authenticate(self, username: str, password: str) -> Result[IssuedToken, AuthFailure]:
        user = self._users.get_by_username(username)
        if user is None:
            self._matches(self._dummy_hash, password)
            logger.info("Login failed for user %r", username)
            return Err(AuthFailure())
        if not self._matches(user["password_hash"], password):
            logger.info("Login failed for user %r", username)
            return Err(AuthFailure())

        issued = self._signer.issue({"id": user["id"], "username": user["username"]})
        logger.info("Login succeeded for user %r", username)
        return Ok(issued)

    def seed_user(self, username: str, password: str) -> bool:
        """Create the user with a fresh hash unless it already exists."""
        created = self._users.create_if_absent(username, self.hash_password(password))
        if created:
            logger.info("Default user %r created.", username)
        else:
            logger.info("Default user %r already exists.", username)
        return created
