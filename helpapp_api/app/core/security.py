"""
Password hashing and the request authorization gate.

Passwords are hashed with PBKDF2‑HMAC‑SHA256 and a per-password random
salt.  Hashing is deliberately slow, so the async variants hand the
work to the thread pool and the event loop keeps serving other
requests meanwhile.

The gate is a pair of FastAPI dependencies.  ``authenticate`` requires
a valid bearer token and attaches the caller's ``Identity`` to
``request.state``; ``require_role`` builds on it to demand one specific
role.  Endpoints compose them with ``Depends`` so the request passes
body validation, authentication and authorization, in that order,
before the handler runs.
"""

import hashlib
import hmac
import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from .errors import Forbidden, TokenError, Unauthenticated
from .tokens import TokenService
from ..schemas.user import Role

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2‑HMAC with SHA‑256.

    A 16‑byte random salt is generated for each password.  The
    resulting string contains the salt and hash separated by a ``$``
    (salt in hex, then hash in hex).
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored salt+hash string.

    Malformed stored values never match.
    """
    try:
        salt_hex, hash_hex = hashed_password.split("$", 1)
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except (AttributeError, ValueError):
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)


async def hash_password_async(password: str) -> str:
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    return await run_in_threadpool(verify_password, plain_password, hashed_password)


# ---------------------------------------------------------------------------
# Authorization gate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as proven by a verified token."""

    user_id: int
    role: Role
    email: str


bearer_scheme = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def authenticate(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """Dependency that requires a valid bearer token.

    A missing token raises ``Unauthenticated``; a token that fails
    verification re-raises the token service's error, which is itself
    an ``Unauthenticated`` whose code names the failure kind.  The
    store is never consulted.
    """
    if credentials is None:
        raise Unauthenticated("Authentication token missing")
    try:
        payload = tokens.verify(credentials.credentials)
    except TokenError as exc:
        logger.warning("Rejected token on %s: %s", request.url.path, exc.code)
        raise
    identity = Identity(user_id=payload.user_id, role=payload.role, email=payload.email)
    request.state.identity = identity
    return identity


def require_role(role: Role) -> Callable[..., Identity]:
    """Dependency factory to enforce that the caller holds ``role``.

    Use in endpoints via ``Depends(require_role(Role.CLIENT))``.
    """

    def _role_dependency(identity: Identity = Depends(authenticate)) -> Identity:
        if identity.role != role:
            raise Forbidden()
        return identity

    return _role_dependency
