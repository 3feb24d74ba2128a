"""
Stateless session tokens.

This module implements JSON Web Tokens signed with HMAC‑SHA256 and
base64url encoding.  A token embeds the user's id, email and role
together with ``iat``/``nbf``/``exp`` timestamps (UNIX seconds) and the
configured issuer and audience.  Verification pins the algorithm,
issuer and audience, so a token minted for another service or one that
announces a different ``alg`` in its header is rejected even if its
signature happens to match.

Every verification failure raises a subclass of
``core.errors.TokenError`` (``TokenExpired``, ``TokenMalformed``,
``TokenNotYetValid``, ``TokenInvalid``) so callers can react to the
failure kind without inspecting messages.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .config import Settings
from .errors import (
    ConfigurationError,
    TokenExpired,
    TokenInvalid,
    TokenMalformed,
    TokenNotYetValid,
)
from ..schemas.user import Role

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
SUPPORTED_ALGORITHMS = {"HS256": hashlib.sha256}

Clock = Callable[[], int]


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _json_segment(segment: str) -> Dict[str, Any]:
    """Decode one base64url JSON segment into a dict or raise ``TokenMalformed``."""
    try:
        value = json.loads(_b64_url_decode(segment).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise TokenMalformed()
    if not isinstance(value, dict):
        raise TokenMalformed()
    return value


def _is_timestamp(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    # json.loads accepts NaN and Infinity, which never compare as expired.
    return math.isfinite(value)


def strip_bearer(token: str) -> str:
    """Remove a leading ``Bearer `` prefix if present."""
    if token.startswith(BEARER_PREFIX):
        return token[len(BEARER_PREFIX):]
    return token


@dataclass(frozen=True)
class TokenPayload:
    """Verified claims of a session token."""

    user_id: int
    email: str
    role: Role
    issued_at: int
    expires_at: int


class TokenService:
    """Issue, verify and refresh signed session tokens.

    Parameters
    ----------
    secret : str
        Symmetric signing key.  An empty secret raises
        ``ConfigurationError`` immediately, so the application fails at
        startup rather than on the first login.
    issuer, audience : str
        Values written to ``iss``/``aud`` and required on verification.
    expires_in : int
        Token lifetime in seconds.
    algorithm : str
        Signing algorithm; only ``HS256`` is implemented.
    clock : callable, optional
        Returns the current UNIX time in seconds.  Defaults to
        ``time.time``; tests inject a controllable clock.
    """

    def __init__(
        self,
        secret: str,
        issuer: str,
        audience: str,
        expires_in: int,
        algorithm: str = "HS256",
        clock: Optional[Clock] = None,
    ) -> None:
        if not secret:
            raise ConfigurationError("JWT_SECRET_KEY is required for authentication")
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ConfigurationError(f"Unsupported token algorithm: {algorithm}")
        if expires_in <= 0:
            raise ConfigurationError("Token lifetime must be positive")
        self._secret = secret.encode("utf-8")
        self.issuer = issuer
        self.audience = audience
        self.expires_in = expires_in
        self.algorithm = algorithm
        self._clock = clock or (lambda: int(time.time()))

    @classmethod
    def from_settings(cls, settings: Settings, clock: Optional[Clock] = None) -> "TokenService":
        return cls(
            secret=settings.jwt_secret_key,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            expires_in=settings.access_token_expire_minutes * 60,
            algorithm=settings.jwt_algorithm,
            clock=clock,
        )

    def now(self) -> int:
        return int(self._clock())

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def _sign(self, signing_input: bytes) -> bytes:
        digestmod = SUPPORTED_ALGORITHMS[self.algorithm]
        return hmac.new(self._secret, signing_input, digestmod).digest()

    def _encode(self, claims: Dict[str, Any]) -> str:
        header = {"alg": self.algorithm, "typ": "JWT"}
        header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
        payload_b64 = _b64_url_encode(json.dumps(claims, separators=(",", ":")).encode("utf-8"))
        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        signature_b64 = _b64_url_encode(self._sign(signing_input))
        return f"{header_b64}.{payload_b64}.{signature_b64}"

    def _claims(self, user_id: int, email: str, role: Role, issued_at: int, expires_at: int) -> Dict[str, Any]:
        return {
            "userId": user_id,
            "email": email,
            "role": Role(role).value,
            "iat": issued_at,
            "nbf": issued_at,
            "exp": expires_at,
            "iss": self.issuer,
            "aud": self.audience,
        }

    def issue(self, user_id: int, email: str, role: Role) -> str:
        """Create a signed token for the given user.

        Clients send it back as ``Authorization: Bearer <token>``.
        """
        issued_at = self.now()
        token = self._encode(
            self._claims(user_id, email, role, issued_at, issued_at + self.expires_in)
        )
        logger.info("Issued token for user %s", user_id)
        return token

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    @staticmethod
    def _split(token: str) -> Tuple[str, str, str]:
        if not isinstance(token, str):
            raise TokenMalformed()
        parts = strip_bearer(token.strip()).split(".")
        if len(parts) != 3 or not all(parts):
            raise TokenMalformed()
        return parts[0], parts[1], parts[2]

    def verify(self, token: str) -> TokenPayload:
        """Verify a token and return its payload.

        Signature, algorithm, expiry, not-before, issuer, audience and
        the presence of the user claims are all checked; the first
        failing check determines the error raised.
        """
        header_b64, payload_b64, signature_b64 = self._split(token)
        header = _json_segment(header_b64)
        if header.get("alg") != self.algorithm:
            raise TokenInvalid()

        try:
            actual_sig = _b64_url_decode(signature_b64)
        except (binascii.Error, ValueError):
            raise TokenMalformed()
        expected_sig = self._sign(f"{header_b64}.{payload_b64}".encode("utf-8"))
        # Constant‑time comparison to prevent timing attacks
        if not hmac.compare_digest(expected_sig, actual_sig):
            raise TokenInvalid()

        claims = _json_segment(payload_b64)
        now = self.now()
        exp = claims.get("exp")
        if not _is_timestamp(exp):
            raise TokenInvalid()
        if exp <= now:
            raise TokenExpired()
        nbf = claims.get("nbf")
        if nbf is not None:
            if not _is_timestamp(nbf):
                raise TokenInvalid()
            if nbf > now:
                raise TokenNotYetValid()
        if claims.get("iss") != self.issuer or claims.get("aud") != self.audience:
            raise TokenInvalid()

        user_id = claims.get("userId")
        email = claims.get("email")
        if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(email, str):
            raise TokenInvalid()
        try:
            role = Role(claims.get("role"))
        except ValueError:
            raise TokenInvalid()
        iat = claims.get("iat")
        return TokenPayload(
            user_id=user_id,
            email=email,
            role=role,
            issued_at=int(iat) if _is_timestamp(iat) else 0,
            expires_at=int(exp),
        )

    def decode_unsafe(self, token: str) -> Optional[Dict[str, Any]]:
        """Return the claims without checking signature or expiry.

        Never use the result for authorization.  Returns ``None`` when
        the input cannot be decoded.
        """
        try:
            _, payload_b64, _ = self._split(token)
            return _json_segment(payload_b64)
        except TokenMalformed:
            logger.debug("Could not decode token")
            return None

    def is_expired(self, token: str) -> bool:
        """True unless the token carries a numeric ``exp`` in the future."""
        claims = self.decode_unsafe(token)
        if not claims or not _is_timestamp(claims.get("exp")):
            return True
        return claims["exp"] <= self.now()

    def refresh(self, token: str) -> str:
        """Issue a new token for a token that still verifies.

        Expired tokens are not refreshable.  The new token carries the
        same user claims and an expiry strictly later than the old one.
        """
        payload = self.verify(token)
        issued_at = self.now()
        expires_at = max(issued_at + self.expires_in, payload.expires_at + 1)
        new_token = self._encode(
            self._claims(payload.user_id, payload.email, payload.role, issued_at, expires_at)
        )
        logger.info("Refreshed token for user %s", payload.user_id)
        return new_token
