"""
Bearer token helpers for the identity_access bounded context.

Why: Keep cryptographic validation of access tokens outside the web adapter so
we can unit test it independently. The enrollment core only ever receives the
resulting `IdentityClaim`; it never sees raw credentials.

Security: Tokens are HMAC-signed JWTs. Verification pins the configured
algorithm (no `alg` negotiation), requires `exp`, and checks the issuer when
one is configured.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
import time

from jose import jwt
from jose.exceptions import JOSEError

from .domain import IdentityClaim


class TokenVerificationError(Exception):
    """Raised when an access token fails verification."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


@dataclass(frozen=True)
class TokenConfig:
    secret: str
    algorithm: str = "HS256"
    issuer: Optional[str] = None
    ttl_seconds: int = 3600


MAX_CLOCK_SKEW_SECONDS = 5  # Allow minimal skew between servers


def bearer_token(header_value: Optional[str]) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    if not header_value:
        return None
    scheme, _, token = header_value.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


def issue_access_token(claim: IdentityClaim, cfg: TokenConfig, *, now: Optional[float] = None) -> str:
    """Sign an access token for `claim` (dev tooling and tests)."""
    issued_at = int(now if now is not None else time.time())
    payload: Dict[str, object] = dict(claim.to_claims())
    payload["iat"] = issued_at
    payload["exp"] = issued_at + cfg.ttl_seconds
    if cfg.issuer:
        payload["iss"] = cfg.issuer
    return jwt.encode(payload, cfg.secret, algorithm=cfg.algorithm)


def verify_access_token(token: str, cfg: TokenConfig) -> IdentityClaim:
    """Validate an access token and return the caller identity.

    Raises
    ------
    TokenVerificationError:
        `invalid_token` when signature, expiry or issuer do not check out;
        `invalid_claims` when a well-signed token does not describe a valid
        identity (unknown role, student without id).
    """
    options = {"verify_aud": False, "leeway": MAX_CLOCK_SKEW_SECONDS, "require_exp": True}
    try:
        claims = jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.algorithm],
            issuer=cfg.issuer,
            options=options,
        )
    except JOSEError as exc:
        raise TokenVerificationError("invalid_token") from exc
    try:
        return IdentityClaim.from_claims(claims)
    except ValueError as exc:
        raise TokenVerificationError("invalid_claims") from exc
