"""Security utilities: hosted auth provider token validation.

Users sign in with the hosted auth provider; this service only verifies the
bearer tokens it issues. Shared-secret (HS256) tokens are checked against
``auth_jwt_secret``; when ``auth_jwks_url`` is configured, asymmetric tokens
are checked against the provider's published key set.
"""

import time
from dataclasses import dataclass

import httpx
import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from finance_tracker.config import settings
from finance_tracker.core.exceptions import ForbiddenError, UnauthorizedError

logger = structlog.get_logger()

# ── JWKS cache ────────────────────────────────────
_jwks_cache: dict | None = None
_jwks_cache_time: float = 0
JWKS_CACHE_TTL = 300  # 5 minutes

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity extracted from a verified access token."""

    id: str
    email: str | None = None
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


async def _fetch_jwks(force: bool = False) -> dict:
    """Fetch the JSON Web Key Set from the auth provider."""
    global _jwks_cache, _jwks_cache_time

    now = time.time()
    if not force and _jwks_cache and (now - _jwks_cache_time) < JWKS_CACHE_TTL:
        return _jwks_cache

    async with httpx.AsyncClient() as client:
        response = await client.get(settings.auth_jwks_url, timeout=10)
        response.raise_for_status()
        _jwks_cache = response.json()
        _jwks_cache_time = now
        logger.info("jwks_fetched", url=settings.auth_jwks_url)
        return _jwks_cache


def _find_signing_key(jwks: dict, kid: str) -> dict | None:
    """Find the signing key matching the token's kid."""
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return key
    return None


async def _resolve_key(token: str) -> tuple[dict | str, list[str]]:
    """Return (key, allowed algorithms) for the given token."""
    if not settings.auth_jwks_url:
        return settings.auth_jwt_secret, [settings.auth_jwt_algorithm]

    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError as e:
        raise UnauthorizedError("Invalid token header") from e

    algorithm = unverified_header.get("alg", "")
    if algorithm.startswith("HS"):
        return settings.auth_jwt_secret, [settings.auth_jwt_algorithm]

    kid = unverified_header.get("kid")
    if not kid:
        raise UnauthorizedError("Token missing key ID")

    jwks = await _fetch_jwks()
    signing_key = _find_signing_key(jwks, kid)
    if not signing_key:
        # Key may have rotated
        jwks = await _fetch_jwks(force=True)
        signing_key = _find_signing_key(jwks, kid)

    if not signing_key:
        raise UnauthorizedError("Unable to find matching signing key")
    return signing_key, [algorithm]


async def decode_access_token(token: str) -> dict:
    """Decode and validate an access token issued by the auth provider."""
    key, algorithms = await _resolve_key(token)

    options = {"verify_at_hash": False}
    kwargs = {}
    if settings.auth_issuer:
        kwargs["issuer"] = settings.auth_issuer
    if settings.auth_jwt_audience:
        kwargs["audience"] = settings.auth_jwt_audience
    else:
        options["verify_aud"] = False

    try:
        return jwt.decode(token, key, algorithms=algorithms, options=options, **kwargs)
    except JWTError as e:
        raise UnauthorizedError("Invalid or expired token") from e


def user_from_claims(payload: dict) -> AuthenticatedUser:
    """Build the request identity from verified token claims."""
    subject = payload.get("sub")
    if not subject:
        raise UnauthorizedError("Token missing subject")

    role = (
        (payload.get("app_metadata") or {}).get("role")
        or (payload.get("user_metadata") or {}).get("role")
    )
    return AuthenticatedUser(id=subject, email=payload.get("email"), role=role)


# ── Auth Dependencies ─────────────────────────────
security_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
) -> AuthenticatedUser:
    """FastAPI dependency: validate the bearer token and return its identity."""
    if credentials is None:
        raise UnauthorizedError()

    payload = await decode_access_token(credentials.credentials)
    return user_from_claims(payload)


async def require_admin(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """FastAPI dependency: only admins may pass."""
    if not current_user.is_admin:
        raise ForbiddenError("Admin privileges required")
    return current_user
