"""
Token signing and request authentication.

This module implements a lightweight JSON Web Token (JWT) mechanism
using HMAC-SHA256 signatures and base64url encoding.  Tokens embed
arbitrary claims plus issued-at (``iat``) and expiry (``exp``)
timestamps.  Verification never raises on bad input: it returns either
the claims or a ``VerificationError`` naming why the token was
rejected.

``get_current_user`` is the FastAPI dependency guarding every product
route.  It resolves the caller identity from the token and nowhere
else.  The identity embedded in a token is trusted until the token
expires; it is not checked against the user table on each request.
"""

import base64
import enum
import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from .config import Settings
from .exceptions import InvalidToken, MissingToken, SigningError

logger = logging.getLogger(__name__)

_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64_url_encode(data: bytes) -> str:
    """Base64-url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64-url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    """Compute HMAC-SHA256 signature of a message using the given secret."""
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


class TokenErrorKind(str, enum.Enum):
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


@dataclass(frozen=True)
class VerificationError:
    """Why a token was rejected."""

    kind: TokenErrorKind
    detail: str = ""


@dataclass(frozen=True)
class CallerIdentity:
    """The authenticated caller, as resolved from a verified token."""

    user_id: str
    user: Dict[str, Any] = field(default_factory=dict)


def create_access_token(
    data: Dict[str, Any],
    secret_key: str,
    expires_delta: Optional[int] = None,
    now: Optional[int] = None,
) -> str:
    """Create a signed JWT token with the given payload.

    The payload is extended with ``iat`` and ``exp`` (UNIX timestamps).
    The token is a string of the form ``header.payload.signature``,
    each part base64url encoded.

    Parameters
    ----------
    data : dict
        Claims to embed in the token.  Must be JSON serialisable.
    secret_key : str
        HMAC secret.  An empty key raises ``SigningError``.
    expires_delta : Optional[int]
        Lifetime in seconds.  Defaults to two hours.
    now : Optional[int]
        Issue time; defaults to the current time.

    Returns
    -------
    str
        A signed JWT token.
    """
    if not secret_key:
        raise SigningError()
    issued_at = int(time.time()) if now is None else int(now)
    to_encode = dict(data)
    to_encode["iat"] = issued_at
    to_encode["exp"] = issued_at + (expires_delta if expires_delta is not None else 2 * 60 * 60)
    try:
        payload_json = json.dumps(to_encode, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise SigningError() from exc
    header_b64 = _b64_url_encode(json.dumps(_HEADER, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(payload_json.encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_access_token(
    token: Any, secret_key: str, now: Optional[int] = None
) -> Union[Dict[str, Any], VerificationError]:
    """Verify and decode a JWT token.

    The signature is checked first, then the ``exp`` claim.  Any token
    that cannot be parsed is reported as ``INVALID_SIGNATURE``.

    Returns
    -------
    dict or VerificationError
        The decoded claims if valid, else the reason for rejection.
    """
    if not isinstance(token, str) or not secret_key:
        return VerificationError(TokenErrorKind.INVALID_SIGNATURE, "no token or key")
    parts = token.split(".")
    if len(parts) != 3:
        return VerificationError(TokenErrorKind.INVALID_SIGNATURE, "malformed token")
    header_b64, payload_b64, signature_b64 = parts
    try:
        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        expected_sig = _sign(signing_input, secret_key)
        actual_sig = _b64_url_decode(signature_b64)
        # Constant-time comparison to prevent timing attacks
        if not hmac.compare_digest(expected_sig, actual_sig):
            return VerificationError(TokenErrorKind.INVALID_SIGNATURE, "signature mismatch")
        header = json.loads(_b64_url_decode(header_b64).decode("utf-8"))
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (ValueError, TypeError):
        return VerificationError(TokenErrorKind.INVALID_SIGNATURE, "undecodable token")

    if not isinstance(header, dict) or header.get("alg") != _HEADER["alg"]:
        return VerificationError(TokenErrorKind.INVALID_SIGNATURE, "unsupported algorithm")
    if not isinstance(data, dict):
        return VerificationError(TokenErrorKind.INVALID_SIGNATURE, "payload is not an object")
    exp = data.get("exp")
    if not isinstance(exp, int) or isinstance(exp, bool):
        return VerificationError(TokenErrorKind.INVALID_SIGNATURE, "missing exp claim")
    current = int(time.time()) if now is None else int(now)
    if current >= exp:
        return VerificationError(TokenErrorKind.EXPIRED, "token expired")
    return data


class TokenService:
    """Issues and verifies tokens with the application's signing key."""

    def __init__(self, settings: Settings):
        if not settings.secret_key:
            raise SigningError("Signing key is not configured")
        self._secret_key = settings.secret_key
        self._lifetime = settings.access_token_expire_minutes * 60

    def issue(self, claim: Dict[str, Any]) -> str:
        return create_access_token(claim, self._secret_key, expires_delta=self._lifetime)

    def verify(self, token: Any) -> Union[Dict[str, Any], VerificationError]:
        return decode_access_token(token, self._secret_key)


def identity_from_claims(claims: Dict[str, Any]) -> Optional[CallerIdentity]:
    """Build the caller identity from verified claims, if they carry one."""
    user_id = claims.get("sub")
    if not isinstance(user_id, str) or not user_id:
        return None
    user = claims.get("user")
    return CallerIdentity(user_id=user_id, user=user if isinstance(user, dict) else {})


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    tokens: TokenService = Depends(get_token_service),
) -> CallerIdentity:
    """Dependency that resolves the authenticated caller.

    A missing ``Authorization`` header is rejected with 403.  A header
    whose token fails verification, or whose claims carry no identity,
    is rejected with 401.  On success the identity is also stored on
    ``request.state.caller``.
    """
    if not authorization:
        raise MissingToken()

    # "Bearer <token>": only the second word is used.
    parts = authorization.split(" ")
    token = parts[1] if len(parts) > 1 else None
    result = tokens.verify(token)
    if isinstance(result, VerificationError):
        logger.warning(
            "Rejected token on %s %s: %s", request.method, request.url.path, result.kind.value
        )
        raise InvalidToken()

    identity = identity_from_claims(result)
    if identity is None:
        logger.warning("Token without identity claim on %s %s", request.method, request.url.path)
        raise InvalidToken()
    request.state.caller = identity
    return identity
