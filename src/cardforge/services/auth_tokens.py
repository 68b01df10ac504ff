"""
Signed bearer tokens identifying the owner of a request.

A token is ``<payload>.<signature>`` where the payload is the base64url form of
``sub=<user id>&exp=<unix seconds>`` and the signature is the hex
HMAC-SHA256 of the encoded payload under the shared secret.
"""

import base64
import binascii
import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl, urlencode

MAX_USER_ID_LENGTH = 64


@dataclass(frozen=True)
class AuthenticatedUser:
    """Owner identity recovered from a valid token."""

    user_id: str
    expires_at: int


class TokenAuthError(Exception):
    """Raised when a bearer token cannot be trusted."""

    pass


def issue_token(user_id: str, secret: str, ttl_seconds: int, now: Optional[float] = None) -> str:
    """
    Create a signed token for ``user_id`` valid for ``ttl_seconds``.

    Example:
        >>> token = issue_token("user-1", "s3cret", 3600)
        >>> validate_token(token, "s3cret").user_id
        'user-1'
    """
    if not user_id or len(user_id) > MAX_USER_ID_LENGTH:
        raise ValueError(f"user_id must be 1-{MAX_USER_ID_LENGTH} characters")
    if not secret:
        raise ValueError("secret must not be empty")

    issued = int(now if now is not None else time.time())
    payload = urlencode({"sub": user_id, "exp": issued + ttl_seconds})
    encoded = base64.urlsafe_b64encode(payload.encode()).decode().rstrip("=")
    return f"{encoded}.{_sign(encoded, secret)}"


def validate_token(token: str, secret: str, now: Optional[float] = None) -> AuthenticatedUser:
    """
    Verify the signature and expiry of ``token``.

    Raises:
        TokenAuthError: If the token is empty, malformed, tampered with or expired
    """
    if not token:
        raise TokenAuthError("Token is empty")

    encoded, separator, received_signature = token.partition(".")
    if not separator or not encoded or not received_signature:
        raise TokenAuthError("Malformed token")

    if not hmac.compare_digest(_sign(encoded, secret), received_signature):
        raise TokenAuthError("Invalid signature: token may have been tampered with")

    try:
        padded = encoded + "=" * (-len(encoded) % 4)
        params = dict(parse_qsl(base64.urlsafe_b64decode(padded).decode()))
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise TokenAuthError("Malformed token payload") from exc

    user_id = params.get("sub")
    expiry = params.get("exp")
    if not user_id or not expiry or not expiry.isdigit():
        raise TokenAuthError("Token payload missing required fields (sub, exp)")

    current = int(now if now is not None else time.time())
    if int(expiry) <= current:
        raise TokenAuthError("Token has expired")

    return AuthenticatedUser(user_id=user_id, expires_at=int(expiry))


def _sign(encoded_payload: str, secret: str) -> str:
    return hmac.new(
        key=secret.encode(),
        msg=encoded_payload.encode(),
        digestmod=hashlib.sha256,
    ).hexdigest()
