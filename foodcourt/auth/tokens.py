import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Any


class SessionTokenError(Exception):
    pass


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(signing_input: bytes, secret: str) -> str:
    return _b64url_encode(hmac.new(secret.encode(), signing_input, hashlib.sha256).digest())


def issue_session_token(payload: dict[str, Any], secret: str, expires_in_s: int) -> str:
    """Sign a cookie payload as an HS256 JWT carrying an ``exp`` claim."""
    header = {"alg": "HS256", "typ": "JWT"}
    claims = {**payload, "exp": int(time.time()) + expires_in_s}

    encoded_header = _b64url_encode(json.dumps(header, separators=(",", ":")).encode())
    encoded_payload = _b64url_encode(json.dumps(claims, separators=(",", ":")).encode())
    signing_input = f"{encoded_header}.{encoded_payload}".encode()
    return f"{encoded_header}.{encoded_payload}.{_sign(signing_input, secret)}"


def decode_session_token(token: str, secret: str) -> dict[str, Any]:
    try:
        encoded_header, encoded_payload, encoded_signature = token.split(".")
    except ValueError as exc:
        raise SessionTokenError("Malformed session token") from exc

    signing_input = f"{encoded_header}.{encoded_payload}".encode()
    if not hmac.compare_digest(_sign(signing_input, secret), encoded_signature):
        raise SessionTokenError("Invalid session token signature")

    try:
        payload = json.loads(_b64url_decode(encoded_payload))
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise SessionTokenError("Malformed session token payload") from exc

    if not isinstance(payload, dict):
        raise SessionTokenError("Malformed session token payload")
    exp = payload.get("exp")
    if not isinstance(exp, int) or exp < int(time.time()):
        raise SessionTokenError("Expired session token")

    return payload
