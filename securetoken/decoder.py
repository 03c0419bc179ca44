"""Structural decoding of ID tokens.

Decoding establishes only that a token is shaped like an ID token. Nothing
returned here is trustworthy until `securetoken.verifier` has checked the
signature and the claims.
"""

import base64
import binascii
import re

from pydantic import BaseModel, ValidationError

from .errors import MalformedToken
from .models import Claims, DecodedToken, Header

_BASE64URL = re.compile(r"[A-Za-z0-9_-]*")


def base64url_decode(segment: str, component: str) -> bytes:
    """Decode an unpadded URL-safe base64 token segment."""
    if not _BASE64URL.fullmatch(segment):
        raise MalformedToken(f"Invalid characters in base64url {component}")

    padded = segment + "=" * (-len(segment) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except binascii.Error as e:
        raise MalformedToken(f"Failed to decode base64url {component}") from e


def _parse(model: type[BaseModel], data: bytes, component: str):
    try:
        return model.model_validate_json(data)
    except ValidationError as e:
        raise MalformedToken(f"Failed to parse JWT {component}: {e}") from e


def decode(token: str) -> DecodedToken:
    """Split a JWT into header, claims and signature.

    Args:
        token: JWT string ("header.payload.signature")

    Returns:
        Decoded token, with the signed bytes taken verbatim from `token`

    Raises:
        MalformedToken: If the token is not a three part JWT, a part is not
            base64url, or the header or payload do not hold the expected JSON
    """
    # Keep empty parts: emulator tokens are unsigned ("header.payload.")
    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedToken(
            f"JWT must have 3 parts separated by '.', got {len(parts)}"
        )

    header_part, payload_part, signature_part = parts

    header = _parse(Header, base64url_decode(header_part, "header"), "header")
    claims = _parse(Claims, base64url_decode(payload_part, "payload"), "payload")
    signature = base64url_decode(signature_part, "signature")

    return DecodedToken(
        header=header,
        claims=claims,
        signature=signature,
        signed_bytes=f"{header_part}.{payload_part}".encode("ascii"),
    )
