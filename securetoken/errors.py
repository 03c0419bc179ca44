"""Errors raised while extracting and verifying ID tokens.

Every failure of the verification pipeline is a subclass of `AuthError`, so
callers can catch the whole family or branch on a single kind. Each kind
carries only the fields it needs and a stable `error_code` for responses.
"""

from datetime import datetime


class AuthError(Exception):
    """Base class for ID token verification failures."""

    error_code = "AUTH_VERIFICATION_FAILED"


class TokenMissing(AuthError):
    """Raised when the Authorization header is empty or absent."""

    error_code = "AUTH_TOKEN_MISSING"

    def __init__(self):
        super().__init__("Authorization header is missing")


class TokenInvalid(AuthError):
    """Raised when the Authorization header is not a bearer credential."""

    error_code = "AUTH_TOKEN_INVALID"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Token is invalid: {reason}")


class MalformedToken(AuthError):
    """Raised when a token cannot be decoded into header and claims."""

    error_code = "AUTH_TOKEN_INVALID"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Malformed token: {reason}")


class AlgorithmMismatch(AuthError):
    """Raised when the token header names an algorithm other than the expected one."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Unsupported algorithm: {actual}. Expected {expected}")


class KeyNotFound(AuthError):
    """Raised when the issuer does not publish a key with the token's kid."""

    def __init__(self, kid: str):
        self.kid = kid
        super().__init__(f"Public key not found for kid: {kid}")


class KeyFetchFailed(AuthError):
    """Raised when the issuer's public keys cannot be fetched or parsed."""

    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(f"Failed to fetch public keys: {cause}")


class SignatureInvalid(AuthError):
    """Raised when the token signature does not match the signing key."""

    def __init__(self):
        super().__init__("Token signature is invalid")


class TokenExpired(AuthError):
    """Raised when `exp` lies in the past."""

    error_code = "AUTH_TOKEN_EXPIRED"

    def __init__(self, expired_at: datetime):
        self.expired_at = expired_at
        super().__init__(f"Token expired at {expired_at.isoformat()}")


class TokenNotYetValid(AuthError):
    """Raised when `iat` or `auth_time` lies in the future."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Token claim '{field}' is in the future")


class InvalidAudience(AuthError):
    """Raised when `aud` is not the configured project."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Invalid audience. Expected: {expected}, got: {actual}")


class InvalidIssuer(AuthError):
    """Raised when `iss` is not the project's Secure Token issuer."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Invalid issuer. Expected: {expected}, got: {actual}")


class SubjectMissing(AuthError):
    """Raised when the `sub` claim is empty."""

    error_code = "AUTH_USER_NOT_FOUND"

    def __init__(self):
        super().__init__("User ID (sub claim) is empty or missing")
