"""Verification of Firebase ID tokens."""

__version__ = "0.1.0"

from .config import Settings, VerifierConfig  # noqa: E402
from .errors import (  # noqa: E402
    AlgorithmMismatch,
    AuthError,
    InvalidAudience,
    InvalidIssuer,
    KeyFetchFailed,
    KeyNotFound,
    MalformedToken,
    SignatureInvalid,
    SubjectMissing,
    TokenExpired,
    TokenInvalid,
    TokenMissing,
    TokenNotYetValid,
)
from .keys import KeyCache  # noqa: E402
from .models import VerifiedResult  # noqa: E402
from .verifier import TokenVerifier, extract_bearer_token  # noqa: E402

__all__ = [
    "AlgorithmMismatch",
    "AuthError",
    "InvalidAudience",
    "InvalidIssuer",
    "KeyCache",
    "KeyFetchFailed",
    "KeyNotFound",
    "MalformedToken",
    "Settings",
    "SignatureInvalid",
    "SubjectMissing",
    "TokenExpired",
    "TokenInvalid",
    "TokenMissing",
    "TokenNotYetValid",
    "TokenVerifier",
    "VerifiedResult",
    "VerifierConfig",
    "extract_bearer_token",
]
