"""ID token signature and claim verification."""

from collections.abc import Callable
from datetime import datetime, timezone

import requests
from jwt.algorithms import RSAAlgorithm

from .config import VerifierConfig
from .decoder import decode
from .errors import (
    AlgorithmMismatch,
    InvalidAudience,
    InvalidIssuer,
    MalformedToken,
    SignatureInvalid,
    SubjectMissing,
    TokenExpired,
    TokenInvalid,
    TokenMissing,
    TokenNotYetValid,
)
from .keys import KeyCache
from .models import Claims, DecodedToken, VerifiedResult
from .transport import RequestsTransport

SIGNING_ALGORITHM = "RS256"
EMULATOR_ALGORITHM = "none"

_RS256 = RSAAlgorithm(RSAAlgorithm.SHA256)


def extract_bearer_token(header_value: str | None) -> str:
    """Extract the token from an "Authorization: Bearer <token>" header value.

    Raises:
        TokenMissing: If the header value is empty
        TokenInvalid: If the value is not a bearer credential
    """
    if not header_value:
        raise TokenMissing()

    parts = header_value.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise TokenInvalid("Expected 'Bearer <token>' format")

    token = parts[1]
    if not token:
        raise TokenInvalid("Token is empty")

    return token


class TokenVerifier:
    """Verify Firebase ID tokens.

    A verifier is safe to share between threads; create one per project and
    reuse it so that the public key cache is shared too.

    Verification performs:
    1. Structural decoding of the JWT
    2. Algorithm check (RS256, or "none" in emulator mode)
    3. Public key lookup by "kid" (skipped in emulator mode)
    4. RS256 signature check (skipped in emulator mode)
    5. Claim checks, in order: exp, iat, auth_time, aud, iss, sub

    `session` is only used to build the default key cache, so it cannot be
    combined with `key_cache`.
    """

    def __init__(
        self,
        config: VerifierConfig,
        key_cache: KeyCache | None = None,
        clock: Callable[[], datetime] | None = None,
        session: requests.Session | None = None,
    ):
        if key_cache is not None and session is not None:
            raise ValueError("Pass either key_cache or session, not both")

        self.config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.key_cache = key_cache or KeyCache(
            config, transport=RequestsTransport(session), clock=self._clock
        )

    def verify(self, token: str) -> VerifiedResult:
        """Verify an ID token.

        Args:
            token: Encoded JWT

        Returns:
            Identity from the verified token claims

        Raises:
            AuthError: The specific subclass names the check that failed
        """
        decoded = decode(token)
        self._check_algorithm(decoded)
        if not self.config.emulator_mode:
            self._check_signature(decoded)
        self._check_claims(decoded.claims)
        return VerifiedResult.from_claims(decoded.claims)

    def verify_from_header(self, header_value: str | None) -> VerifiedResult:
        """Verify the bearer token in an Authorization header value."""
        return self.verify(extract_bearer_token(header_value))

    def _check_algorithm(self, decoded: DecodedToken):
        expected = (
            EMULATOR_ALGORITHM if self.config.emulator_mode else SIGNING_ALGORITHM
        )
        if decoded.header.alg != expected:
            raise AlgorithmMismatch(expected, decoded.header.alg)

    def _check_signature(self, decoded: DecodedToken):
        kid = decoded.header.kid
        if not kid:
            raise MalformedToken("Missing 'kid' in JWT header")

        signing_key = self.key_cache.resolve_key(kid)
        if not _RS256.verify(
            decoded.signed_bytes, signing_key.public_key, decoded.signature
        ):
            raise SignatureInvalid()

    def _check_claims(self, claims: Claims):
        now = self._clock().timestamp()
        skew = self.config.clock_skew_tolerance

        if claims.expires_at < now - skew:
            raise TokenExpired(claims.expires_at_datetime)

        if claims.issued_at > now + skew:
            raise TokenNotYetValid("iat")

        if claims.auth_time > now + skew:
            raise TokenNotYetValid("auth_time")

        if claims.audience != self.config.expected_audience:
            raise InvalidAudience(self.config.expected_audience, claims.audience)

        if claims.issuer != self.config.expected_issuer:
            raise InvalidIssuer(self.config.expected_issuer, claims.issuer)

        if not claims.subject:
            raise SubjectMissing()
