"""Token, key and result models."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from pydantic import BaseModel, ConfigDict, Field

# Seconds since the epoch, up to the end of year 9999
Timestamp = Annotated[int, Field(ge=0, le=253402300799)]


def _utc(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class BaseTokenModel(BaseModel):
    model_config = ConfigDict(frozen=True, use_attribute_docstrings=True)


class Header(BaseTokenModel):
    """JOSE header of an ID token."""

    alg: str
    """
    Signature algorithm, "RS256" for production tokens, "none" for emulator tokens
    """

    kid: str | None = None
    """
    Identifier of the issuer key that signed the token
    """

    typ: str | None = None


class ProviderInfo(BaseTokenModel):
    """Provider specific claims found under the "firebase" claim."""

    sign_in_provider: str | None = None
    """
    Provider used to sign in, e.g. "password", "google.com", "apple.com"
    """

    sign_in_second_factor: str | None = None
    second_factor_identifier: str | None = None

    tenant: str | None = None
    """
    Tenant ID for multi-tenant projects
    """

    identities: dict[str, list[str]] = Field(default_factory=dict)
    """
    Map of provider IDs to the user's identifiers at that provider
    """


class Claims(BaseTokenModel):
    """Claims carried in the payload of an ID token.

    Field names follow Python conventions, the wire names are used as aliases.
    Custom claims are ignored.
    """

    expires_at: Timestamp = Field(alias="exp")
    issued_at: Timestamp = Field(alias="iat")
    audience: str = Field(alias="aud")
    issuer: str = Field(alias="iss")
    subject: str = Field(alias="sub")
    auth_time: Timestamp

    email: str | None = None
    email_verified: bool | None = None
    name: str | None = None
    picture: str | None = None
    phone_number: str | None = None
    provider_info: ProviderInfo | None = Field(default=None, alias="firebase")

    @property
    def uid(self) -> str:
        return self.subject

    @property
    def expires_at_datetime(self) -> datetime:
        return _utc(self.expires_at)

    @property
    def issued_at_datetime(self) -> datetime:
        return _utc(self.issued_at)

    @property
    def auth_time_datetime(self) -> datetime:
        return _utc(self.auth_time)


class DecodedToken(BaseTokenModel):
    """Structurally decoded, not yet verified, ID token."""

    header: Header
    claims: Claims
    signature: bytes
    """
    Raw signature bytes, empty for unsigned emulator tokens
    """

    signed_bytes: bytes
    """
    Exact "<header>.<payload>" bytes of the original token the signature covers
    """


@dataclass(frozen=True)
class SigningKey:
    id: str
    public_key: RSAPublicKey


@dataclass(frozen=True)
class KeySetEntry:
    """A fetched key set, replaced as a whole on refresh."""

    keys: Mapping[str, SigningKey]
    fetched_at: float
    fresh_until: float

    def __post_init__(self):
        if self.fresh_until < self.fetched_at:
            raise ValueError("fresh_until must not precede fetched_at")

    def is_fresh(self, now: float) -> bool:
        return now < self.fresh_until


class VerifiedResult(BaseTokenModel):
    """Identity established by a successfully verified ID token."""

    uid: str
    """
    Firebase user ID, taken from the "sub" claim
    """

    email: str | None = None
    email_verified: bool = False
    name: str | None = None
    picture: str | None = None
    phone_number: str | None = None
    auth_time: datetime
    issued_at: datetime
    expires_at: datetime
    sign_in_provider: str | None = None
    provider_info: ProviderInfo | None = None
    """
    Raw provider claims, for callers that need tenant or identities
    """

    @classmethod
    def from_claims(cls, claims: Claims) -> "VerifiedResult":
        provider_info = claims.provider_info
        return cls(
            uid=claims.uid,
            email=claims.email,
            email_verified=bool(claims.email_verified),
            name=claims.name,
            picture=claims.picture,
            phone_number=claims.phone_number,
            auth_time=claims.auth_time_datetime,
            issued_at=claims.issued_at_datetime,
            expires_at=claims.expires_at_datetime,
            sign_in_provider=provider_info.sign_in_provider if provider_info else None,
            provider_info=provider_info,
        )
