"""Verifier configuration."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ISSUER_PREFIX = "https://securetoken.google.com/"

PUBLIC_KEYS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/"
    "securetoken@system.gserviceaccount.com"
)


class VerifierConfig(BaseModel):
    """Immutable parameters for ID token verification.

    A single instance is shared by every verification, so it is frozen.
    """

    project_id: str = Field(min_length=1)
    """
    Firebase / Google Cloud project ID. Tokens must carry it as "aud".
    """

    clock_skew_tolerance: float = Field(default=0.0, ge=0)
    """
    Leeway in seconds applied to "exp", "iat" and "auth_time"
    """

    emulator_mode: bool = False
    """
    Accept unsigned ("alg": "none") tokens issued by the Auth emulator
    """

    fetch_timeout: float = Field(default=10.0, gt=0)
    """
    Timeout in seconds for fetching the issuer's public keys
    """

    public_keys_url: str = PUBLIC_KEYS_URL
    """
    Endpoint publishing the issuer's X.509 signing certificates
    """

    default_key_max_age: float = Field(default=3600.0, ge=0)
    """
    Key freshness in seconds used when the key endpoint sends no max-age
    """

    model_config = ConfigDict(frozen=True, use_attribute_docstrings=True)

    @property
    def expected_audience(self) -> str:
        return self.project_id

    @property
    def expected_issuer(self) -> str:
        return f"{ISSUER_PREFIX}{self.expected_audience}"

    @classmethod
    def emulator(cls, project_id: str, **kwargs) -> "VerifierConfig":
        """Configuration for tokens issued by the Auth emulator."""
        return cls(project_id=project_id, emulator_mode=True, **kwargs)


class Settings(BaseSettings):
    """Verifier settings loaded from environment variables

    e.g. SECURETOKEN_PROJECT_ID -> project_id
    """

    project_id: str
    """
    Firebase / Google Cloud project ID
    """

    clock_skew_tolerance: float = 0.0
    """
    Leeway in seconds for time-bound claims
    """

    emulator: bool = False
    """
    Verify tokens issued by the Auth emulator instead of production tokens
    """

    fetch_timeout: float = 10.0
    """
    Timeout in seconds for public key requests
    """

    public_keys_url: str = PUBLIC_KEYS_URL
    """
    Public key endpoint, override only for testing
    """

    default_key_max_age: float = 3600.0
    """
    Fallback key freshness in seconds
    """

    model_config = SettingsConfigDict(
        env_prefix="SECURETOKEN_", use_attribute_docstrings=True
    )

    def to_config(self) -> VerifierConfig:
        return VerifierConfig(
            project_id=self.project_id,
            clock_skew_tolerance=self.clock_skew_tolerance,
            emulator_mode=self.emulator,
            fetch_timeout=self.fetch_timeout,
            public_keys_url=self.public_keys_url,
            default_key_max_age=self.default_key_max_age,
        )
