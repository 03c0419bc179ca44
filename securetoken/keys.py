"""Fetching and caching of the issuer's public signing keys."""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from types import MappingProxyType

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from cryptography.hazmat.primitives.serialization import load_pem_public_key
from pydantic import TypeAdapter, ValidationError

from .config import VerifierConfig
from .errors import KeyFetchFailed, KeyNotFound
from .models import KeySetEntry, SigningKey
from .transport import RequestsTransport, Transport, TransportError

logger = logging.getLogger(__name__)

_KEY_SET = TypeAdapter(dict[str, str])


def load_public_key(pem: str) -> RSAPublicKey:
    """Load an RSA public key from a PEM certificate or public key."""
    data = pem.encode()
    if b"-----BEGIN CERTIFICATE-----" in data:
        public_key = x509.load_pem_x509_certificate(data).public_key()
    else:
        public_key = load_pem_public_key(data)

    if not isinstance(public_key, RSAPublicKey):
        raise ValueError(f"Expected an RSA key, got {type(public_key).__name__}")
    return public_key


def load_signing_keys(body: bytes) -> dict[str, SigningKey]:
    """Parse a key endpoint response mapping key IDs to PEM certificates.

    Raises:
        KeyFetchFailed: If the body is not a JSON object of PEM strings or a
            certificate cannot be loaded
    """
    try:
        certificates = _KEY_SET.validate_json(body)
    except ValidationError as e:
        raise KeyFetchFailed(f"Invalid key set response: {e}") from e

    keys = {}
    for kid, pem in certificates.items():
        try:
            keys[kid] = SigningKey(id=kid, public_key=load_public_key(pem))
        except ValueError as e:
            raise KeyFetchFailed(f"Invalid public key for kid {kid}: {e}") from e
    return keys


class KeyCache:
    """In-memory cache of the issuer's public keys.

    Keys are served from memory until the freshness window announced by the
    key endpoint passes, or until a token names a key the cache does not
    hold. Concurrent misses share a single fetch.

    The cached entry is only ever replaced as a whole, so readers never take
    the lock.
    """

    def __init__(
        self,
        config: VerifierConfig,
        transport: Transport | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.url = config.public_keys_url
        self.timeout = config.fetch_timeout
        self.default_max_age = config.default_key_max_age
        self.transport = transport or RequestsTransport()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._entry: KeySetEntry | None = None
        self._lock = threading.Lock()
        self._inflight: Future | None = None

    def _now(self) -> float:
        return self._clock().timestamp()

    def resolve_key(self, kid: str) -> SigningKey:
        """Return the public key named `kid`.

        Raises:
            KeyNotFound: If the issuer does not publish `kid`
            KeyFetchFailed: If the key set had to be fetched and that failed
        """
        entry = self._entry
        if entry is not None and entry.is_fresh(self._now()):
            key = entry.keys.get(kid)
            if key is not None:
                return key

        # Missing kid in a fresh entry can mean the issuer rotated in a new key
        entry = self._refresh(entry)
        key = entry.keys.get(kid)
        if key is None:
            raise KeyNotFound(kid)
        return key

    def refresh_keys(self) -> KeySetEntry:
        """Fetch the key set now, regardless of freshness."""
        return self._refresh(self._entry)

    def get_all_keys(self) -> dict[str, SigningKey]:
        """Return every currently published key, fetching if the cache is stale."""
        entry = self._entry
        if entry is None or not entry.is_fresh(self._now()):
            entry = self._refresh(entry)
        return dict(entry.keys)

    def _refresh(self, observed: KeySetEntry | None) -> KeySetEntry:
        """Replace `observed` with a freshly fetched entry.

        If another caller already replaced `observed` with a fresh entry, that
        entry is returned without fetching. If a fetch is in flight, wait for
        it instead of starting another one, for at most `fetch_timeout`.
        """
        with self._lock:
            current = self._entry
            if (
                current is not observed
                and current is not None
                and current.is_fresh(self._now())
            ):
                return current

            future = self._inflight
            owner = future is None
            if owner:
                future = self._inflight = Future()

        if not owner:
            try:
                return future.result(timeout=self.timeout)
            except FutureTimeoutError as e:
                logger.warning(
                    f"Gave up waiting for public key fetch after {self.timeout}s"
                )
                raise KeyFetchFailed(
                    f"Timed out after {self.timeout}s waiting for {self.url}"
                ) from e

        try:
            entry = self._fetch()
            self._entry = entry
        except BaseException as e:
            self._complete(future, error=e)
            raise
        self._complete(future, entry=entry)
        return entry

    def _complete(self, future: Future, entry=None, error=None):
        # Clear the slot first so later callers start a new attempt
        with self._lock:
            self._inflight = None
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(entry)

    def _fetch(self) -> KeySetEntry:
        logger.debug(f"Fetching public keys from {self.url}")
        try:
            response = self.transport.fetch(self.url, self.timeout)
        except TransportError as e:
            logger.warning(f"Public key fetch failed: {e}")
            raise KeyFetchFailed(str(e)) from e

        if response.status_code != 200:
            logger.warning(
                f"Public key fetch from {self.url} returned HTTP {response.status_code}"
            )
            raise KeyFetchFailed(f"HTTP {response.status_code} from {self.url}")

        keys = load_signing_keys(response.body)

        max_age = response.max_age
        if max_age is None:
            max_age = self.default_max_age

        fetched_at = self._now()
        logger.info(f"Fetched {len(keys)} public keys, fresh for {max_age:.0f}s")
        return KeySetEntry(
            keys=MappingProxyType(keys),
            fetched_at=fetched_at,
            fresh_until=fetched_at + max_age,
        )
