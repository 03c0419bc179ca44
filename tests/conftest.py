"""Pytest configuration and shared fixtures."""

import json
import threading
import time
from datetime import datetime, timedelta, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID
from jwt.utils import base64url_encode

from securetoken.config import VerifierConfig
from securetoken.keys import KeyCache
from securetoken.transport import FetchResponse
from securetoken.verifier import TokenVerifier

PROJECT_ID = "test-project"
KID = "key-1"
NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
NOW_TS = int(NOW.timestamp())


def b64(data: bytes) -> str:
    return base64url_encode(data).decode()


def make_token(payload, key=None, header=None, signature=None) -> str:
    """Build a JWT from JSON-serializable parts, signing it with `key` if given."""
    if header is None:
        header = {"alg": "RS256", "kid": KID, "typ": "JWT"}

    signing_input = (
        f"{b64(json.dumps(header).encode())}.{b64(json.dumps(payload).encode())}"
    )
    if signature is None:
        signature = b""
        if key is not None:
            signature = key.sign(
                signing_input.encode(), padding.PKCS1v15(), hashes.SHA256()
            )
    return f"{signing_input}.{b64(signature)}"


def make_certificate(key) -> str:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "securetoken")])
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(NOW - timedelta(days=1))
        .not_valid_after(NOW + timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM).decode()


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


class FakeTransport:
    """Key endpoint double that records every fetch."""

    def __init__(self, keys: dict, max_age: float | None = 3600):
        self.keys = keys
        self.max_age = max_age
        self.status_code = 200
        self.error: Exception | None = None
        self.calls = []
        self.started = threading.Event()
        self.gate: threading.Event | None = None

    def fetch(self, url: str, timeout: float) -> FetchResponse:
        self.calls.append((url, timeout))
        self.started.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return FetchResponse(
            status_code=self.status_code,
            body=json.dumps(self.keys).encode(),
            max_age=self.max_age,
        )


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificate_pem(rsa_key):
    return make_certificate(rsa_key)


@pytest.fixture
def claims():
    """Valid ID token claims for PROJECT_ID at NOW."""
    return {
        "iss": f"https://securetoken.google.com/{PROJECT_ID}",
        "aud": PROJECT_ID,
        "auth_time": NOW_TS - 600,
        "user_id": "user-123",
        "sub": "user-123",
        "iat": NOW_TS - 60,
        "exp": NOW_TS + 3540,
        "email": "user@example.com",
        "email_verified": True,
        "firebase": {
            "identities": {"email": ["user@example.com"]},
            "sign_in_provider": "password",
        },
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return VerifierConfig(project_id=PROJECT_ID)


@pytest.fixture
def transport(certificate_pem):
    return FakeTransport({KID: certificate_pem})


@pytest.fixture
def slow_key_server(certificate_pem):
    """Serve the key set in 12 pieces 0.4 s apart and yield its URL.

    Every piece arrives well within a 1 s read timeout, but the whole body
    takes almost five seconds.
    """
    body = json.dumps({KID: certificate_pem}).encode()
    size = -(-len(body) // 12)

    class SlowHandler(BaseHTTPRequestHandler):
        def do_GET(self):  # noqa: N802
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            try:
                for start in range(0, len(body), size):
                    self.wfile.write(body[start : start + size])
                    self.wfile.flush()
                    time.sleep(0.4)
            except (BrokenPipeError, ConnectionResetError):
                # Client gave up
                return

        def log_message(self, format, *args):
            return

    server = ThreadingHTTPServer(("127.0.0.1", 0), SlowHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address
    try:
        yield f"http://{host}:{port}/keys"
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def key_cache(config, transport, clock):
    return KeyCache(config, transport=transport, clock=clock)


@pytest.fixture
def verifier(config, key_cache, clock):
    return TokenVerifier(config, key_cache=key_cache, clock=clock)
