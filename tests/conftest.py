import datetime
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from flask import Flask

from rest_security import JWTCodec, Principal, SecurityContext, TokenMethod, UserStore
from rest_security.settings import JWTSettings

SIGNING_KEY = "test-signing-key-that-is-long-enough-for-hs256"
NOW = 1_700_000_000


class FakeClock:
    """Settable replacement for time.time."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def app():
    app = Flask(__name__)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def codec() -> JWTCodec:
    return JWTCodec("HS256", SIGNING_KEY)


@pytest.fixture
def make_context(clock: FakeClock):
    """
    Factory fixture that returns a function.

    Usage in tests:
        context = make_context(users=[("a", "b", ["^GET /time$"])])
    """

    def _make(
        *,
        users: Sequence[tuple[str, str, Sequence[str]]] = (),
        method: TokenMethod = TokenMethod.HEADER,
        expiration_time: int = 3600,
        algorithm: str = "HS256",
        decode_key: str | bytes = SIGNING_KEY,
    ) -> SecurityContext:
        store = UserStore(Principal(name, secret, scope) for name, secret, scope in users)
        jwt_settings = JWTSettings(
            algorithm=algorithm,
            method=method,
            decode_key=decode_key,
            expiration_time=expiration_time,
        )
        return SecurityContext(jwt_settings, store, clock=clock)

    return _make


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_private_pem(rsa_key: rsa.RSAPrivateKey) -> bytes:
    return rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def rsa_public_pem(rsa_key: rsa.RSAPrivateKey) -> bytes:
    return rsa_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture(scope="session")
def certificate_pem(rsa_key: rsa.RSAPrivateKey) -> bytes:
    """Self-signed certificate for localhost."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "localhost")])
    now = datetime.datetime.now(datetime.timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(rsa_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(rsa_key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM)


@pytest.fixture
def pem_files(
    tmp_path: Path, rsa_private_pem: bytes, certificate_pem: bytes
) -> tuple[Path, Path]:
    key_file = tmp_path / "private.key"
    cert_file = tmp_path / "certificate.pem"
    key_file.write_bytes(rsa_private_pem)
    cert_file.write_bytes(certificate_pem)
    return key_file, cert_file


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[str], Path]:
    def _write(text: str) -> Path:
        path = tmp_path / "rest-server.json"
        path.write_text(text, encoding="utf-8")
        return path

    return _write
