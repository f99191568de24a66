import ipaddress
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519
from cryptography.x509.oid import NameOID
from sqlalchemy import create_engine
from starlette.requests import Request

from hostca.auth import AuthGate
from hostca.db.base import Base
from hostca.db.storage import SqliteStorage
from hostca.models.policy import SigningPolicy
from hostca.services.signer import CertificateSigner
from hostca.utils.sshkeys import marshal_authorized_key

ISSUED_AT = 1_700_000_000


@pytest.fixture
def issued_at():
    return ISSUED_AT


@pytest.fixture
def ca_key():
    return ed25519.Ed25519PrivateKey.generate()


@pytest.fixture
def policy():
    return SigningPolicy(
        duration="1h",
        strip_suffix=".internal.example.com",
        aliases={"web1.internal.example.com": ["www.example.com", "web.example.com"]},
    )


@pytest.fixture
def signer(ca_key, policy):
    return CertificateSigner(ca_key, policy, clock=lambda: ISSUED_AT)


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'hostca.sqlite3'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    yield engine
    engine.dispose()


@pytest.fixture
def storage(engine):
    Base.metadata.create_all(engine)
    return SqliteStorage(engine)


@pytest.fixture
def make_host_key():
    """Returns (public key, authorized_keys line) for a fresh Ed25519 host key."""
    def _make(comment="root@host"):
        public_key = ed25519.Ed25519PrivateKey.generate().public_key()
        return public_key, f"{marshal_authorized_key(public_key)} {comment}\n"
    return _make


@pytest.fixture
def make_client_cert():
    """Self-signed X.509 client certificate with the given SAN entries."""
    def _make(common_name="client", dns_names=(), ip_addresses=()):
        key = ec.generate_private_key(ec.SECP256R1())
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
        now = datetime.now(timezone.utc)
        builder = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(minutes=5))
            .not_valid_after(now + timedelta(days=1))
        )
        sans = [x509.DNSName(n) for n in dns_names]
        sans += [x509.IPAddress(ipaddress.ip_address(a)) for a in ip_addresses]
        if sans:
            builder = builder.add_extension(x509.SubjectAlternativeName(sans), critical=False)
        return builder.sign(key, hashes.SHA256())
    return _make


def cert_pem(cert: x509.Certificate) -> str:
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


@pytest.fixture
def proxy_headers():
    """Headers a TLS terminator sets for a verified client certificate."""
    def _make(cert, verify="SUCCESS"):
        return {
            "X-SSL-Client-Cert": quote(cert_pem(cert), safe=""),
            "X-SSL-Client-Verify": verify,
        }
    return _make


@pytest.fixture
def make_request():
    """
    Starlette request carrying `chain` in the ASGI TLS extension.

    With `body=None` the request fails the test if its body is read.
    """
    def _make(chain=None, body=b"", headers=None, cert_error=None):
        scope = {
            "type": "http",
            "method": "POST",
            "path": "/enroll",
            "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()],
        }
        if chain is not None:
            scope["extensions"] = {"tls": {
                "client_cert_chain": [cert_pem(c) for c in chain],
                "client_cert_error": cert_error,
            }}

        async def receive():
            if body is None:
                pytest.fail("request body was read")
            return {"type": "http.request", "body": body, "more_body": False}

        return Request(scope, receive)
    return _make


@pytest.fixture
def gate():
    return AuthGate(trust_proxy_headers=True)
