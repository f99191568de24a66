"""
SSH host certificate signing.

Certificates are built with cryptography's SSHCertificateBuilder, which
produces the standard OpenSSH v01 certificate encoding, so anything signed
here verifies with stock ssh/sshd against the authority key.
"""

import base64
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.hazmat.primitives.serialization import (
    SSHCertificate,
    SSHCertificateBuilder,
    SSHCertificateType,
)

from hostca.exceptions import SigningError
from hostca.models.policy import SigningPolicy
from hostca.utils.sshkeys import SSHPublicKey, key_type, marshal_authorized_key

logger = logging.getLogger(__name__)

SigningKey = Union[ed25519.Ed25519PrivateKey, ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey]

CERT_SUFFIX = "-cert-v01@openssh.com"


@dataclass(frozen=True)
class SignedCertificate:
    certificate: SSHCertificate
    key_type: str

    @property
    def cert_type_name(self) -> str:
        return self.key_type + CERT_SUFFIX

    def marshal(self) -> bytes:
        _, blob = self.certificate.public_bytes().split(b" ", 1)
        return base64.b64decode(blob)

    def encode(self) -> str:
        """`<key-type>-cert-v01@openssh.com <base64>`, without a trailing newline."""
        return f"{self.cert_type_name} {base64.b64encode(self.marshal()).decode('ascii')}"


def load_signing_key(path: str, passphrase: Optional[str] = None) -> SigningKey:
    password = passphrase.encode("utf-8") if passphrase else None
    try:
        with open(path, "rb") as f:
            data = f.read()
        if b"BEGIN OPENSSH PRIVATE KEY" in data:
            key = serialization.load_ssh_private_key(data, password=password)
        else:
            key = serialization.load_pem_private_key(data, password=password)
    except (OSError, ValueError, TypeError) as e:
        raise SigningError(f"unable to load signing key {path}: {e}") from e

    if not isinstance(key, (ed25519.Ed25519PrivateKey, ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey)):
        raise SigningError(f"unsupported signing key type in {path}")
    return key


class CertificateSigner:
    """Turns an authorized enrollment into a signed host certificate."""

    def __init__(self, signing_key: SigningKey, policy: SigningPolicy,
                 clock: Callable[[], float] = time.time):
        self.signing_key = signing_key
        self.policy = policy
        self.clock = clock

    @classmethod
    def from_key_file(cls, path: str, policy: SigningPolicy, passphrase: Optional[str] = None) -> "CertificateSigner":
        return cls(load_signing_key(path, passphrase), policy)

    def authority_public_key(self) -> str:
        return marshal_authorized_key(self.signing_key.public_key())

    def principals_for(self, hostname: str) -> List[str]:
        """
        Canonical hostname, then the hostname with the configured suffix
        stripped, then the configured aliases for that exact hostname.
        """
        principals = [hostname]
        suffix = self.policy.strip_suffix
        if suffix and hostname.endswith(suffix):
            stripped = hostname[:-len(suffix)]
            if stripped:
                principals.append(stripped)
        principals.extend(self.policy.aliases.get(hostname, []))

        unique = []
        for principal in principals:
            if principal not in unique:
                unique.append(principal)
        return unique

    def sign_host(self, hostname: str, serial: int, public_key: SSHPublicKey) -> SignedCertificate:
        """
        Sign a host certificate for `public_key` valid for [now, now + duration).

        The builder draws the 32 byte nonce from os.urandom at signing time;
        if the entropy source fails the exception propagates as SigningError
        and no certificate is produced.
        """
        valid_after = int(self.clock())
        valid_before = valid_after + int(self.policy.duration.total_seconds())
        principals = self.principals_for(hostname)

        try:
            builder = (
                SSHCertificateBuilder()
                .public_key(public_key)
                .serial(serial)
                .type(SSHCertificateType.HOST)
                .key_id(hostname.encode("utf-8"))
                .valid_principals([p.encode("utf-8") for p in principals])
                .valid_after(valid_after)
                .valid_before(valid_before)
            )
            certificate = builder.sign(self.signing_key)
        except (ValueError, TypeError, OSError, NotImplementedError) as e:
            raise SigningError(f"signing host certificate for {hostname} failed: {e}") from e

        logger.info(f"Signed host certificate serial={serial} for {hostname} principals={principals}")
        return SignedCertificate(certificate=certificate, key_type=key_type(public_key))
