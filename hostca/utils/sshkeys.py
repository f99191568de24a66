from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from hostca.exceptions import ClientInputError

SSHPublicKey = Union[ed25519.Ed25519PublicKey, ec.EllipticCurvePublicKey, rsa.RSAPublicKey]

# Key types the certificate builder can certify.
SUPPORTED_PUBLIC_KEYS = (ed25519.Ed25519PublicKey, ec.EllipticCurvePublicKey, rsa.RSAPublicKey)


def parse_authorized_key(data: bytes) -> SSHPublicKey:
    """
    Parse the first key line of authorized_keys text ("<type> <base64> [comment]").

    Blank lines and comments are skipped. Raises ClientInputError for
    anything that is not a single, supported public key.
    """
    try:
        text = data.decode("ascii")
    except UnicodeDecodeError:
        raise ClientInputError("public key must be ASCII text")

    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line and not line.startswith("#")]
    if not lines:
        raise ClientInputError("no public key provided")

    try:
        public_key = serialization.load_ssh_public_key(lines[0].encode("ascii"))
    except (ValueError, UnsupportedAlgorithm):
        raise ClientInputError("public key is not in authorized_keys format")

    if not isinstance(public_key, SUPPORTED_PUBLIC_KEYS):
        raise ClientInputError("unsupported public key type")
    return public_key


def marshal_authorized_key(public_key: SSHPublicKey) -> str:
    """Canonical "<type> <base64>" form, without comment or newline."""
    return public_key.public_bytes(
        serialization.Encoding.OpenSSH,
        serialization.PublicFormat.OpenSSH,
    ).decode("ascii")


def key_type(public_key: SSHPublicKey) -> str:
    return marshal_authorized_key(public_key).split(" ", 1)[0]
