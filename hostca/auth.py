"""
Client certificate checks for incoming requests.

TLS is terminated outside this process. The verified client chain reaches
us either through the ASGI TLS extension or, when explicitly trusted,
through headers set by the terminating proxy. Every check fails closed.
"""

import ipaddress
import logging
from typing import List, Optional
from urllib.parse import unquote

from cryptography import x509
from starlette.requests import HTTPConnection

logger = logging.getLogger(__name__)

Chain = List[x509.Certificate]


class AuthGate:

    def __init__(self,
                 trust_proxy_headers: bool = False,
                 client_cert_header: str = "X-SSL-Client-Cert",
                 client_verify_header: str = "X-SSL-Client-Verify"):
        self.trust_proxy_headers = trust_proxy_headers
        self.client_cert_header = client_cert_header
        self.client_verify_header = client_verify_header

    def verified_chains(self, request: HTTPConnection) -> List[Chain]:
        chain = _chain_from_tls_extension(request.scope)
        if not chain and self.trust_proxy_headers:
            chain = self._chain_from_headers(request)
        return [chain] if chain else []

    def is_authenticated(self, request: HTTPConnection) -> bool:
        return len(self.verified_chains(request)) > 0

    def matches_hostname(self, hostname: str, request: HTTPConnection) -> bool:
        chains = self.verified_chains(request)
        if not chains:
            return False
        return certificate_matches_hostname(chains[0][0], hostname)

    def _chain_from_headers(self, request: HTTPConnection) -> Chain:
        if request.headers.get(self.client_verify_header, "") != "SUCCESS":
            return []
        encoded = request.headers.get(self.client_cert_header)
        if not encoded:
            return []
        try:
            return x509.load_pem_x509_certificates(unquote(encoded).encode("ascii"))
        except (ValueError, UnicodeEncodeError):
            logger.warning(f"Unparseable client certificate in {self.client_cert_header} header")
            return []


def _chain_from_tls_extension(scope: dict) -> Chain:
    tls = (scope.get("extensions") or {}).get("tls")
    if not tls or tls.get("client_cert_error") is not None:
        return []
    chain = []
    for pem in tls.get("client_cert_chain") or []:
        try:
            chain.append(x509.load_pem_x509_certificate(pem.encode("ascii")))
        except (ValueError, UnicodeEncodeError):
            logger.warning("Unparseable certificate in TLS client chain")
            return []
    return chain


def _normalize_hostname(hostname: str) -> Optional[str]:
    name = hostname.strip().rstrip(".").lower()
    if not name or "*" in name:
        return None
    labels = name.split(".")
    if any(not label for label in labels):
        return None
    return name


def _match_dns_pattern(pattern: str, hostname: str) -> bool:
    pattern = pattern.rstrip(".").lower()
    if not pattern:
        return False
    if pattern == hostname:
        return True
    pattern_labels = pattern.split(".")
    host_labels = hostname.split(".")
    # Only a whole left-most label may be a wildcard, and not for single-label names
    if pattern_labels[0] != "*" or len(pattern_labels) < 3:
        return False
    if len(pattern_labels) != len(host_labels):
        return False
    return pattern_labels[1:] == host_labels[1:]


def certificate_matches_hostname(cert: x509.Certificate, hostname: str) -> bool:
    """True iff a SAN entry of `cert` covers `hostname`. The subject CN is never consulted."""
    try:
        ip = ipaddress.ip_address(hostname.strip().strip("[]"))
    except ValueError:
        ip = None

    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return False
    except ValueError:
        logger.warning("Client certificate has a malformed extension")
        return False

    if ip is not None:
        return ip in san.get_values_for_type(x509.IPAddress)

    name = _normalize_hostname(hostname)
    if name is None:
        return False
    return any(_match_dns_pattern(pattern, name) for pattern in san.get_values_for_type(x509.DNSName))
