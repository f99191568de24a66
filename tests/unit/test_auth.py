from urllib.parse import quote

import pytest
from cryptography.hazmat.primitives import serialization

from hostca.auth import AuthGate, certificate_matches_hostname


class TestHostnameMatching:
    def test_exact_san_match(self, make_client_cert):
        cert = make_client_cert(dns_names=["db1.internal.example.com"])
        assert certificate_matches_hostname(cert, "db1.internal.example.com")
        assert certificate_matches_hostname(cert, "DB1.Internal.Example.com.")
        assert not certificate_matches_hostname(cert, "db2.internal.example.com")
        assert not certificate_matches_hostname(cert, "internal.example.com")

    def test_wildcard_covers_one_label(self, make_client_cert):
        cert = make_client_cert(dns_names=["*.internal.example.com"])
        assert certificate_matches_hostname(cert, "db1.internal.example.com")
        assert not certificate_matches_hostname(cert, "a.db1.internal.example.com")
        assert not certificate_matches_hostname(cert, "internal.example.com")

    def test_wildcard_in_requested_name_never_matches(self, make_client_cert):
        cert = make_client_cert(dns_names=["*.internal.example.com"])
        assert not certificate_matches_hostname(cert, "*.internal.example.com")

    def test_common_name_ignored_when_san_present(self, make_client_cert):
        cert = make_client_cert(common_name="db1.example.com", dns_names=["other.example.com"])
        assert not certificate_matches_hostname(cert, "db1.example.com")

    def test_common_name_ignored_without_san(self, make_client_cert):
        cert = make_client_cert(common_name="db1.example.com")
        assert not certificate_matches_hostname(cert, "db1.example.com")

    def test_ip_literal_matches_ip_san_only(self, make_client_cert):
        cert = make_client_cert(dns_names=["10.0.0.5"], ip_addresses=["10.0.0.6"])
        assert certificate_matches_hostname(cert, "10.0.0.6")
        assert not certificate_matches_hostname(cert, "10.0.0.5")

    @pytest.mark.parametrize("hostname", ["", ".", "db1..example.com", "   "])
    def test_malformed_hostname_fails_closed(self, make_client_cert, hostname):
        cert = make_client_cert(dns_names=["db1.example.com"])
        assert not certificate_matches_hostname(cert, hostname)


class TestAuthGate:
    def test_no_chain_is_not_authenticated(self, make_request):
        gate = AuthGate()
        request = make_request()
        assert not gate.is_authenticated(request)
        assert not gate.matches_hostname("db1.example.com", request)

    def test_tls_extension_chain(self, make_request, make_client_cert):
        gate = AuthGate()
        request = make_request(chain=[make_client_cert(dns_names=["db1.example.com"])])
        assert gate.is_authenticated(request)
        assert gate.matches_hostname("db1.example.com", request)
        assert not gate.matches_hostname("db2.example.com", request)

    def test_tls_extension_with_verification_error(self, make_request, make_client_cert):
        gate = AuthGate()
        request = make_request(chain=[make_client_cert(dns_names=["db1.example.com"])],
                               cert_error="certificate verify failed")
        assert not gate.is_authenticated(request)

    def test_empty_tls_chain(self, make_request):
        assert not AuthGate().is_authenticated(make_request(chain=[]))

    def test_proxy_headers_ignored_unless_trusted(self, make_request, make_client_cert, proxy_headers):
        headers = proxy_headers(make_client_cert(dns_names=["db1.example.com"]))
        request = make_request(headers=headers)
        assert not AuthGate().is_authenticated(request)
        assert AuthGate(trust_proxy_headers=True).matches_hostname("db1.example.com", request)

    def test_proxy_headers_require_successful_verification(self, make_request, make_client_cert, proxy_headers):
        headers = proxy_headers(make_client_cert(dns_names=["db1.example.com"]), verify="FAILED:unknown ca")
        assert not AuthGate(trust_proxy_headers=True).is_authenticated(make_request(headers=headers))

    def test_garbage_certificate_header(self, make_request):
        headers = {"X-SSL-Client-Cert": quote("-----BEGIN CERTIFICATE-----\nnope\n", safe=""),
                   "X-SSL-Client-Verify": "SUCCESS"}
        assert not AuthGate(trust_proxy_headers=True).is_authenticated(make_request(headers=headers))

    def test_custom_header_names(self, make_request, make_client_cert):
        cert = make_client_cert(dns_names=["db1.example.com"])
        pem = cert.public_bytes(serialization.Encoding.PEM).decode()
        gate = AuthGate(trust_proxy_headers=True, client_cert_header="X-Client-Cert",
                        client_verify_header="X-Client-Verify")
        request = make_request(headers={"X-Client-Cert": quote(pem, safe=""), "X-Client-Verify": "SUCCESS"})
        assert gate.matches_hostname("db1.example.com", request)
