import logging

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from hostca.auth import AuthGate
from hostca.db.models import CertType
from hostca.db.storage import Storage
from hostca.exceptions import AuthorizationError, ClientInputError, ForbiddenError
from hostca.services.signer import CertificateSigner
from hostca.utils.sshkeys import parse_authorized_key

logger = logging.getLogger(__name__)


class IssuanceService:
    """
    Enrollment pipeline: authorize the caller, record the issuance, sign.

    Nothing touches storage or the signer until both auth checks passed and
    the submitted key parsed.
    """

    def __init__(self, gate: AuthGate, storage: Storage, signer: CertificateSigner,
                 max_body_bytes: int = 16384):
        self.gate = gate
        self.storage = storage
        self.signer = signer
        self.max_body_bytes = max_body_bytes

    async def enroll(self, hostname: str, request: Request) -> str:
        if not self.gate.is_authenticated(request):
            raise AuthorizationError()
        if not self.gate.matches_hostname(hostname, request):
            logger.warning(f"Enrollment for {hostname} refused: hostname does not match client certificate")
            raise ForbiddenError()

        body = await self._read_body(request)
        return await run_in_threadpool(self.enroll_host, hostname, body)

    def enroll_host(self, hostname: str, body: bytes) -> str:
        """Issue a certificate for an already authorized `hostname`."""
        public_key = parse_authorized_key(body)
        serial = self.storage.record_issuance(CertType.host, hostname, public_key)
        signed = self.signer.sign_host(hostname, serial, public_key)
        return signed.encode()

    async def _read_body(self, request: Request) -> bytes:
        body = b""
        async for chunk in request.stream():
            body += chunk
            if len(body) > self.max_body_bytes:
                raise ClientInputError("public key too large")
        return body
