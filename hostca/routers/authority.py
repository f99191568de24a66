from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from hostca.auth import AuthGate
from hostca.db.storage import Storage
from hostca.dependencies import get_auth_gate, get_signer, get_storage
from hostca.exceptions import AuthorizationError
from hostca.services.signer import CertificateSigner

router = APIRouter()


@router.get("/authority", response_class=PlainTextResponse)
def get_authority(signer: CertificateSigner = Depends(get_signer)):
    """Public key of the signing authority in authorized_keys form."""
    return signer.authority_public_key() + "\n"


@router.get("/known_hosts", response_class=PlainTextResponse)
async def get_known_hosts(
    request: Request,
    gate: AuthGate = Depends(get_auth_gate),
    storage: Storage = Depends(get_storage),
    signer: CertificateSigner = Depends(get_signer),
):
    """known_hosts file trusting the authority plus every recorded host key."""
    if not gate.is_authenticated(request):
        raise AuthorizationError()

    lines = [f"@cert-authority * {signer.authority_public_key()}"]
    host_keys = await run_in_threadpool(lambda: list(storage.query_host_keys()))
    lines.extend(f"{hostname} {pubkey}" for hostname, pubkey in host_keys)
    return "\n".join(lines) + "\n"
