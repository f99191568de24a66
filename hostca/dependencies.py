from fastapi import Request

from hostca.auth import AuthGate
from hostca.db.storage import Storage
from hostca.services.enrollment import IssuanceService
from hostca.services.signer import CertificateSigner


def get_issuance_service(request: Request) -> IssuanceService:
    return request.app.state.issuance_service


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_signer(request: Request) -> CertificateSigner:
    return request.app.state.signer


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate
