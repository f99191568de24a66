from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from hostca.dependencies import get_issuance_service
from hostca.services.enrollment import IssuanceService

router = APIRouter()


@router.post("/enroll/{hostname}", response_class=PlainTextResponse)
async def enroll(
    hostname: str,
    request: Request,
    service: IssuanceService = Depends(get_issuance_service),
):
    """Sign the SSH host key in the request body for `hostname`."""
    return await service.enroll(hostname, request)
