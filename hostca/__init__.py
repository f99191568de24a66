import logging
from contextlib import asynccontextmanager
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from .version import __version__
from hostca import config
from hostca.auth import AuthGate
from hostca.db import get_storage
from hostca.db.storage import Storage
from hostca.exceptions import HostCAError
from hostca.jobs import register_all_jobs
from hostca.models.policy import SigningPolicy
from hostca.routers import api_router
from hostca.services.enrollment import IssuanceService
from hostca.services.signer import CertificateSigner

logger = logging.getLogger("hostca")

logging.getLogger('apscheduler').setLevel(logging.WARNING)
logging.getLogger('apscheduler.executors.default').setLevel(logging.WARNING)


def build_signer() -> CertificateSigner:
    if not config.SIGNING_KEY:
        raise RuntimeError("SIGNING_KEY is not configured")
    policy = SigningPolicy(
        duration=config.CERT_DURATION,
        strip_suffix=config.STRIP_SUFFIX,
        aliases=config.load_host_aliases(),
    )
    return CertificateSigner.from_key_file(
        config.SIGNING_KEY, policy, passphrase=config.SIGNING_KEY_PASSPHRASE or None)


def build_auth_gate() -> AuthGate:
    return AuthGate(
        trust_proxy_headers=config.TRUST_PROXY_HEADERS,
        client_cert_header=config.CLIENT_CERT_HEADER,
        client_verify_header=config.CLIENT_VERIFY_HEADER,
    )


def create_app(storage: Optional[Storage] = None,
               signer: Optional[CertificateSigner] = None,
               gate: Optional[AuthGate] = None) -> FastAPI:
    """
    Build the application. Storage, signer and auth gate are created once here
    (from configuration unless given) and shared by every request.
    """
    storage = storage or get_storage()
    signer = signer or build_signer()
    gate = gate or build_auth_gate()
    issuance_service = IssuanceService(gate, storage, signer, max_body_bytes=config.MAX_PUBLIC_KEY_BYTES)

    scheduler = BackgroundScheduler(
        {"apscheduler.job_defaults.max_instances": 20}, timezone="UTC"
    )

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        register_all_jobs(scheduler, storage)
        if scheduler.get_jobs():
            scheduler.start()
        yield
        if scheduler.running:
            scheduler.shutdown()

    app = FastAPI(
        title="hostca",
        description="SSH host certificate authority for mutually authenticated machines",
        version=__version__,
        docs_url="/docs" if config.DEBUG else None,
        redoc_url=None,
        debug=config.DEBUG,
        lifespan=lifespan,
    )
    app.state.storage = storage
    app.state.signer = signer
    app.state.auth_gate = gate
    app.state.issuance_service = issuance_service
    app.state.scheduler = scheduler

    app.include_router(api_router)

    @app.exception_handler(HostCAError)
    async def hostca_error_handler(request: Request, exc: HostCAError):
        if exc.is_internal:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}", exc_info=exc)
        else:
            logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.detail}")
        return PlainTextResponse(exc.public_message, status_code=exc.status_code)

    logger.info(f"hostca {__version__} initialized")
    return app
