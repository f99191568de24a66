from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url

from hostca.db.base import Base  # noqa: F401
from hostca.db.models import CertType, GitHubUserMapping, HostKey, Issuance  # noqa: F401
from hostca.db.storage import MysqlStorage, SqliteStorage, Storage, create_storage  # noqa: F401


def build_engine(url: Optional[str] = None) -> Engine:
    """Create the process-wide engine for `url` (defaults to SQLALCHEMY_DATABASE_URL)."""
    from hostca import config

    url = make_url(url or config.SQLALCHEMY_DATABASE_URL)
    backend = url.get_backend_name()

    if backend == "sqlite":
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    connect_args = {}
    if config.DATABASE_TLS_CA:
        connect_args["ssl"] = {"ca": config.DATABASE_TLS_CA}
        if config.DATABASE_TLS_CERT and config.DATABASE_TLS_KEY:
            connect_args["ssl"]["cert"] = config.DATABASE_TLS_CERT
            connect_args["ssl"]["key"] = config.DATABASE_TLS_KEY

    return create_engine(
        url,
        pool_size=config.SQLALCHEMY_POOL_SIZE,
        max_overflow=config.SQLALCHEMY_MAX_OVERFLOW,
        pool_recycle=3600,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def get_storage(url: Optional[str] = None) -> Storage:
    return create_storage(build_engine(url))
