import enum
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Enum, Integer, String, Text, UniqueConstraint

from hostca.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CertType(str, enum.Enum):
    host = "host"
    user = "user"


# SQLite only auto-increments INTEGER PRIMARY KEY columns.
SerialType = BigInteger().with_variant(Integer, "sqlite")


class HostKey(Base):
    """Current public key per (principal, cert type)."""
    __tablename__ = "hostkeys"

    id = Column(SerialType, primary_key=True, autoincrement=True)
    hostname = Column(String(255), nullable=False)
    cert_type = Column(Enum(CertType), nullable=False, default=CertType.host)
    pubkey = Column(Text, nullable=False)
    serial = Column(BigInteger, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("hostname", "cert_type", name="uq_hostkeys_hostname_cert_type"),
    )


class Issuance(Base):
    """Append-only issuance log; its primary key is the certificate serial."""
    __tablename__ = "issuances"

    serial = Column(SerialType, primary_key=True, autoincrement=True)
    principal = Column(String(255), nullable=False, index=True)
    cert_type = Column(Enum(CertType), nullable=False)
    pubkey = Column(Text, nullable=False)
    issued_at = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = {"sqlite_autoincrement": True}


class GitHubUserMapping(Base):
    __tablename__ = "github_user_mappings"

    sso_identity = Column(String(255), primary_key=True)
    github_username = Column(String(255), nullable=False)
