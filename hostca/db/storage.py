"""
Persistence for issued host keys and identity mappings.

`Storage` defines the contract; `SqliteStorage` and `MysqlStorage` differ
only in how they spell "insert, or update on conflict". The variant is
chosen once, from the database URL, by `create_storage`.
"""

import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Tuple

from alembic import command
from alembic.config import Config as AlembicConfig
from alembic.util import CommandError
from sqlalchemy import delete, insert, select, update
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from hostca.db.models import CertType, GitHubUserMapping, HostKey, Issuance
from hostca.exceptions import NotFoundError, StorageError
from hostca.utils.sshkeys import SSHPublicKey, marshal_authorized_key

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "migrations")


class Storage(ABC):

    def __init__(self, engine: Engine):
        self.engine = engine

    @abstractmethod
    def _upsert_hostkey(self, values: dict):
        """Single statement inserting a hostkeys row or replacing the pubkey of the existing one."""

    @abstractmethod
    def _upsert_mappings(self, rows: List[dict]):
        """Single statement inserting or overwriting github_user_mappings rows."""

    def record_issuance(self, cert_type: CertType, principal: str, public_key: SSHPublicKey) -> int:
        """
        Record that `public_key` is being certified for `principal` and return its serial.

        The hostkeys row is upserted first, so the row lock is held before a
        serial is allocated. The serial is then the primary key of a fresh row
        in the issuance log and is written back to the hostkeys row, all in one
        transaction. Concurrent enrollments for one principal therefore commit
        in serial order: the row always holds the highest serial issued for it,
        next to the key that serial was issued for.
        """
        pkdata = marshal_authorized_key(public_key)
        now = datetime.now(timezone.utc)
        try:
            with self.engine.begin() as conn:
                conn.execute(self._upsert_hostkey({
                    "hostname": principal,
                    "cert_type": cert_type,
                    "pubkey": pkdata,
                    "serial": 0,
                    "updated_at": now,
                }))
                result = conn.execute(
                    insert(Issuance).values(
                        principal=principal,
                        cert_type=cert_type,
                        pubkey=pkdata,
                        issued_at=now,
                    )
                )
                serial = result.inserted_primary_key[0]
                conn.execute(
                    update(HostKey)
                    .where(HostKey.hostname == principal, HostKey.cert_type == cert_type)
                    .values(serial=serial)
                )
        except SQLAlchemyError as e:
            raise StorageError(f"error recording issuance for {principal}: {e}") from e

        logger.debug(f"Recorded issuance serial={serial} for {principal} ({cert_type.value})")
        return int(serial)

    def query_host_keys(self) -> Iterator[Tuple[str, str]]:
        """Yield (hostname, pubkey) for every recorded host key. Each call re-reads."""
        stmt = (
            select(HostKey.hostname, HostKey.pubkey)
            .where(HostKey.cert_type == CertType.host)
            .order_by(HostKey.hostname)
        )
        try:
            with self.engine.connect() as conn:
                for hostname, pubkey in conn.execute(stmt):
                    yield hostname, pubkey
        except SQLAlchemyError as e:
            raise StorageError(f"error querying host keys: {e}") from e

    def record_identity_mapping(self, mapping: Dict[str, str]) -> None:
        """Replace the whole identity mapping table with `mapping`, atomically."""
        try:
            with self.engine.begin() as conn:
                stmt = delete(GitHubUserMapping)
                if mapping:
                    stmt = stmt.where(GitHubUserMapping.sso_identity.not_in(list(mapping)))
                conn.execute(stmt)
                if mapping:
                    conn.execute(self._upsert_mappings([
                        {"sso_identity": identity, "github_username": username}
                        for identity, username in mapping.items()
                    ]))
        except SQLAlchemyError as e:
            raise StorageError(f"error recording mapping: {e}") from e

    def query_identity_mapping(self, identity: str) -> str:
        stmt = select(GitHubUserMapping.github_username).where(GitHubUserMapping.sso_identity == identity)
        try:
            with self.engine.connect() as conn:
                username = conn.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"error querying mapping: {e}") from e
        if username is None:
            raise NotFoundError(f"no mapping for identity {identity!r}")
        return username

    def migrate(self, migrations_dir: Optional[str] = None) -> None:
        """Run pending alembic migrations; a no-op once the schema is at head."""
        cfg = AlembicConfig()
        cfg.set_main_option("script_location", migrations_dir or MIGRATIONS_DIR)
        try:
            with self.engine.begin() as conn:
                cfg.attributes["connection"] = conn
                command.upgrade(cfg, "head")
        except (SQLAlchemyError, CommandError) as e:
            raise StorageError(f"unable to run migrations: {e}") from e
        logger.info(f"Migrations from {migrations_dir or MIGRATIONS_DIR} applied")


class SqliteStorage(Storage):

    def _upsert_hostkey(self, values: dict):
        stmt = sqlite_insert(HostKey).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[HostKey.hostname, HostKey.cert_type],
            set_={
                "pubkey": stmt.excluded.pubkey,
                "updated_at": stmt.excluded.updated_at,
            },
        )

    def _upsert_mappings(self, rows: List[dict]):
        stmt = sqlite_insert(GitHubUserMapping).values(rows)
        return stmt.on_conflict_do_update(
            index_elements=[GitHubUserMapping.sso_identity],
            set_={"github_username": stmt.excluded.github_username},
        )


class MysqlStorage(Storage):

    def _upsert_hostkey(self, values: dict):
        stmt = mysql_insert(HostKey).values(**values)
        return stmt.on_duplicate_key_update(
            pubkey=stmt.inserted.pubkey,
            updated_at=stmt.inserted.updated_at,
        )

    def _upsert_mappings(self, rows: List[dict]):
        stmt = mysql_insert(GitHubUserMapping).values(rows)
        return stmt.on_duplicate_key_update(github_username=stmt.inserted.github_username)


STORAGE_BACKENDS = {
    "sqlite": SqliteStorage,
    "mysql": MysqlStorage,
    "mariadb": MysqlStorage,
}


def create_storage(engine: Engine) -> Storage:
    backend = engine.url.get_backend_name()
    try:
        storage_cls = STORAGE_BACKENDS[backend]
    except KeyError:
        raise ValueError(f"storage: unsupported database backend {backend!r}")
    logger.info(f"Using {storage_cls.__name__} for {engine.url.render_as_string(hide_password=True)}")
    return storage_cls(engine)
