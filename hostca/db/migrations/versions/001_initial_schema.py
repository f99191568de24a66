"""Create hostkeys, issuances and github_user_mappings tables

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import BigInteger, Column, DateTime, Enum, Integer, String, Text

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

cert_type = Enum('host', 'user', name='certtype')
serial_type = BigInteger().with_variant(Integer, 'sqlite')


def upgrade():
    op.create_table(
        'hostkeys',
        Column('id', serial_type, primary_key=True, autoincrement=True),
        Column('hostname', String(255), nullable=False),
        Column('cert_type', cert_type, nullable=False),
        Column('pubkey', Text, nullable=False),
        Column('serial', BigInteger, nullable=False),
        Column('updated_at', DateTime, nullable=False),
        sa.UniqueConstraint('hostname', 'cert_type', name='uq_hostkeys_hostname_cert_type'),
    )

    op.create_table(
        'issuances',
        Column('serial', serial_type, primary_key=True, autoincrement=True),
        Column('principal', String(255), nullable=False),
        Column('cert_type', cert_type, nullable=False),
        Column('pubkey', Text, nullable=False),
        Column('issued_at', DateTime, nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_issuances_principal', 'issuances', ['principal'])

    op.create_table(
        'github_user_mappings',
        Column('sso_identity', String(255), primary_key=True),
        Column('github_username', String(255), nullable=False),
    )


def downgrade():
    op.drop_table('github_user_mappings')
    op.drop_index('ix_issuances_principal', table_name='issuances')
    op.drop_table('issuances')
    op.drop_table('hostkeys')
