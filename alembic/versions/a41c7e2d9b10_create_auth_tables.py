"""create principal, refresh session and verification code tables

Revision ID: a41c7e2d9b10
Revises:
Create Date: 2026-10-19 10:12:31.114820

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a41c7e2d9b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


principal_type = sa.Enum('admin', 'teacher', 'student', name='principal_type')
verification_purpose = sa.Enum('EMAIL_VERIFY', 'PASSWORD_RESET', name='verification_purpose')


def _principal_columns():
    return [
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password', sa.String(), nullable=False),
        sa.Column('email_verified_at', sa.DateTime(), nullable=True),
        sa.Column('is_suspended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade():
    op.create_table('admins', *_principal_columns(), sa.Column('school', sa.String(), nullable=True))
    op.create_table('teachers', *_principal_columns(), sa.Column('designation', sa.String(), nullable=True))
    op.create_table(
        'students', *_principal_columns(),
        sa.Column('roll_no', sa.String(), nullable=True, unique=True),
    )
    for table in ('admins', 'teachers', 'students'):
        op.create_index(f'ix_{table}_id', table, ['id'])
        op.create_index(f'ix_{table}_email', table, ['email'], unique=True)

    op.create_table(
        'refresh_sessions',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('principal_id', sa.String(length=36), nullable=False),
        sa.Column('principal_type', principal_type, nullable=False),
        sa.Column('refresh_token', sa.String(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=False),
        sa.Column('device_label', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_refresh_sessions_id', 'refresh_sessions', ['id'])
    op.create_index('ix_refresh_sessions_refresh_token', 'refresh_sessions', ['refresh_token'], unique=True)
    op.create_index('ix_refresh_sessions_principal', 'refresh_sessions', ['principal_type', 'principal_id'])

    op.create_table(
        'verification_codes',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('principal_id', sa.String(length=36), nullable=False),
        sa.Column(
            'principal_type',
            sa.Enum('admin', 'teacher', 'student', name='principal_type', create_type=False),
            nullable=False,
        ),
        sa.Column('code', sa.String(length=8), nullable=False),
        sa.Column('token', sa.String(), nullable=False),
        sa.Column('purpose', verification_purpose, nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_verification_codes_id', 'verification_codes', ['id'])
    op.create_index('ix_verification_codes_token', 'verification_codes', ['token'], unique=True)
    op.create_index('ix_verification_codes_principal', 'verification_codes', ['principal_type', 'principal_id'])


def downgrade():
    op.drop_table('verification_codes')
    op.drop_table('refresh_sessions')
    op.drop_table('students')
    op.drop_table('teachers')
    op.drop_table('admins')
    verification_purpose.drop(op.get_bind(), checkfirst=True)
    principal_type.drop(op.get_bind(), checkfirst=True)
