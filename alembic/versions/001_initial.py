"""Initial schema: api_keys table

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'api_keys',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('key_hash', sa.String(length=64), nullable=False),
        sa.Column('owner_email', sa.String(length=320), nullable=False),
        sa.Column('usage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('usage_limit', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('last_reset', sa.DateTime(timezone=True), nullable=True),
        sa.Column('valid_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'plan',
            sa.Enum('free', '100k', '1m', '10m', name='api_key_plan', native_enum=False, length=8),
            nullable=False,
            server_default='free',
        ),
        sa.Column('price_paid', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key', name='uq_api_keys_key'),
    )
    op.create_index('ix_api_keys_id', 'api_keys', ['id'])
    op.create_index('ix_api_keys_key_hash', 'api_keys', ['key_hash'], unique=True)
    op.create_index('ix_api_keys_owner_email', 'api_keys', ['owner_email'])
    op.create_index('idx_api_keys_hash_active', 'api_keys', ['key_hash', 'active'])
    op.create_index('idx_api_keys_owner_active', 'api_keys', ['owner_email', 'active'])


def downgrade() -> None:
    op.drop_index('idx_api_keys_owner_active', table_name='api_keys')
    op.drop_index('idx_api_keys_hash_active', table_name='api_keys')
    op.drop_index('ix_api_keys_owner_email', table_name='api_keys')
    op.drop_index('ix_api_keys_key_hash', table_name='api_keys')
    op.drop_index('ix_api_keys_id', table_name='api_keys')
    op.drop_table('api_keys')
