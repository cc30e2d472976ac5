"""create pastes table

Revision ID: 001_pastes
Revises:
Create Date: 2026-10-18 14:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_pastes'
down_revision = None
branch_labels = None
depends_on = None


paste_exposure_enum = sa.Enum('PUBLIC', 'UNLISTED', 'ONCE', name='paste_exposure_enum')


def upgrade() -> None:
    op.create_table(
        'pastes',
        sa.Column('id', sa.String(length=40), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('exposure', paste_exposure_enum, nullable=False),
        sa.Column('is_encrypted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('date_created', sa.DateTime(timezone=True), nullable=False),
        sa.Column('date_of_expiry', sa.DateTime(timezone=True), nullable=True),
        sa.Column('remote_address', sa.String(length=255), nullable=False),
        sa.Column('consumed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_pastes_exposure_date_created', 'pastes', ['exposure', 'date_created'], unique=False)
    op.create_index('ix_pastes_date_of_expiry', 'pastes', ['date_of_expiry'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_pastes_date_of_expiry', table_name='pastes')
    op.drop_index('ix_pastes_exposure_date_created', table_name='pastes')
    op.drop_table('pastes')
    paste_exposure_enum.drop(op.get_bind(), checkfirst=True)
