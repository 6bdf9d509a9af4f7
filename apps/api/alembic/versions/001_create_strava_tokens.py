"""create strava_tokens

Revision ID: 001
Revises: 
Create Date: 2026-01-05 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One row per athlete; upserts conflict on the primary key.
    op.create_table(
        'strava_tokens',
        sa.Column('athlete_id', sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('refresh_token', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=False),
        sa.Column('scope', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    )
    op.create_index('ix_strava_tokens_updated_at', 'strava_tokens', ['updated_at'])


def downgrade() -> None:
    op.drop_index('ix_strava_tokens_updated_at', table_name='strava_tokens')
    op.drop_table('strava_tokens')
