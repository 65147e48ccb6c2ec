"""create score_entry for per-client high scores

Revision ID: 5c1e7a9d2b40
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c1e7a9d2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'score_entry' in set(insp.get_table_names()):
        return

    op.create_table(
        'score_entry',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.String(length=64), nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', sa.String(length=32), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('client_id', 'key', name='uq_score_entry_client_key'),
    )
    with op.batch_alter_table('score_entry') as batch_op:
        batch_op.create_index('ix_score_entry_client_id', ['client_id'], unique=False)


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'score_entry' not in set(insp.get_table_names()):
        return
    with op.batch_alter_table('score_entry') as batch_op:
        batch_op.drop_index('ix_score_entry_client_id')
    op.drop_table('score_entry')
