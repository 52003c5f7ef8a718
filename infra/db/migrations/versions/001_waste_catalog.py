"""create waste catalog

Revision ID: 001_waste_catalog
Revises:
Create Date: 2026-10-01 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_waste_catalog'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Reference catalog: read-only for the matching engine
    op.create_table(
        'waste_catalog',
        sa.Column('id', sa.Text, primary_key=True),

        # Identification
        sa.Column('name', sa.Text, nullable=False, comment='Item name, shared by all variants of an object'),
        sa.Column('synonyms', sa.Text, comment='Comma-separated alternative names'),
        sa.Column('variation', sa.Text, comment='Variant description (e.g. "Carrier bag")'),

        # Variant attributes
        sa.Column('material', sa.Text, comment='e.g. "Soft plastic", "Paper - coated"'),
        sa.Column('condition', sa.Text, comment='e.g. "Clean and dry", "With food residue"'),

        # Disposal categories
        sa.Column('home_category', sa.Text, nullable=False, server_default='', comment='Household sorting fraction'),
        sa.Column('recycling_category', sa.Text, nullable=False, server_default='', comment='Recycling center container'),

        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )

    # Substring search uses lower(column) LIKE '%term%'; trigram indexes keep that fast
    op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")
    for column in ('name', 'synonyms', 'variation', 'material'):
        op.execute(
            f"CREATE INDEX idx_waste_catalog_{column}_trgm "
            f"ON waste_catalog USING gin (lower({column}) gin_trgm_ops)"
        )


def downgrade() -> None:
    for column in ('name', 'synonyms', 'variation', 'material'):
        op.execute(f"DROP INDEX IF EXISTS idx_waste_catalog_{column}_trgm")
    op.drop_table('waste_catalog')
