"""add_reviews_and_newsletter

Revision ID: 8b2e4d6f1a37
Revises: 3f1c9a7d2b10
Create Date: 2026-10-18 14:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b2e4d6f1a37'
down_revision: Union[str, Sequence[str], None] = '3f1c9a7d2b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


review_status = sa.Enum(
    'pending', 'approved', 'rejected', name='shop_review_status_enum'
)


def upgrade() -> None:
    """Upgrade schema - Add reviews and newsletter subscribers."""
    # ADD VALUE cannot run inside a transaction on older PostgreSQL
    with op.get_context().autocommit_block():
        op.execute(
            "ALTER TYPE shop_audit_entity_type_enum ADD VALUE IF NOT EXISTS 'review'"
        )

    op.create_table(
        'shop_reviews',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('customer_auth_id', sa.String(255), nullable=False),
        sa.Column('user_name', sa.String(255), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), nullable=True),
        sa.Column('status', review_status, server_default='pending', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('rating BETWEEN 1 AND 5', name='review_rating_range'),
        sa.ForeignKeyConstraint(
            ['product_id'], ['shop_products.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'customer_auth_id', 'product_id', name='uq_review_customer_product'
        ),
    )
    op.create_index(
        op.f('ix_shop_reviews_product_id'), 'shop_reviews', ['product_id']
    )

    op.create_table(
        'shop_newsletter_subscribers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )


def downgrade() -> None:
    """Downgrade schema - Drop reviews and newsletter subscribers.

    PostgreSQL cannot remove an enum value, so 'review' stays on the audit enum.
    """
    op.drop_table('shop_newsletter_subscribers')
    op.drop_index(op.f('ix_shop_reviews_product_id'), table_name='shop_reviews')
    op.drop_table('shop_reviews')
    review_status.drop(op.get_bind(), checkfirst=True)
